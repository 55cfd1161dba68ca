"""
Push gateway.

PushGateway.send_batch() takes (subscription, payload) pairs and returns one
PushResult per message, in order. Failures are typed so the caller can tell a
dead endpoint (remove it) from a transient error (keep it).

WebPushGateway is the production implementation on top of pywebpush.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import requests
from py_vapid import Vapid
from pywebpush import webpush, WebPushException

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class PushFailure(str, Enum):
    UNREGISTERED = "unregistered"  # endpoint gone or invalid, drop it
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass(frozen=True)
class PushTarget:
    endpoint: str
    p256dh: str
    auth: str


@dataclass(frozen=True)
class PushMessage:
    target: PushTarget
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PushResult:
    endpoint: str
    success: bool
    failure: PushFailure | None = None
    detail: str | None = None


class PushGateway(Protocol):
    def send_batch(self, messages: list[PushMessage]) -> list[PushResult]:
        ...


def classify_status(status_code: int) -> PushFailure:
    if status_code in (404, 410):
        return PushFailure.UNREGISTERED
    if status_code == 429:
        return PushFailure.RATE_LIMITED
    return PushFailure.ERROR


def _normalize_private_key(raw_key: str) -> str:
    # .env may store PEM with literal \n or real newlines depending on quoting
    if "\\n" in raw_key:
        raw_key = raw_key.replace("\\n", "\n")
    # py_vapid accepts either a PEM string or a raw base64url key.
    # Extract raw key from PEM if present.
    if "BEGIN" in raw_key:
        lines = [l.strip() for l in raw_key.strip().splitlines()
                 if l.strip() and not l.strip().startswith("-----")]
        raw_key = "".join(lines)
    return raw_key


class WebPushGateway:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self.settings.VAPID_PRIVATE_KEY and self.settings.VAPID_PUBLIC_KEY)

    def send_batch(self, messages: list[PushMessage]) -> list[PushResult]:
        if not messages:
            return []
        if not self.configured:
            logger.warning("VAPID keys not configured, skipping %d push message(s)", len(messages))
            return self._fail_all(messages, "vapid keys not configured")

        # A bad server key is a configuration error: keep every endpoint
        try:
            vapid = Vapid.from_string(private_key=_normalize_private_key(self.settings.VAPID_PRIVATE_KEY))
        except (ValueError, TypeError) as e:
            logger.error("Invalid VAPID private key, skipping %d push message(s): %s", len(messages), e)
            return self._fail_all(messages, "invalid vapid private key")

        return [self._send_one(m, vapid) for m in messages]

    @staticmethod
    def _fail_all(messages: list[PushMessage], detail: str) -> list[PushResult]:
        return [PushResult(m.target.endpoint, False, PushFailure.ERROR, detail) for m in messages]

    def _send_one(self, message: PushMessage, vapid: Vapid) -> PushResult:
        target = message.target
        subscription_info = {
            "endpoint": target.endpoint,
            "keys": {
                "p256dh": target.p256dh,
                "auth": target.auth,
            },
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(message.payload, ensure_ascii=False),
                vapid_private_key=vapid,
                vapid_claims={"sub": self.settings.VAPID_MAILTO},
                ttl=self.settings.PUSH_TTL_SECONDS,
            )
            return PushResult(target.endpoint, True)
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else 0
            failure = classify_status(status_code)
            if failure is PushFailure.UNREGISTERED:
                logger.info("Push endpoint gone (HTTP %d): %s", status_code, target.endpoint[:60])
            else:
                logger.error("WebPush error (HTTP %d): %s", status_code, e)
            return PushResult(target.endpoint, False, failure, f"http {status_code}")
        except requests.RequestException as e:
            logger.error("WebPush network error for %s: %s", target.endpoint[:60], e)
            return PushResult(target.endpoint, False, PushFailure.ERROR, str(e))
        except (ValueError, TypeError) as e:
            # malformed p256dh/auth stored for this subscription, it can never be delivered
            logger.warning("Push subscription keys unusable, dropping %s: %s", target.endpoint[:60], e)
            return PushResult(target.endpoint, False, PushFailure.UNREGISTERED, str(e))
