"""
Push notification service.

deliver(db, user_id, payload) sends one payload to a user's devices and keeps
the stored endpoint list clean:

1. no endpoints            -> sent=0, nothing else happens
2. more than one endpoint  -> only the most recently registered one is kept
                              (the rest are deleted before sending)
3. send through the PushGateway, endpoint by endpoint
4. endpoints reported UNREGISTERED are deleted; rate limits and transient
   errors leave the endpoint in place for the next run

Partial failure is reported in DeliveryResult, never raised. Database errors
propagate to the caller.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.infrastructure.db.models import PushSubscription, User
from app.infrastructure.push.webpush import (
    PushFailure, PushGateway, PushMessage, PushTarget, WebPushGateway,
)

logger = logging.getLogger(__name__)

APP_NAME = "Clarity"


class UserNotFoundError(Exception):
    pass


class NoEndpointsError(Exception):
    pass


@dataclass
class DeliveryResult:
    sent: int = 0
    failed: int = 0
    removed: int = 0

    @property
    def success(self) -> bool:
        return self.sent > 0


def get_push_gateway() -> PushGateway:
    return WebPushGateway()


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

_PAYLOADS: dict[str, dict] = {
    "daily-reminder": {
        "title": f"📝 {APP_NAME} - Recordatorio",
        "default_body": "No olvides registrar tus gastos de hoy",
    },
    "weekly-reminder": {
        "title": f"📝 {APP_NAME} - Recordatorio Semanal",
        "default_body": f"¡No olvides registrar tus gastos de esta semana en {APP_NAME}!",
    },
    "income-reminder": {
        "title": f"💰 {APP_NAME} - Recordatorio de Ingresos",
        "default_body": (
            f"📊 ¡No olvides registrar tus ingresos de este mes en {APP_NAME}! "
            "Ve a Ajustes → General para configurarlos y hacer un seguimiento preciso de tus ahorros."
        ),
    },
    "test": {
        "title": f"🧪 {APP_NAME} - Notificación de Prueba",
        "default_body": (
            "¡Esta es una notificación de prueba! "
            "Si ves esto, las notificaciones push están funcionando correctamente."
        ),
    },
}


def build_payload(kind: str, user_id: int, message: str | None = None, period_key: str | None = None) -> dict:
    """
    Render a push payload.

    The tag is per user (and per month for income reminders) so a device
    replaces an older copy of the same reminder instead of stacking it.
    """
    variant = _PAYLOADS[kind]
    tag = "test-notification" if kind == "test" else f"{kind}-{user_id}"
    if period_key:
        tag = f"{tag}-{period_key}"
    return {
        "type": kind,
        "title": variant["title"],
        "body": message or variant["default_body"],
        "url": "/",
        "tag": tag,
        "persistent": True,
    }


# ---------------------------------------------------------------------------
# Endpoint lifecycle
# ---------------------------------------------------------------------------

def list_endpoints(db: Session, user_id: int) -> list[PushSubscription]:
    """User's endpoints, oldest first."""
    return (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id)
        .order_by(PushSubscription.id)
        .all()
    )


def register_endpoint(db: Session, user_id: int, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
    """Store a device subscription as the user's most recent endpoint."""
    db.query(PushSubscription).filter(
        PushSubscription.user_id == user_id,
        PushSubscription.endpoint == endpoint,
    ).delete()
    sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
    db.add(sub)
    db.commit()
    return sub


def remove_endpoint(db: Session, user_id: int, endpoint: str) -> int:
    deleted = db.query(PushSubscription).filter(
        PushSubscription.endpoint == endpoint,
        PushSubscription.user_id == user_id,
    ).delete()
    db.commit()
    return deleted


def _collapse_to_latest(db: Session, user_id: int, subs: list[PushSubscription]) -> list[PushSubscription]:
    if len(subs) <= 1:
        return subs
    logger.warning(
        "User %s has %d push endpoints, keeping only the most recent one", user_id, len(subs)
    )
    latest = subs[-1]
    db.query(PushSubscription).filter(
        PushSubscription.user_id == user_id,
        PushSubscription.id != latest.id,
    ).delete()
    db.commit()
    return [latest]


def _remove_unregistered(db: Session, subs: list[PushSubscription], results) -> int:
    dead_ids = [
        sub.id for sub, res in zip(subs, results)
        if not res.success and res.failure is PushFailure.UNREGISTERED
    ]
    if not dead_ids:
        return 0
    db.query(PushSubscription).filter(PushSubscription.id.in_(dead_ids)).delete()
    db.commit()
    logger.info("Removed %d invalid push endpoint(s)", len(dead_ids))
    return len(dead_ids)


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

def deliver(db: Session, user_id: int, payload: dict, gateway: PushGateway | None = None) -> DeliveryResult:
    subs = list_endpoints(db, user_id)
    if not subs:
        return DeliveryResult()

    subs = _collapse_to_latest(db, user_id, subs)

    gateway = gateway or get_push_gateway()
    messages = [
        PushMessage(PushTarget(s.endpoint, s.p256dh, s.auth), payload)
        for s in subs
    ]
    results = gateway.send_batch(messages)

    sent = sum(1 for r in results if r.success)
    removed = _remove_unregistered(db, subs, results)
    return DeliveryResult(sent=sent, failed=len(results) - sent, removed=removed)


def send_test_notification(db: Session, user_id: int, gateway: PushGateway | None = None) -> DeliveryResult:
    """
    Send the test payload to a user.

    Raises:
        UserNotFoundError: unknown user_id
        NoEndpointsError: user has no registered device
    """
    if db.get(User, user_id) is None:
        raise UserNotFoundError(f"user {user_id} not found")
    if not list_endpoints(db, user_id):
        raise NoEndpointsError(f"user {user_id} has no push endpoints")

    result = deliver(db, user_id, build_payload("test", user_id), gateway=gateway)
    logger.info("Test notification for user %s: %d sent, %d failed", user_id, result.sent, result.failed)
    return result
