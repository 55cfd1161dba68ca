"""
Per-user fan-out for background jobs.

Users share no mutable state, so a job can process them in parallel. Each
user runs in its own session on one worker thread; everything for one user
(definitions, endpoint cleanup) stays sequential.

A failure for one user is logged and counted in result.errors; it never stops
the others. Users not started before the deadline are counted in
result.deferred and picked up by the next run.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Protocol

from sqlalchemy.orm import Session, sessionmaker

from app.infrastructure.db.models import User

logger = logging.getLogger(__name__)


class JobResult(Protocol):
    users: int
    errors: int
    deferred: int

    def merge(self, other) -> None:
        ...


def list_user_ids(session_factory: sessionmaker) -> list[int]:
    """All user ids. Errors propagate: without the user list the whole run fails."""
    db = session_factory()
    try:
        return [row.id for row in db.query(User.id).order_by(User.id).all()]
    finally:
        db.close()


def run_for_each_user(
    session_factory: sessionmaker,
    user_ids: list[int],
    fn: Callable[[Session, int], JobResult],
    result: JobResult,
    *,
    job_name: str,
    max_workers: int = 1,
    timeout_seconds: float | None = None,
) -> JobResult:
    """Run fn(db, user_id) for every user and merge the per-user results into result."""
    deadline = time.monotonic() + timeout_seconds if timeout_seconds else None
    result.users += len(user_ids)

    def _run_one(user_id: int):
        if deadline is not None and time.monotonic() > deadline:
            return None
        db = session_factory()
        try:
            return fn(db, user_id)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix=job_name) as pool:
        futures = {pool.submit(_run_one, uid): uid for uid in user_ids}
        for future in as_completed(futures):
            user_id = futures[future]
            try:
                user_result = future.result()
            except Exception:
                logger.exception("%s failed for user_id=%s", job_name, user_id)
                result.errors += 1
                continue
            if user_result is None:
                result.deferred += 1
            else:
                result.merge(user_result)

    if result.deferred:
        logger.warning(
            "%s: time budget of %ss exceeded, %d user(s) deferred to the next run",
            job_name, timeout_seconds, result.deferred,
        )
    return result
