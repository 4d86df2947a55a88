"""
approvals_kernel.services.channels -- Notification delivery seams.

Contract:
    Declares the three delivery channels the dispatcher talks to (in-app,
    email, external messaging) and the runners that execute delivery work
    off the request path.

    Only the in-app channel has a concrete implementation here, because
    its storage is part of this schema.  Email and messaging transports
    are provided by the host application; the logging implementations
    below stand in for them until one is wired.

Invariants enforced:
    - Runners never propagate a job's exception to the submitter.
    - ``BackgroundRunner.drain`` waits at most ``timeout`` seconds.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Protocol, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from approvals_kernel.db.engine import session_scope
from approvals_kernel.domain.notifications import (
    EmailMessage,
    MessagingTrigger,
    NotificationRequest,
)
from approvals_kernel.logging_config import get_logger
from approvals_kernel.models.notification import NotificationModel

logger = get_logger("services.channels")


# -------------------------------------------------------------------------
# Channel protocols
# -------------------------------------------------------------------------


class InAppNotifier(Protocol):
    def create_bulk(self, tenant_id: UUID, requests: Sequence[NotificationRequest]) -> int:
        """Create all notifications in one write.  Returns the number created."""
        ...


class EmailSender(Protocol):
    def send(self, message: EmailMessage) -> None:
        ...


class MessagingNotifier(Protocol):
    def notify_approvers(self, trigger: MessagingTrigger) -> None:
        """Notify the holders of ``trigger.role`` over the external channel."""
        ...


# -------------------------------------------------------------------------
# Implementations
# -------------------------------------------------------------------------


class SqlInAppNotifier:
    """Writes in-app notifications in their own short transaction."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create_bulk(self, tenant_id: UUID, requests: Sequence[NotificationRequest]) -> int:
        if not requests:
            return 0
        with session_scope(self._session_factory) as session:
            session.add_all([
                NotificationModel(
                    tenant_id=tenant_id,
                    recipient_id=req.recipient_id,
                    type=req.type.value,
                    title=req.title,
                    message=req.message,
                    link=req.link,
                    entity_type=req.entity_type,
                    entity_id=req.entity_id,
                )
                for req in requests
            ])
        return len(requests)


class LoggingEmailSender:
    """Email transport placeholder that records each send in the log."""

    def send(self, message: EmailMessage) -> None:
        logger.info(
            "email_dispatched",
            extra={"recipients": len(message.to), "subject": message.subject},
        )


class LoggingMessagingNotifier:
    """Messaging transport placeholder that records each trigger in the log."""

    def notify_approvers(self, trigger: MessagingTrigger) -> None:
        logger.info(
            "messaging_dispatched",
            extra={
                "entity_type": trigger.entity_type.value,
                "entity_id": trigger.entity_id,
                "role": trigger.role,
            },
        )


# -------------------------------------------------------------------------
# Runners
# -------------------------------------------------------------------------


class NotificationRunner(Protocol):
    def submit(self, fn: Callable[..., None], *args, **kwargs) -> None:
        ...

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for submitted work.  True when everything finished in time."""
        ...


class InlineRunner:
    """Runs each job immediately on the calling thread."""

    def submit(self, fn: Callable[..., None], *args, **kwargs) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("notification_job_failed")

    def drain(self, timeout: float | None = None) -> bool:
        return True


class BackgroundRunner:
    """Runs jobs on a small thread pool so callers never wait on delivery.

    Contract:
        - ``submit`` returns immediately.
        - ``drain(timeout)`` blocks for at most ``timeout`` seconds.
        - ``shutdown`` stops accepting work; it is safe to call twice.
    """

    def __init__(self, max_workers: int = 4, default_timeout: float = 10.0) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="approval-notify",
        )
        self._default_timeout = default_timeout
        self._futures: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., None], *args, **kwargs) -> None:
        future = self._executor.submit(self._run, fn, *args, **kwargs)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)

    def drain(self, timeout: float | None = None) -> bool:
        with self._lock:
            pending = set(self._futures)
        if not pending:
            return True
        done, not_done = wait(
            pending,
            timeout=self._default_timeout if timeout is None else timeout,
        )
        if not_done:
            logger.warning(
                "notification_drain_timeout",
                extra={"unfinished": len(not_done), "finished": len(done)},
            )
        return not not_done

    def shutdown(self, wait_for_jobs: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_jobs)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    @staticmethod
    def _run(fn: Callable[..., None], *args, **kwargs) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("notification_job_failed")
