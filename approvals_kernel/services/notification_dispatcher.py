"""
approvals_kernel.services.notification_dispatcher -- Tell people what changed.

Responsibility:
    Turns chain transitions into notifications: approvers of the next
    level when a chain is created or advances, the requester when it
    completes, and every tenant admin when an entity has no policy.

Architecture position:
    Kernel > Services.  Runs AFTER the transition has committed, on a
    NotificationRunner, with its own short read session.

Invariants enforced:
    - Best effort: every failure (audience lookup or any channel) is
      caught and logged as ``approval_notification_failed``.  Nothing is
      raised to the caller and no approval state is touched.
    - Channel isolation: in-app, email and messaging are attempted
      independently; one failing does not stop the others.
    - The requester is never part of an approver audience.

Audience policies:
    ADMIN_PROXY  all non-deleted tenant admins, falling back to owners,
                 whatever role the step requires.
    ROLE_ROUTED  every active member the role predicate accepts for the
                 step; falls back to ADMIN_PROXY when nobody holds the role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from approvals_kernel.db.engine import session_scope
from approvals_kernel.domain.approval import (
    ApprovalStep,
    ChainOutcome,
    EntityType,
    NotificationContext,
    StepStatus,
)
from approvals_kernel.domain.notifications import (
    EmailMessage,
    MessagingTrigger,
    NotificationContent,
    NotificationRequest,
    completion_content,
    entity_link,
    entity_type_name,
    pending_approval_content,
    render_email_html,
)
from approvals_kernel.domain.roles import (
    AudiencePolicy,
    MemberAuthority,
    MemberDirectory,
    member_satisfies_role,
)
from approvals_kernel.logging_config import get_logger
from approvals_kernel.selectors.member_selector import MemberSelector
from approvals_kernel.services.channels import (
    EmailSender,
    InAppNotifier,
    InlineRunner,
    LoggingEmailSender,
    LoggingMessagingNotifier,
    MessagingNotifier,
    NotificationRunner,
    SqlInAppNotifier,
)

logger = get_logger("services.notification_dispatcher")

_ACTION_PROMPT = "Please review and take action on this request."


@dataclass(frozen=True)
class DispatcherSettings:
    audience_policy: AudiencePolicy = AudiencePolicy.ADMIN_PROXY
    link_base_path: str = "/admin"
    organization_name: str = "Approvals"


@dataclass(frozen=True)
class ApprovalNotice:
    """Everything the dispatcher needs to word and address a notification."""

    tenant_id: UUID
    entity_type: EntityType
    entity_id: str
    requester_id: UUID
    context: NotificationContext


class NotificationDispatcher:
    """Fans chain transitions out to the notification channels."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        in_app: InAppNotifier | None = None,
        email: EmailSender | None = None,
        messaging: MessagingNotifier | None = None,
        runner: NotificationRunner | None = None,
        settings: DispatcherSettings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._in_app = in_app or SqlInAppNotifier(session_factory)
        self._email = email or LoggingEmailSender()
        self._messaging = messaging or LoggingMessagingNotifier()
        self._runner = runner or InlineRunner()
        self._settings = settings or DispatcherSettings()

    @property
    def runner(self) -> NotificationRunner:
        return self._runner

    # ------------------------------------------------------------------
    # Public API -- each call returns immediately once work is submitted
    # ------------------------------------------------------------------

    def notify_next_level(self, steps: Sequence[ApprovalStep], notice: ApprovalNotice) -> None:
        """Notify the approvers of the first PENDING step, if any."""
        pending = sorted(
            (s for s in steps if s.status is StepStatus.PENDING),
            key=lambda s: s.level_order,
        )
        if not pending:
            return
        self._submit(self._deliver_next_level, pending[0], notice)

    def notify_completion(
        self,
        outcome: ChainOutcome,
        notice: ApprovalNotice,
        reason: str | None = None,
    ) -> None:
        """Tell the requester the chain finished, with the rejection reason if any."""
        self._submit(self._deliver_completion, outcome, notice, reason)

    def notify_admins_fallback(self, notice: ApprovalNotice) -> None:
        """Notify every tenant admin of an entity that has no approval policy."""
        self._submit(self._deliver_admin_fallback, notice)

    # ------------------------------------------------------------------
    # Delivery (runs on the runner)
    # ------------------------------------------------------------------

    def _submit(self, fn, *args) -> None:
        try:
            self._runner.submit(fn, *args)
        except Exception:
            logger.exception(
                "approval_notification_failed",
                extra={"channel": "runner"},
            )

    def _deliver_next_level(self, step: ApprovalStep, notice: ApprovalNotice) -> None:
        try:
            with session_scope(self._session_factory) as session:
                directory = MemberSelector(session)
                requester = directory.get_authority(notice.requester_id)
                audience = self._approver_audience(
                    directory, notice.tenant_id, step.required_role, requester,
                )
        except Exception:
            self._log_failure(notice, "audience")
            return

        audience = [m for m in audience if m.member_id != notice.requester_id]
        if not audience:
            logger.info(
                "approval_notification_no_audience",
                extra={
                    "entity_type": notice.entity_type.value,
                    "entity_id": notice.entity_id,
                    "required_role": step.required_role,
                },
            )
            return

        content = pending_approval_content(notice.entity_type, notice.context)
        self._send_in_app(audience, content, notice)
        self._send_email(audience, content, notice, call_to_action=_ACTION_PROMPT)
        self._send_messaging(notice, step.required_role)

    def _deliver_completion(
        self,
        outcome: ChainOutcome,
        notice: ApprovalNotice,
        reason: str | None,
    ) -> None:
        try:
            with session_scope(self._session_factory) as session:
                requester = MemberSelector(session).get_authority(notice.requester_id)
        except Exception:
            self._log_failure(notice, "audience")
            return

        if requester is None or not requester.can_approve:
            logger.info(
                "approval_notification_no_audience",
                extra={
                    "entity_type": notice.entity_type.value,
                    "entity_id": notice.entity_id,
                    "outcome": outcome.value,
                },
            )
            return

        content = completion_content(notice.entity_type, notice.context, outcome, reason)
        self._send_in_app([requester], content, notice)
        self._send_email([requester], content, notice)

    def _deliver_admin_fallback(self, notice: ApprovalNotice) -> None:
        try:
            with session_scope(self._session_factory) as session:
                audience = self._admin_proxy(MemberSelector(session), notice.tenant_id)
        except Exception:
            self._log_failure(notice, "audience")
            return

        audience = [m for m in audience if m.member_id != notice.requester_id]
        if not audience:
            return

        content = pending_approval_content(notice.entity_type, notice.context)
        self._send_in_app(audience, content, notice)
        self._send_email(audience, content, notice, call_to_action=_ACTION_PROMPT)

    # ------------------------------------------------------------------
    # Audience
    # ------------------------------------------------------------------

    def _approver_audience(
        self,
        directory: MemberDirectory,
        tenant_id: UUID,
        required_role: str,
        requester: MemberAuthority | None,
    ) -> list[MemberAuthority]:
        if self._settings.audience_policy is AudiencePolicy.ROLE_ROUTED:
            holders = [
                m for m in directory.list_active_members(tenant_id)
                if member_satisfies_role(m, required_role, requester)
            ]
            if holders:
                return holders
        return self._admin_proxy(directory, tenant_id)

    @staticmethod
    def _admin_proxy(directory: MemberDirectory, tenant_id: UUID) -> list[MemberAuthority]:
        admins = directory.list_admins(tenant_id)
        if admins:
            return admins
        return directory.list_owners(tenant_id)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def _send_in_app(
        self,
        audience: Sequence[MemberAuthority],
        content: NotificationContent,
        notice: ApprovalNotice,
    ) -> None:
        link = entity_link(notice.entity_type, notice.entity_id, self._settings.link_base_path)
        requests = [
            NotificationRequest(
                recipient_id=member.member_id,
                type=content.type,
                title=content.title,
                message=content.message,
                link=link,
                entity_type=entity_type_name(notice.entity_type),
                entity_id=notice.entity_id,
            )
            for member in audience
        ]
        try:
            created = self._in_app.create_bulk(notice.tenant_id, requests)
        except Exception:
            self._log_failure(notice, "in_app")
            return
        logger.info(
            "approval_notification_sent",
            extra={
                "channel": "in_app",
                "notification_type": content.type.value,
                "recipients": created,
            },
        )

    def _send_email(
        self,
        audience: Sequence[MemberAuthority],
        content: NotificationContent,
        notice: ApprovalNotice,
        call_to_action: str | None = None,
    ) -> None:
        recipients = tuple(m.email for m in audience if m.email)
        if not recipients:
            return
        message = EmailMessage(
            to=recipients,
            subject=content.email_subject,
            html=render_email_html(
                content.email_text, self._settings.organization_name, call_to_action,
            ),
            text=content.email_text,
        )
        try:
            self._email.send(message)
        except Exception:
            self._log_failure(notice, "email")
            return
        logger.info(
            "approval_notification_sent",
            extra={
                "channel": "email",
                "notification_type": content.type.value,
                "recipients": len(recipients),
            },
        )

    def _send_messaging(self, notice: ApprovalNotice, role: str) -> None:
        trigger = MessagingTrigger(
            tenant_id=notice.tenant_id,
            entity_type=notice.entity_type,
            entity_id=notice.entity_id,
            role=role,
            requester_id=notice.requester_id,
        )
        try:
            self._messaging.notify_approvers(trigger)
        except Exception:
            self._log_failure(notice, "messaging")

    @staticmethod
    def _log_failure(notice: ApprovalNotice, channel: str) -> None:
        logger.exception(
            "approval_notification_failed",
            extra={
                "channel": channel,
                "entity_type": notice.entity_type.value,
                "entity_id": notice.entity_id,
            },
        )
