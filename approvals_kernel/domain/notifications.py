"""
Notification wording and payloads (``approvals_kernel.domain.notifications``).

Pure builders for the text of approval notifications and the payload
records handed to the delivery channels.  Nothing here sends anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from html import escape
from uuid import UUID

from approvals_kernel.domain.approval import (
    ChainOutcome,
    EntityType,
    NotificationContext,
)


class NotificationType(str, Enum):
    """In-app notification categories produced by the engine."""

    APPROVAL_PENDING = "APPROVAL_PENDING"
    APPROVAL_APPROVED = "APPROVAL_APPROVED"
    APPROVAL_REJECTED = "APPROVAL_REJECTED"


_ENTITY_LABELS: dict[EntityType, str] = {
    EntityType.LEAVE_REQUEST: "Leave Request",
    EntityType.PURCHASE_REQUEST: "Purchase Request",
    EntityType.ASSET_REQUEST: "Asset Request",
    EntityType.PAYROLL_RUN: "Payroll Run",
}

_ENTITY_TYPE_NAMES: dict[EntityType, str] = {
    EntityType.LEAVE_REQUEST: "LeaveRequest",
    EntityType.PURCHASE_REQUEST: "PurchaseRequest",
    EntityType.ASSET_REQUEST: "AssetRequest",
    EntityType.PAYROLL_RUN: "PayrollRun",
}

_ENTITY_PATHS: dict[EntityType, str] = {
    EntityType.LEAVE_REQUEST: "leave/requests",
    EntityType.PURCHASE_REQUEST: "purchase-requests",
    EntityType.ASSET_REQUEST: "asset-requests",
    EntityType.PAYROLL_RUN: "payroll/runs",
}


def entity_label(entity_type: EntityType) -> str:
    return _ENTITY_LABELS.get(entity_type, "Request")


def entity_type_name(entity_type: EntityType) -> str:
    return _ENTITY_TYPE_NAMES.get(entity_type, "Request")


def entity_link(
    entity_type: EntityType,
    entity_id: str,
    base_path: str = "/admin",
) -> str:
    """Admin-facing link to the entity, e.g. ``/admin/leave/requests/<id>``."""
    base = base_path.rstrip("/")
    path = _ENTITY_PATHS.get(entity_type)
    if path is None:
        return base or "/"
    return f"{base}/{path}/{entity_id}"


# =========================================================================
# Payload records
# =========================================================================


@dataclass(frozen=True)
class NotificationRequest:
    """One in-app notification row to create."""

    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None


@dataclass(frozen=True)
class EmailMessage:
    """One email to send.  ``to`` may hold several recipients."""

    to: tuple[str, ...]
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class MessagingTrigger:
    """Request to notify approvers of a role over an external messaging channel."""

    tenant_id: UUID
    entity_type: EntityType
    entity_id: str
    role: str
    requester_id: UUID


@dataclass(frozen=True)
class NotificationContent:
    """The wording of one notification across in-app and email channels."""

    type: NotificationType
    title: str
    message: str
    email_subject: str
    email_text: str


# =========================================================================
# Wording
# =========================================================================


def _subject_phrase(entity_type: EntityType, context: NotificationContext) -> str:
    label = entity_label(entity_type).lower()
    return f"{context.requester_name}'s {label} ({context.reference_number})"


def pending_approval_content(
    entity_type: EntityType,
    context: NotificationContext,
) -> NotificationContent:
    """Wording for approvers who now have a step to act on."""
    label = entity_label(entity_type)
    phrase = _subject_phrase(entity_type, context)
    if context.entity_description:
        message = f"{phrase} - {context.entity_description} - has been forwarded to you for approval."
        email_text = f"{phrase} - {context.entity_description} - requires your approval."
    else:
        message = f"{phrase} has been forwarded to you for approval."
        email_text = f"{phrase} requires your approval."
    return NotificationContent(
        type=NotificationType.APPROVAL_PENDING,
        title=f"{label} Pending Your Approval",
        message=message,
        email_subject=f"{label} Pending: {context.reference_number}",
        email_text=email_text,
    )


def completion_content(
    entity_type: EntityType,
    context: NotificationContext,
    outcome: ChainOutcome,
    reason: str | None = None,
) -> NotificationContent:
    """Wording for the requester once the chain is complete."""
    label = entity_label(entity_type)
    ref = context.reference_number
    if outcome is ChainOutcome.APPROVED:
        message = f"Your {label.lower()} ({ref}) has been approved."
        return NotificationContent(
            type=NotificationType.APPROVAL_APPROVED,
            title=f"{label} Approved",
            message=message,
            email_subject=f"{label} Approved: {ref}",
            email_text=message,
        )

    message = f"Your {label.lower()} ({ref}) has been rejected."
    if reason:
        message = f"{message} Reason: {reason}"
    return NotificationContent(
        type=NotificationType.APPROVAL_REJECTED,
        title=f"{label} Rejected",
        message=message,
        email_subject=f"{label} Rejected: {ref}",
        email_text=message,
    )


def render_email_html(text: str, organization_name: str, call_to_action: str | None = None) -> str:
    """Minimal branded HTML body for an approval email."""
    paragraphs = [f"<p>{escape(text)}</p>"]
    if call_to_action:
        paragraphs.append(f"<p>{escape(call_to_action)}</p>")
    body = "\n".join(paragraphs)
    return (
        "<html><body>"
        f"<h2>{escape(organization_name)}</h2>\n"
        f"{body}"
        "</body></html>"
    )
