"""Kernel services: write-side operations over approval chains."""

from approvals_kernel.services.adapters import AdapterRegistry, EntityAdapter
from approvals_kernel.services.authorization import ApprovalAuthorizer
from approvals_kernel.services.chain_initializer import ChainInitializer
from approvals_kernel.services.channels import (
    BackgroundRunner,
    InlineRunner,
    SqlInAppNotifier,
)
from approvals_kernel.services.entity_approval import EntityApprovalService
from approvals_kernel.services.notification_dispatcher import (
    ApprovalNotice,
    DispatcherSettings,
    NotificationDispatcher,
)
from approvals_kernel.services.policy_resolver import PolicyResolver
from approvals_kernel.services.step_processor import StepProcessor

__all__ = [
    "AdapterRegistry",
    "ApprovalAuthorizer",
    "ApprovalNotice",
    "BackgroundRunner",
    "ChainInitializer",
    "DispatcherSettings",
    "EntityAdapter",
    "EntityApprovalService",
    "InlineRunner",
    "NotificationDispatcher",
    "PolicyResolver",
    "SqlInAppNotifier",
    "StepProcessor",
]
