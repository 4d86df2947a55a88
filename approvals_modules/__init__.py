"""
Approval Modules.

Entity glue between business records and the approval kernel.  Each
module contains the entity's ORM model and the ``EntityAdapter`` that
lets the kernel read it and record the chain's final decision on it:

- Leave: leave requests, matched on duration
- Procurement: purchase requests, matched on amount
- Assets: asset requests, matched on estimated value
- Payroll: payroll runs, matched on gross total

The kernel never imports from here.
"""

from approvals_modules.assets import AssetRequestAdapter
from approvals_modules.base import AdapterRegistry
from approvals_modules.leave import LeaveRequestAdapter
from approvals_modules.payroll import PayrollRunAdapter
from approvals_modules.procurement import PurchaseRequestAdapter


def default_registry() -> AdapterRegistry:
    """A registry with the adapter of every built-in entity type."""
    return AdapterRegistry([
        LeaveRequestAdapter(),
        PurchaseRequestAdapter(),
        AssetRequestAdapter(),
        PayrollRunAdapter(),
    ])


__all__ = [
    "AssetRequestAdapter",
    "LeaveRequestAdapter",
    "PayrollRunAdapter",
    "PurchaseRequestAdapter",
    "default_registry",
]
