"""
Procurement Module (``approvals_modules.procurement``).

Purchase requests routed through approval chains by amount.
"""

from approvals_modules.procurement.adapter import PurchaseRequestAdapter
from approvals_modules.procurement.orm import PurchaseRequestModel, PurchaseRequestStatus

__all__ = ["PurchaseRequestAdapter", "PurchaseRequestModel", "PurchaseRequestStatus"]
