"""
Assets Module (``approvals_modules.assets``).

Asset requests routed through approval chains by estimated value.
"""

from approvals_modules.assets.adapter import AssetRequestAdapter
from approvals_modules.assets.orm import AssetRequestModel, AssetRequestStatus

__all__ = ["AssetRequestAdapter", "AssetRequestModel", "AssetRequestStatus"]
