"""
Payroll Module (``approvals_modules.payroll``).

Payroll runs routed through approval chains before they are processed.
"""

from approvals_modules.payroll.adapter import PayrollRunAdapter
from approvals_modules.payroll.orm import PayrollRunModel, PayrollRunStatus

__all__ = ["PayrollRunAdapter", "PayrollRunModel", "PayrollRunStatus"]
