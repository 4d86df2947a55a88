"""
Approvals Kernel - multi-level approval chain engine

Serves leave requests, purchase requests, asset requests and payroll runs
through one engine:
- Policy resolution with threshold-gated levels
- Ordered, persisted approval steps per entity
- Atomic claim-and-act step transitions
- Rejection cascade-skip and completion detection
- Best-effort notification fan-out
"""

__version__ = "0.1.0"
