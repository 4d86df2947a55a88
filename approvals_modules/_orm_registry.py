"""
Central ORM model registry (``approvals_modules._orm_registry``).

Responsibility
--------------
Imports every ORM model so that ``Base.metadata`` knows about all tables
before ``create_all()`` runs.  Scripts, entrypoints and test fixtures
call ``create_all_tables()`` instead of the kernel's ``create_tables()``
so module tables are never forgotten.

Architecture position
---------------------
**Modules layer** -- imports from the kernel and from every module.
"""


def import_all_orm_models() -> None:
    """Import kernel and module ORM models to register them with Base.metadata."""
    # fmt: off
    import approvals_kernel.models  # noqa: F401  # Kernel tables
    import approvals_modules.leave.orm  # noqa: F401
    import approvals_modules.procurement.orm  # noqa: F401
    import approvals_modules.assets.orm  # noqa: F401
    import approvals_modules.payroll.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Create kernel and module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from approvals_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
