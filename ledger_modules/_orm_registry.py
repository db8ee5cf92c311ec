"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definition before
``ledger_kernel.db.engine.create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel engine
module (inside ``create_tables``) so the kernel carries no import-time
dependency on modules.
"""


def import_all_orm_models() -> None:
    """Import every ``ledger_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import ledger_modules.budget.orm  # noqa: F401
    import ledger_modules.gst.orm  # noqa: F401
    import ledger_modules.journal.orm  # noqa: F401
    # fmt: on
