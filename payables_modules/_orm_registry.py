"""
Module ORM Registry (``payables_modules._orm_registry``).

Responsibility
--------------
Ensure kernel models and every module ORM model are imported so that
``Base.metadata`` contains all table definitions (and every string foreign
key resolves) before tables are created or dropped.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily by
``payables_kernel.db.engine.create_tables``.
"""


def import_all_orm_models() -> None:
    """Import kernel models, then module ORM modules.  Idempotent."""
    import payables_kernel.models  # noqa: F401
    import payables_modules.purchasing.orm  # noqa: F401
