"""Database layer - engine, base classes, and types."""

from payables_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from payables_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from payables_kernel.db.types import Money, Quantity, round_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Quantity",
    "round_money",
]
