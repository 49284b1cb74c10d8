"""Store package - SQLite persistence for families and believers."""

from church_bms.store.database import EntityStore
from church_bms.store.families import FamilyStore
from church_bms.store.believers import BelieverStore

__all__ = [
    "EntityStore",
    "FamilyStore",
    "BelieverStore",
]
