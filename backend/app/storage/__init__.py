"""
storage — Alert and SOS repositories.

Sub-modules:
    base    — abstract AlertStore / SosStore interfaces
    memory  — in-process implementation (default, tests)
    sql     — SQLAlchemy async implementation (PostgreSQL / SQLite)
"""

from backend.app.storage.base import AlertStore, SosStore
from backend.app.storage.memory import InMemoryAlertStore, InMemorySosStore

__all__ = [
    "AlertStore",
    "SosStore",
    "InMemoryAlertStore",
    "InMemorySosStore",
]
