"""
Bracket Store - Tournament bracket storage with a Firestore snapshot mirror

Keeps a bracket's participants, stages, groups, rounds, matches and match
games in memory behind the CRUD interface a bracket manager expects, and
mirrors the whole state to one document per bracket instance.
"""

from .models import Database, Record, SnapshotDocument, Table, empty_database
from .interfaces import CrudInterface, SnapshotBackend
from .config import StoreConfig
from .exceptions import ConfigurationError, PersistenceError, ValidationError
from .storage.snapshot_database import SnapshotDatabase

__version__ = "0.1.0"
__all__ = [
    "Database",
    "Record",
    "SnapshotDocument",
    "Table",
    "empty_database",
    "CrudInterface",
    "SnapshotBackend",
    "StoreConfig",
    "ConfigurationError",
    "PersistenceError",
    "ValidationError",
    "SnapshotDatabase",
]
