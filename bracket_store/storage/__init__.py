"""
Store implementations.

Provides implementations of the CrudInterface a bracket manager drives.

Available implementations:
- SnapshotDatabase: In-memory tables mirrored as one snapshot document per bracket
"""

from .snapshot_database import SnapshotDatabase

__all__ = ["SnapshotDatabase"]
