"""
Abstract base classes defining the interfaces for the bracket store.

CrudInterface is the contract a bracket manager drives; SnapshotBackend is
where the whole state gets mirrored.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from .models import Record, SnapshotDocument, Table


class CrudInterface(ABC):
    """Interface a bracket manager uses as its backing store."""

    @abstractmethod
    async def insert(
        self, table: Table | str, value: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> int | bool:
        """
        Insert one record or a batch of records.

        Returns:
            The new id for a single record (-1 on failure), or a success
            flag for a batch
        """
        pass

    @abstractmethod
    async def select(
        self, table: Table | str, arg: int | Mapping[str, Any] | None = None
    ) -> list[Record] | Record | None:
        """Get every record, the record at a position, or those matching a filter."""
        pass

    @abstractmethod
    async def update(
        self, table: Table | str, arg: int | Mapping[str, Any], value: Mapping[str, Any]
    ) -> bool:
        """Replace the record at a position or patch every record matching a filter."""
        pass

    @abstractmethod
    async def delete(self, table: Table | str, filter: Mapping[str, Any] | None = None) -> bool:
        """Empty a table or remove the records matching a filter."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Clear every table."""
        pass


class SnapshotBackend(ABC):
    """Interface for the remote mirror of a store's state."""

    @abstractmethod
    async def load(self, instance_id: str) -> SnapshotDocument | None:
        """Fetch the document tagged with instance_id, if any."""
        pass

    @abstractmethod
    async def save(self, document: SnapshotDocument) -> None:
        """
        Overwrite the instance's document with this snapshot.

        Creates the document when none exists yet.
        """
        pass
