"""
Core types for the bracket store.

Defines the fixed table set, the in-memory Database shape and the
SnapshotDocument that mirrors it remotely.
"""

import json
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ValidationError

Record = dict[str, Any]
Database = dict[str, list[Record]]

# Field names on the remote document
INSTANCE_FIELD = "stageId"
RAW_FIELD = "raw"


class Table(str, Enum):
    """The six tables a bracket is made of."""

    PARTICIPANT = "participant"
    STAGE = "stage"
    GROUP = "group"
    ROUND = "round"
    MATCH = "match"
    MATCH_GAME = "match_game"

    @classmethod
    def coerce(cls, table: "Table | str") -> "Table":
        """Resolve a table given either as enum member or plain name."""
        try:
            return cls(table)
        except ValueError:
            raise ValidationError(f"Unknown table: {table!r}") from None


TABLE_NAMES: tuple[str, ...] = tuple(table.value for table in Table)


def empty_database() -> Database:
    """Return a fresh state with every table empty."""
    return {name: [] for name in TABLE_NAMES}


@dataclass
class SnapshotDocument:
    """Remote document holding one bracket instance's whole state."""

    instance_id: str
    raw: str

    def __post_init__(self) -> None:
        """Validate document data."""
        if not self.instance_id:
            raise ValidationError("instance_id cannot be empty")

    @classmethod
    def from_database(cls, instance_id: str, data: Database) -> "SnapshotDocument":
        return cls(instance_id=instance_id, raw=json.dumps(data, ensure_ascii=False))

    def to_database(self) -> Database:
        """
        Decode the raw blob back into a Database.

        Tables missing from the blob come back empty; tables the store
        does not know about are kept as-is.

        Raises:
            ValidationError: If the blob is not a JSON object of lists
        """
        try:
            data = typing.cast(object, json.loads(self.raw))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Snapshot for {self.instance_id} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(f"Snapshot for {self.instance_id} must be a JSON object")

        database = empty_database()
        for name, records in typing.cast(dict[str, object], data).items():
            if not isinstance(records, list):
                raise ValidationError(f"Table {name!r} in snapshot must be a list")
            database[name] = typing.cast(list[Record], records)
        return database

    def to_fields(self) -> dict[str, str]:
        """Fields written to the remote document."""
        return {INSTANCE_FIELD: self.instance_id, RAW_FIELD: self.raw}

    @classmethod
    def from_fields(cls, fields: dict[str, Any], instance_id: str | None = None) -> "SnapshotDocument":
        """
        Build a document from stored fields.

        Args:
            fields: Raw document fields
            instance_id: Fallback identifier when the stored fields lack one
        """
        if RAW_FIELD not in fields:
            raise ValidationError(f"Missing required field: {RAW_FIELD}")
        return cls(
            instance_id=str(fields.get(INSTANCE_FIELD) or instance_id or ""),
            raw=str(fields[RAW_FIELD]),
        )
