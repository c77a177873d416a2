"""
In-memory relational store with a snapshot mirror.

Holds the six bracket tables as ordered lists of records, answers the
CRUD calls a bracket manager makes, and after every mutation writes the
whole state as one JSON blob to the configured snapshot backend.
"""

import asyncio
import copy
import json
from collections.abc import Mapping, Sequence
from typing import Any

from typing_extensions import override

from ..backends import build_backend
from ..config import StoreConfig
from ..exceptions import PersistenceError, ValidationError
from ..filters import make_filter, merge_patch
from ..interfaces import CrudInterface, SnapshotBackend
from ..logging_config import get_logger
from ..models import Database, Record, SnapshotDocument, Table, empty_database

# Module-level logger
logger = get_logger("snapshot_database")


def _is_index(arg: object) -> bool:
    return isinstance(arg, int) and not isinstance(arg, bool)


def _next_id(records: list[Record]) -> int:
    """One past the highest id currently in the table, 0 when there is none."""
    ids = [
        record["id"]
        for record in records
        if isinstance(record, dict) and _is_index(record.get("id"))
    ]
    return max(ids) + 1 if ids else 0


class SnapshotDatabase(CrudInterface):
    """
    Relational snapshot store.

    Mutations are applied to memory synchronously, before the coroutine
    yields, so ids handed out on one event loop never collide. The state
    is then mirrored to the backend: awaited in "await" mode, scheduled as
    a task in "background" mode. Remote failures never change a CRUD
    result; they are logged, kept in last_persist_error and raised by
    flush(). A mutation whose resulting state cannot be serialized to
    JSON is refused and leaves the tables as they were.

    Numeric selectors address list positions, not id values. The two
    agree until records are deleted.
    """

    data: Database

    def __init__(
        self,
        backend: SnapshotBackend | None = None,
        instance_id: str | None = None,
        write_mode: str = "await",
    ):
        """
        Initialize an empty store.

        Args:
            backend: Where snapshots are mirrored; None keeps the store in memory
            instance_id: Bracket whose document is read and written; None
                         disables persistence even with a backend
            write_mode: "await" or "background"
        """
        if write_mode not in ("await", "background"):
            raise ValueError(f"write_mode must be 'await' or 'background', got {write_mode!r}")

        self.data = empty_database()
        self.backend = backend
        self.instance_id = instance_id
        self.write_mode = write_mode

        self.last_persist_error: Exception | None = None
        self._write_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

        if not self.persistent:
            logger.info("Snapshot database running in memory only")

    @classmethod
    async def open(
        cls,
        backend: SnapshotBackend | None = None,
        instance_id: str | None = None,
        write_mode: str = "await",
    ) -> "SnapshotDatabase":
        """Create a store and hydrate it from its backend."""
        store = cls(backend, instance_id, write_mode)
        _ = await store.hydrate()
        return store

    @classmethod
    async def from_config(cls, config: StoreConfig) -> "SnapshotDatabase":
        """Create and hydrate a store wired the way config describes."""
        return await cls.open(build_backend(config), config.instance_id, config.write_mode)

    @property
    def persistent(self) -> bool:
        return self.backend is not None and bool(self.instance_id)

    async def hydrate(self) -> bool:
        """
        Load this instance's snapshot into memory.

        When the backend has no document for the instance yet, an empty one
        is created so the instance is queryable from then on.

        Returns:
            True if existing state was loaded
        """
        if not self.persistent:
            return False
        assert self.backend is not None and self.instance_id is not None

        document = await self.backend.load(self.instance_id)
        if document is None:
            logger.info(f"No snapshot for {self.instance_id}, creating an empty one")
            await self._write(SnapshotDocument.from_database(self.instance_id, self.data))
            return False

        self.data = document.to_database()
        counts = ", ".join(f"{name}={len(records)}" for name, records in self.data.items())
        logger.info(f"Hydrated {self.instance_id}: {counts}")
        return True

    def set_data(self, data: Database) -> None:
        """Replace the whole in-memory state (bulk import). Nothing is validated or persisted."""
        self.data = data

    def get_data(self) -> Database:
        """Deep copy of the whole in-memory state."""
        return copy.deepcopy(self.data)

    @override
    def reset(self) -> None:
        """Clear every table in memory; the remote snapshot is left alone."""
        self.data = empty_database()
        logger.debug("Store reset")

    def _table(self, table: Table | str) -> list[Record]:
        name = Table.coerce(table).value
        if name not in self.data:
            self.data[name] = []
        return self.data[name]

    @override
    async def insert(
        self, table: Table | str, value: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> int | bool:
        """
        Insert one record or a batch of records.

        Args:
            table: Where to insert
            value: A record without id, or a list of them

        Returns:
            The new id for a single record (-1 on failure), True for a
            batch (False on failure)
        """
        is_batch = isinstance(value, (list, tuple))
        try:
            name = Table.coerce(table).value
            records = self._table(name)
            next_id = _next_id(records)

            values = list(value) if is_batch else [value]
            new_records: list[Record] = []
            for offset, item in enumerate(values):
                if not isinstance(item, Mapping):
                    raise ValidationError(f"Cannot insert {type(item).__name__} into {table}")
                fields = {key: field for key, field in copy.deepcopy(dict(item)).items() if key != "id"}
                new_records.append({"id": next_id + offset, **fields})

            candidate = records + new_records
            document = self._encode(name, candidate)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Insert into {table} failed: {e}")
            return False if is_batch else -1

        self.data[name] = candidate
        logger.debug(f"Inserted {len(new_records)} record(s) into {table} starting at id {next_id}")

        await self._persist(document)
        return True if is_batch else next_id

    @override
    async def select(
        self, table: Table | str, arg: int | Mapping[str, Any] | None = None
    ) -> list[Record] | Record | None:
        """
        Read records.

        Args:
            table: Where to read from
            arg: None for every record, an int for the record at that list
                 position, or a mapping of field -> value every returned
                 record must match exactly

        Returns:
            Deep copies of the records, or None when the lookup fails
        """
        try:
            records = self._table(table)

            if arg is None:
                return [copy.deepcopy(record) for record in records]

            if _is_index(arg):
                index = int(arg)  # type: ignore[arg-type]
                if not 0 <= index < len(records):
                    return None
                return copy.deepcopy(records[index])

            if isinstance(arg, Mapping):
                predicate = make_filter(arg)
                return [copy.deepcopy(record) for record in records if predicate(record)]

            raise ValidationError(f"Unsupported selector: {arg!r}")
        except Exception as e:
            logger.warning(f"Select from {table} failed: {e}")
            return None

    @override
    async def update(
        self, table: Table | str, arg: int | Mapping[str, Any], value: Mapping[str, Any]
    ) -> bool:
        """
        Update records.

        With an int, the record at that list position is replaced wholesale.
        With a filter, every matching record is patched in place: mapping
        fields are merged one level deep, anything else is overwritten.

        Returns:
            True on success, False when the update could not be applied
        """
        try:
            name = Table.coerce(table).value
            candidate = list(self._table(name))
            if not isinstance(value, Mapping):
                raise ValidationError(f"Update value must be a mapping, got {type(value).__name__}")

            if _is_index(arg):
                index = int(arg)  # type: ignore[arg-type]
                if not 0 <= index < len(candidate):
                    raise ValidationError(f"No record at position {index} in {table}")
                candidate[index] = copy.deepcopy(dict(value))
                changed = 1
            elif isinstance(arg, Mapping):
                predicate = make_filter(arg)
                positions = [i for i, record in enumerate(candidate) if predicate(record)]
                # Patch copies so a failed encode leaves the stored records untouched
                for i in positions:
                    candidate[i] = merge_patch(copy.deepcopy(candidate[i]), value)
                changed = len(positions)
            else:
                raise ValidationError(f"Unsupported selector: {arg!r}")

            document = self._encode(name, candidate)
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Update of {table} failed: {e}")
            return False

        self.data[name] = candidate
        logger.debug(f"Updated {changed} record(s) in {name}")

        await self._persist(document)
        return True

    @override
    async def delete(self, table: Table | str, filter: Mapping[str, Any] | None = None) -> bool:
        """
        Delete records.

        Without a filter the whole table is emptied; with one, only the
        matching records are removed. Both push a snapshot.
        """
        try:
            name = Table.coerce(table).value
            before = self.data.get(name, [])
            if filter is None:
                candidate: list[Record] = []
            else:
                predicate = make_filter(filter)
                candidate = [record for record in before if not predicate(record)]
            document = self._encode(name, candidate)
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Delete from {table} failed: {e}")
            return False

        self.data[name] = candidate
        logger.debug(f"Deleted {len(before) - len(candidate)} record(s) from {name}")

        await self._persist(document)
        return True

    async def flush(self, force: bool = False) -> None:
        """
        Wait for outstanding snapshot writes.

        Args:
            force: Also write the current state once more, e.g. after
                   set_data() or reset()

        Raises:
            PersistenceError: If the last snapshot write failed
        """
        # Writes scheduled while waiting join the set, so drain until empty
        while self._pending:
            _ = await asyncio.gather(*list(self._pending))

        if force and self.persistent:
            assert self.instance_id is not None
            try:
                document = SnapshotDocument.from_database(self.instance_id, self.data)
            except (TypeError, ValueError) as e:
                raise PersistenceError(f"State of {self.instance_id} cannot be serialized: {e}") from e
            await self._write(document)

        if self.last_persist_error is not None:
            raise PersistenceError(
                f"Snapshot write for {self.instance_id} failed: {self.last_persist_error}"
            ) from self.last_persist_error

    def _encode(self, name: str, candidate: list[Record]) -> SnapshotDocument | None:
        """
        Serialize the state as it would be with table name set to candidate.

        Runs before a mutation is committed, in memory-only mode too, so a
        record that cannot be snapshotted is refused the same way everywhere.

        Raises:
            TypeError, ValueError: If the candidate state is not JSON serializable
        """
        state = {**self.data, name: candidate}
        if not self.persistent:
            _ = json.dumps(state)
            return None
        assert self.instance_id is not None
        return SnapshotDocument.from_database(self.instance_id, state)

    async def _persist(self, document: SnapshotDocument | None) -> None:
        """Mirror an already encoded state according to write_mode."""
        if document is None:
            return

        if self.write_mode == "await":
            await self._write(document)
            return

        task = asyncio.get_running_loop().create_task(self._write(document))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, document: SnapshotDocument) -> None:
        assert self.backend is not None
        async with self._write_lock:
            try:
                await self.backend.save(document)
            except Exception as e:
                logger.error(f"Snapshot write for {document.instance_id} failed: {e}")
                self.last_persist_error = e
                return

        self.last_persist_error = None
        logger.debug(f"Snapshot for {document.instance_id} written ({len(document.raw)} bytes)")
