"""
Shared test doubles.

RecordingBackend keeps snapshots in a dict; FakeFirestoreClient mimics the
slice of the async Firestore client the Firestore backend touches.
"""

import asyncio
import itertools
from typing import Any

import pytest
from typing_extensions import override

from bracket_store.interfaces import SnapshotBackend
from bracket_store.models import SnapshotDocument


class RecordingBackend(SnapshotBackend):
    """In-process backend that records every save."""

    def __init__(self, delay: float = 0.0) -> None:
        self.documents: dict[str, SnapshotDocument] = {}
        self.saves: list[SnapshotDocument] = []
        self.loads: list[str] = []
        self.fail_saves = False
        self.delay = delay

    @override
    async def load(self, instance_id: str) -> SnapshotDocument | None:
        self.loads.append(instance_id)
        return self.documents.get(instance_id)

    @override
    async def save(self, document: SnapshotDocument) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_saves:
            raise ConnectionError("backend unavailable")
        self.saves.append(document)
        self.documents[document.instance_id] = document


class FakeDocumentSnapshot:
    def __init__(self, doc_id: str, data: dict[str, Any] | None) -> None:
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return dict(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, collection: "FakeCollection", doc_id: str) -> None:
        self._collection = collection
        self.id = doc_id

    async def get(self) -> FakeDocumentSnapshot:
        return FakeDocumentSnapshot(self.id, self._collection.documents.get(self.id))

    async def set(self, fields: dict[str, Any]) -> None:
        self._collection.client.writes.append((self._collection.name, self.id, dict(fields)))
        self._collection.documents[self.id] = dict(fields)


class FakeQuery:
    def __init__(self, collection: "FakeCollection", filters: list[tuple[str, str, Any]], limit: int | None = None) -> None:
        self._collection = collection
        self._filters = filters
        self._limit = limit

    def where(self, *, filter: Any) -> "FakeQuery":
        condition = (filter.field_path, filter.op_string, filter.value)
        return FakeQuery(self._collection, [*self._filters, condition], self._limit)

    def limit(self, count: int) -> "FakeQuery":
        return FakeQuery(self._collection, self._filters, count)

    async def get(self) -> list[FakeDocumentSnapshot]:
        matches = [
            FakeDocumentSnapshot(doc_id, data)
            for doc_id, data in self._collection.documents.items()
            if all(op == "==" and data.get(field) == value for field, op, value in self._filters)
        ]
        return matches[: self._limit] if self._limit is not None else matches


class FakeCollection(FakeQuery):
    def __init__(self, client: "FakeFirestoreClient", name: str) -> None:
        super().__init__(self, [])
        self.client = client
        self.name = name
        self.documents: dict[str, dict[str, Any]] = {}

    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self, doc_id)

    async def add(self, fields: dict[str, Any]) -> tuple[None, FakeDocumentReference]:
        ref = self.document(f"auto-{next(self.client.ids)}")
        await ref.set(fields)
        return None, ref


class FakeFirestoreClient:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}
        self.writes: list[tuple[str, str, dict[str, Any]]] = []
        self.ids = itertools.count(1)

    def collection(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def slow_backend() -> RecordingBackend:
    return RecordingBackend(delay=0.01)


@pytest.fixture
def firestore_client() -> FakeFirestoreClient:
    return FakeFirestoreClient()
