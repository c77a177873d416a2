"""
Firestore snapshot backend.

Mirrors each bracket instance as one document in a Firestore collection,
holding the instance identifier (stageId) and the whole state as a JSON
blob (raw). Documents are either found by querying stageId or addressed
directly with the instance identifier as document id.
"""

from pathlib import Path
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.cloud.firestore_v1.base_query import FieldFilter
from typing_extensions import override

from ..config import DEFAULT_COLLECTION
from ..exceptions import ConfigurationError
from ..interfaces import SnapshotBackend
from ..logging_config import get_logger
from ..models import INSTANCE_FIELD, SnapshotDocument

logger = get_logger("firestore_backend")


class FirestoreSnapshotBackend(SnapshotBackend):
    """
    Firestore-backed snapshot storage.

    Works against an async Firestore client (firestore_async.client() or
    google.cloud.firestore.AsyncClient). Every save replaces the whole
    document.
    """

    def __init__(
        self,
        client: Any,
        collection: str = DEFAULT_COLLECTION,
        addressing: str = "query",
    ):
        """
        Initialize Firestore backend.

        Args:
            client: Async Firestore client
            collection: Collection holding one document per bracket instance
            addressing: "query" to find documents by their stageId field,
                        "document" to use the instance id as document id
        """
        if addressing not in ("query", "document"):
            raise ConfigurationError(f"Unknown addressing mode: {addressing!r}")

        self.client = client
        self.collection_name = collection
        self.addressing = addressing

        logger.info(
            f"Firestore snapshot backend initialized: collection={collection}, addressing={addressing}"
        )

    @classmethod
    def from_credentials(
        cls,
        credentials_path: Path | None = None,
        project_id: str | None = None,
        collection: str = DEFAULT_COLLECTION,
        addressing: str = "query",
        app_name: str = "bracket_store",
    ) -> "FirestoreSnapshotBackend":
        """
        Build a backend from a service-account file or application-default credentials.

        The firebase app is initialized once per app_name and reused after.
        """
        try:
            app = firebase_admin.get_app(app_name)
        except ValueError:
            if credentials_path is not None:
                cred = credentials.Certificate(str(credentials_path))
            else:
                cred = credentials.ApplicationDefault()
            options = {"projectId": project_id} if project_id else None
            app = firebase_admin.initialize_app(cred, options, name=app_name)
            logger.info(f"Initialized firebase app {app_name}")

        return cls(firestore_async.client(app), collection=collection, addressing=addressing)

    @property
    def collection(self) -> Any:
        return self.client.collection(self.collection_name)

    async def _find(self, instance_id: str) -> Any | None:
        """Return the snapshot of the instance's document, or None."""
        if self.addressing == "document":
            snapshot = await self.collection.document(instance_id).get()
            return snapshot if snapshot.exists else None

        query = self.collection.where(filter=FieldFilter(INSTANCE_FIELD, "==", instance_id)).limit(1)
        for snapshot in await query.get():
            return snapshot
        return None

    @override
    async def load(self, instance_id: str) -> SnapshotDocument | None:
        snapshot = await self._find(instance_id)
        if snapshot is None:
            logger.debug(f"No Firestore document for {instance_id}")
            return None

        logger.info(f"Loaded Firestore document {snapshot.id} for {instance_id}")
        return SnapshotDocument.from_fields(snapshot.to_dict() or {}, instance_id)

    @override
    async def save(self, document: SnapshotDocument) -> None:
        fields = document.to_fields()

        if self.addressing == "document":
            await self.collection.document(document.instance_id).set(fields)
            logger.debug(f"Wrote Firestore document {document.instance_id}")
            return

        existing = await self._find(document.instance_id)
        if existing is None:
            _, ref = await self.collection.add(fields)
            logger.info(f"Created Firestore document {ref.id} for {document.instance_id}")
        else:
            await self.collection.document(existing.id).set(fields)
            logger.debug(f"Wrote Firestore document {existing.id} for {document.instance_id}")
