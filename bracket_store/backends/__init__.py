"""
Snapshot backend implementations.

Available implementations:
- FirestoreSnapshotBackend: One Firestore document per bracket instance
- JSONFileSnapshotBackend: One local JSON file per bracket instance
"""

from ..config import StoreConfig
from ..interfaces import SnapshotBackend
from .firestore_backend import FirestoreSnapshotBackend
from .json_file_backend import JSONFileSnapshotBackend


def build_backend(config: StoreConfig) -> SnapshotBackend | None:
    """Create the backend a config asks for; None for a memory-only store."""
    if config.backend == "json":
        return JSONFileSnapshotBackend(config.data_dir)
    if config.backend == "firestore":
        return FirestoreSnapshotBackend.from_credentials(
            credentials_path=config.credentials_path,
            project_id=config.project_id,
            collection=config.collection,
            addressing=config.addressing,
        )
    return None


__all__ = ["FirestoreSnapshotBackend", "JSONFileSnapshotBackend", "build_backend"]
