"""
Configuration for a bracket store session.
"""

from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigurationError

BACKENDS = ("memory", "json", "firestore")
ADDRESSING_MODES = ("query", "document")
WRITE_MODES = ("await", "background")

DEFAULT_COLLECTION = "bracketData"


@dataclass
class StoreConfig:
    """Configuration for a store session and its snapshot backend."""

    instance_id: str | None = None  # bracket whose state is mirrored; None keeps it in memory only
    backend: str = "memory"
    collection: str = DEFAULT_COLLECTION  # Firestore collection holding one document per instance
    addressing: str = "query"  # "query" by stageId field, or "document" keyed by instance_id
    write_mode: str = "await"  # "background" schedules snapshot writes without waiting
    data_dir: Path = Path("brackets")  # JSON backend only
    credentials_path: Path | None = None  # Firestore service-account file
    project_id: str | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.addressing not in ADDRESSING_MODES:
            raise ConfigurationError(
                f"addressing must be one of {ADDRESSING_MODES}, got {self.addressing!r}"
            )
        if self.write_mode not in WRITE_MODES:
            raise ConfigurationError(f"write_mode must be one of {WRITE_MODES}, got {self.write_mode!r}")
        if not self.collection:
            raise ConfigurationError("collection cannot be empty")
        if self.backend != "memory" and not self.instance_id:
            raise ConfigurationError(f"{self.backend} backend requires an instance_id")
        if self.credentials_path is not None and not Path(self.credentials_path).exists():
            raise ConfigurationError(f"Credentials file does not exist: {self.credentials_path}")
        self.data_dir = Path(self.data_dir)

    @property
    def persistent(self) -> bool:
        return self.backend != "memory" and bool(self.instance_id)

