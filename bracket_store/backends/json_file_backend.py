"""
JSON file snapshot backend.

Keeps one JSON document per bracket instance in a local directory, in the
same shape as the Firestore documents. Writes go through a temp file and
an atomic replace so a crash never leaves half a snapshot behind.
"""

import asyncio
import json
import os
import re
import typing
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import SnapshotBackend
from ..logging_config import get_logger
from ..models import SnapshotDocument

logger = get_logger("json_file_backend")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class JSONFileSnapshotBackend(SnapshotBackend):
    """
    File-based snapshot backend.

    Each instance lives in <data_dir>/<instance_id>.json holding the
    stageId and raw fields.
    """

    data_dir: Path

    def __init__(self, data_dir: Path):
        """
        Initialize JSON file backend.

        Args:
            data_dir: Directory holding one JSON file per bracket instance
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JSON snapshot backend initialized: data_dir={self.data_dir}")

    def path_for(self, instance_id: str) -> Path:
        """File holding the given instance's document."""
        return self.data_dir / f"{_UNSAFE_CHARS.sub('_', instance_id)}.json"

    @override
    async def load(self, instance_id: str) -> SnapshotDocument | None:
        return await asyncio.to_thread(self._read, instance_id)

    @override
    async def save(self, document: SnapshotDocument) -> None:
        await asyncio.to_thread(self._write, document)

    def _read(self, instance_id: str) -> SnapshotDocument | None:
        path = self.path_for(instance_id)
        if not path.exists():
            logger.debug(f"No snapshot file for {instance_id}")
            return None

        logger.info(f"Loading snapshot from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                fields = typing.cast(object, json.load(f))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Snapshot file {path} is not valid JSON: {e}") from e

        if not isinstance(fields, dict):
            raise ValidationError(f"Snapshot file {path} must contain a JSON object")
        return SnapshotDocument.from_fields(typing.cast(dict[str, Any], fields), instance_id)

    def _write(self, document: SnapshotDocument) -> None:
        path = self.path_for(document.instance_id)
        temp_path = path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document.to_fields(), f, ensure_ascii=False, indent=2)
            os.replace(temp_path, path)
        finally:
            # Only left behind when the dump or replace failed
            temp_path.unlink(missing_ok=True)

        logger.debug(f"Snapshot for {document.instance_id} written to {path}")
