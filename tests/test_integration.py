"""
Integration tests for bracket store.

End-to-end tests driving the store the way a bracket manager does, with
real backends (JSON files) and the Firestore backend on a fake client.
"""

import json
import tempfile
from pathlib import Path

import pytest

from bracket_store.backends.firestore_backend import FirestoreSnapshotBackend
from bracket_store.backends.json_file_backend import JSONFileSnapshotBackend
from bracket_store.config import StoreConfig
from bracket_store.models import Table
from bracket_store.storage.snapshot_database import SnapshotDatabase


async def create_single_elimination(store: SnapshotDatabase) -> None:
    """Lay out a four-player single elimination bracket."""
    _ = await store.insert(Table.PARTICIPANT, [
        {"tournament_id": 0, "name": f"Team {n}"} for n in range(1, 5)
    ])
    stage_id = await store.insert(Table.STAGE, {
        "tournament_id": 0, "name": "Playoffs", "type": "single_elimination", "number": 1,
    })
    group_id = await store.insert(Table.GROUP, {"stage_id": stage_id, "number": 1})
    semis = await store.insert(Table.ROUND, {"stage_id": stage_id, "group_id": group_id, "number": 1})
    final = await store.insert(Table.ROUND, {"stage_id": stage_id, "group_id": group_id, "number": 2})
    _ = await store.insert(Table.MATCH, [
        {"stage_id": stage_id, "group_id": group_id, "round_id": semis, "number": 1, "status": 2,
         "opponent1": {"id": 0}, "opponent2": {"id": 3}},
        {"stage_id": stage_id, "group_id": group_id, "round_id": semis, "number": 2, "status": 2,
         "opponent1": {"id": 1}, "opponent2": {"id": 2}},
        {"stage_id": stage_id, "group_id": group_id, "round_id": final, "number": 1, "status": 0,
         "opponent1": None, "opponent2": None},
    ])


async def play_semifinal(store: SnapshotDatabase) -> None:
    """Report the first semifinal and advance the winner."""
    _ = await store.update(Table.MATCH, {"id": 0}, {
        "status": 4,
        "opponent1": {"score": 3, "result": "win"},
        "opponent2": {"score": 1, "result": "loss"},
    })
    _ = await store.update(Table.MATCH, {"id": 2}, {"opponent1": {"id": 0}})

class TestIntegration:
    """Integration tests using real components."""

    @pytest.mark.asyncio
    async def test_bracket_survives_reopen_with_json_backend(self) -> None:
        """State written by one session should be read back by the next."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            config = StoreConfig(instance_id="cup-2026", backend="json", data_dir=Path(temp_dir))
            first = await SnapshotDatabase.from_config(config)
            await create_single_elimination(first)
            await play_semifinal(first)

            # Act
            second = await SnapshotDatabase.from_config(config)
            matches = await second.select(Table.MATCH, {"round_id": 0})
            final = await second.select(Table.MATCH, {"round_id": 1})
            next_game = await second.insert(Table.MATCH_GAME, {"parent_id": 2, "number": 1})

            # Assert
            assert isinstance(matches, list) and len(matches) == 2
            assert matches[0]["opponent1"] == {"id": 0, "score": 3, "result": "win"}
            assert matches[0]["status"] == 4
            assert matches[1]["opponent1"] == {"id": 1}
            assert final == [{
                "id": 2, "stage_id": 0, "group_id": 0, "round_id": 1, "number": 1, "status": 0,
                "opponent1": {"id": 0}, "opponent2": None,
            }]
            assert next_game == 0

    @pytest.mark.asyncio
    async def test_instances_do_not_share_state(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            backend = JSONFileSnapshotBackend(Path(temp_dir))
            first = await SnapshotDatabase.open(backend, "cup-a")
            second = await SnapshotDatabase.open(backend, "cup-b")

            _ = await first.insert(Table.PARTICIPANT, {"name": "Only in A"})
            reopened = await SnapshotDatabase.open(backend, "cup-b")

            assert await second.select(Table.PARTICIPANT) == []
            assert await reopened.select(Table.PARTICIPANT) == []

    @pytest.mark.asyncio
    async def test_firestore_backend_round_trip(self, firestore_client) -> None:
        """The store should find its document again by stageId after a restart."""
        store = await SnapshotDatabase.open(FirestoreSnapshotBackend(firestore_client), "stage-42")
        await create_single_elimination(store)
        await play_semifinal(store)

        restarted = await SnapshotDatabase.open(FirestoreSnapshotBackend(firestore_client), "stage-42")
        first_match = await restarted.select(Table.MATCH, 0)

        documents = firestore_client.collection("bracketData").documents
        assert len(documents) == 1
        stored = next(iter(documents.values()))
        assert stored["stageId"] == "stage-42"
        assert len(json.loads(stored["raw"])["match"]) == 3
        assert first_match["opponent2"] == {"id": 3, "score": 1, "result": "loss"}  # type: ignore[index]
