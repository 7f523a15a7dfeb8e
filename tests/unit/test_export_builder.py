"""
Unit tests for the chunked export builder
"""

import json
import math
import pytest
from core.exceptions import ExportError
from ingestion.loaders.export_builder import ExportBuilder, default_display_name
from ingestion.loaders.record_writer import RecordWriter, serialize_record


def seed_records(store, count: int, size: int = 200, prefix: str = "players"):
    writer = RecordWriter(store, prefix)
    for player_id in range(1, count + 1):
        record = {"player_id": player_id, "name": f"Player {player_id}", "notes": ""}
        padding = size - len(serialize_record(record))
        record["notes"] = "x" * max(0, padding)
        writer.write(player_id, record)


def chunk_bytes(store, result):
    return [store.read_blob(key) for key in result.chunk_keys]


class TestExportBuilder:

    def test_small_export_shapes(self, store):
        seed_records(store, 3)

        result = ExportBuilder(store, "players", chunk_target_bytes=10_000).export()

        assert result.chunk_keys == ["export/players/chunk-0001.json"]
        manifest = json.loads(store.read_blob("export/players/manifest.json"))
        assert manifest["total_chunks"] == 1
        assert manifest["total_records"] == 3
        assert manifest["chunk_target_bytes"] == 10_000
        assert manifest["chunks"][0] == {
            "file": "export/players/chunk-0001.json",
            "size": len(store.read_blob("export/players/chunk-0001.json")),
            "count": 3,
            "first_id": 1,
            "last_id": 3,
        }

        index = json.loads(store.read_blob("export/players/index.json"))
        assert index["total"] == 3
        assert index["items"][0] == {
            "id": 1,
            "name": "Player 1",
            "path": "players/1.json",
            "chunk": "export/players/chunk-0001.json",
        }

        pointer = json.loads(store.read_blob("players.json"))
        assert set(pointer) == {"generated_at", "total_records", "index_path", "manifest_path"}
        assert pointer["total_records"] == 3
        assert pointer["index_path"] == "export/players/index.json"

        chunk = json.loads(store.read_blob(result.chunk_keys[0]))
        assert [r["player_id"] for r in chunk] == [1, 2, 3]

    def test_ascending_natural_order(self, store):
        writer = RecordWriter(store, "players")
        for player_id in (10, 2, 33, 1):
            writer.write(player_id, {"player_id": player_id})

        ExportBuilder(store, "players", chunk_target_bytes=10_000).export()

        index = json.loads(store.read_blob("export/players/index.json"))
        assert [item["id"] for item in index["items"]] == [1, 2, 10, 33]

    def test_chunks_respect_budget(self, memory_store):
        seed_records(memory_store, 50, size=300)
        budget = 1_000

        result = ExportBuilder(memory_store, "players", chunk_target_bytes=budget).export()

        for chunk, descriptor in zip(chunk_bytes(memory_store, result), result.manifest.chunks):
            assert len(chunk) == descriptor.size
            assert descriptor.size <= budget
            assert len(json.loads(chunk)) == descriptor.count
        assert sum(c.count for c in result.manifest.chunks) == 50
        # contiguous, ascending ranges
        ranges = [(c.first_id, c.last_id) for c in result.manifest.chunks]
        assert ranges[0][0] == 1 and ranges[-1][1] == 50
        assert all(prev[1] + 1 == nxt[0] for prev, nxt in zip(ranges, ranges[1:]))

    def test_oversized_record_gets_its_own_chunk(self, memory_store):
        writer = RecordWriter(memory_store, "players")
        writer.write(1, {"player_id": 1})
        writer.write(2, {"player_id": 2, "notes": "y" * 5_000})
        writer.write(3, {"player_id": 3})

        result = ExportBuilder(memory_store, "players", chunk_target_bytes=1_000).export()

        counts = [(c.first_id, c.count) for c in result.manifest.chunks]
        assert counts == [(1, 1), (2, 1), (3, 1)]
        oversized = [c for c in result.manifest.chunks if c.size > 1_000]
        assert len(oversized) == 1 and oversized[0].count == 1

    def test_rerun_is_byte_identical(self, store):
        seed_records(store, 40, size=250)
        builder = ExportBuilder(store, "players", chunk_target_bytes=2_000)

        first = builder.export()
        first_chunks = chunk_bytes(store, first)
        first_manifest = first.manifest.model_dump(exclude={"generated_at"})
        second = builder.export()

        assert chunk_bytes(store, second) == first_chunks
        assert second.manifest.model_dump(exclude={"generated_at"}) == first_manifest
        assert second.index.items == first.index.items

    def test_stale_chunks_removed(self, store):
        seed_records(store, 30, size=250)

        many = ExportBuilder(store, "players", chunk_target_bytes=600).export()
        few = ExportBuilder(store, "players", chunk_target_bytes=100_000).export()

        assert len(many.chunk_keys) > 1
        assert few.chunk_keys == ["export/players/chunk-0001.json"]
        assert store.list_keys("export/players/chunk-") == few.chunk_keys
        assert set(few.removed_keys) == set(many.chunk_keys[1:])

    def test_root_pointer_stays_small(self, memory_store):
        seed_records(memory_store, 2_000, size=100)

        ExportBuilder(memory_store, "players", chunk_target_bytes=50_000).export()

        assert len(memory_store.read_blob("players.json")) < 1_024

    def test_ten_thousand_two_kb_records_in_five_mb_chunks(self, memory_store):
        store = memory_store
        seed_records(store, 10_000, size=2_048)
        budget = 5_000_000

        result = ExportBuilder(store, "players", chunk_target_bytes=budget).export()

        total = sum(len(blob) for key, blob in store.blobs.items() if key.startswith("players/"))
        expected = math.ceil(total / budget)
        assert expected <= result.manifest.total_chunks <= expected + 1
        assert all(c.size <= budget for c in result.manifest.chunks)
        assert result.manifest.total_records == 10_000

    def test_empty_store_exports_nothing(self, store):
        result = ExportBuilder(store, "games").export()

        assert result.chunk_keys == []
        assert json.loads(store.read_blob("games.json"))["total_records"] == 0

    def test_tiny_budget_rejected(self, store):
        with pytest.raises(ExportError):
            ExportBuilder(store, "players", chunk_target_bytes=2)


class TestDisplayName:

    def test_names(self):
        assert default_display_name({"name": "Juan Soto"}) == "Juan Soto"
        assert default_display_name({
            "home": {"abbreviation": "LIC"}, "away": {"name": "Aguilas"}
        }) == "Aguilas @ LIC"
        assert default_display_name({"home": {}, "away": {}}) is None
        assert default_display_name({}) is None
