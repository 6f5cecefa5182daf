"""
Unit tests for key-value persistence and the Progress Store.
"""

import json

import pytest

from mathpractice.errors import PersistenceError
from mathpractice.utils.persistence import InMemoryStore, JsonFileStore, StoreKey
from mathpractice.utils.progress import (
    InMemoryProgressStore,
    JsonProgressStore,
    accuracy_summary,
    accuracy_trend,
    build_module_progress,
)


def _entry(score, total=10, operation="addition", date="2024-05-01T10:00:00+00:00", time_spent=60):
    return {
        "operationId": operation,
        "date": date,
        "score": score,
        "totalProblems": total,
        "timeSpent": time_spent,
        "difficulty": "beginner",
    }


class TestStoreKey:
    def test_parts_are_filesystem_safe(self):
        key = StoreKey("child 1/../x", "addition", "level_state")
        learner, module, kind = key.parts()
        assert "/" not in learner
        assert " " not in learner
        assert (module, kind) == ("addition", "level_state")

    def test_str(self):
        assert str(StoreKey("a", "b", "c")) == "a/b/c"


class TestInMemoryStore:
    def test_round_trip_copies(self):
        store = InMemoryStore()
        key = StoreKey("child-1", "addition", "level_state")
        payload = {"nested": {"value": 1}}
        store.save(key, payload)
        payload["nested"]["value"] = 2

        loaded = store.load(key)
        assert loaded == {"nested": {"value": 1}}
        loaded["nested"]["value"] = 3
        assert store.load(key) == {"nested": {"value": 1}}

    def test_delete(self):
        store = InMemoryStore()
        key = StoreKey("child-1", "addition", "rewards")
        store.save(key, {"a": 1})
        store.delete(key)
        store.delete(key)
        assert store.load(key) is None
        assert len(store) == 0


class TestJsonFileStore:
    def test_save_and_load(self, tmp_path):
        store = JsonFileStore(tmp_path)
        key = StoreKey("child-1", "addition", "level_state")
        store.save(key, {"current_level": "expert"})

        assert store.path_for(key) == tmp_path / "child-1" / "addition" / "level_state.json"
        assert store.load(key) == {"current_level": "expert"}
        assert JsonFileStore(tmp_path).load(key) == {"current_level": "expert"}

    def test_missing_key(self, tmp_path):
        assert JsonFileStore(tmp_path).load(StoreKey("nobody", "addition", "rewards")) is None

    def test_corrupt_file_raises(self, tmp_path):
        store = JsonFileStore(tmp_path)
        key = StoreKey("child-1", "addition", "rewards")
        path = store.path_for(key)
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            store.load(key)
        assert exc_info.value.key == key

    def test_unserializable_payload_raises(self, tmp_path):
        store = JsonFileStore(tmp_path)
        with pytest.raises(PersistenceError):
            store.save(StoreKey("child-1", "addition", "rewards"), {"bad": object()})

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path)
        key = StoreKey("child-1", "addition", "rewards")
        store.save(key, {"earned": []})
        store.delete(key)
        store.delete(key)
        assert not store.path_for(key).exists()


class TestProgressStores:
    def test_in_memory_filters_by_module(self):
        store = InMemoryProgressStore()
        store.save(_entry(5))
        store.save(_entry(7, operation="subtraction"))

        assert len(store.history()) == 2
        assert [e["score"] for e in store.history("subtraction")] == [7]

    def test_invalid_entry_rejected(self):
        store = InMemoryProgressStore()
        with pytest.raises(PersistenceError):
            store.save(_entry(11, total=10))
        with pytest.raises(PersistenceError):
            store.save({"operationId": "addition"})
        assert store.history() == []

    def test_json_store_layout(self, tmp_path):
        path = tmp_path / "progress.json"
        store = JsonProgressStore(path)
        store.save(_entry(5))
        store.save(_entry(8))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [e["score"] for e in data["exerciseHistory"]] == [5, 8]
        assert len(JsonProgressStore(path).history("addition")) == 2

        store.clear()
        assert store.history() == []

    def test_json_store_corrupt_file(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text("[oops", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonProgressStore(path).history()

    def test_module_progress(self):
        store = InMemoryProgressStore()
        store.save(_entry(5, date="2024-05-01T10:00:00+00:00", time_spent=40))
        store.save(_entry(10, date="2024-05-03T10:00:00+00:00", time_spent=80))
        store.save(_entry(0, operation="subtraction"))

        progress = store.module_progress("addition")
        assert progress.total_completed == 2
        assert progress.best_score == 1.0
        assert progress.average_score == 0.75
        assert progress.average_time == 60.0
        assert progress.last_attempt == "2024-05-03T10:00:00+00:00"
        assert progress.to_dict()["averageScore"] == 0.75

    def test_module_progress_empty(self):
        progress = build_module_progress("addition", [])
        assert progress.total_completed == 0
        assert progress.last_attempt is None


class TestAnalytics:
    def test_accuracy_summary(self):
        summary = accuracy_summary([_entry(2), _entry(4), _entry(6)])
        assert summary["mean"] == 0.4
        assert summary["median"] == 0.4
        assert summary["min"] == 0.2
        assert summary["max"] == 0.6
        assert summary["count"] == 3

    def test_accuracy_summary_empty(self):
        assert accuracy_summary([])["count"] == 0

    def test_zero_problem_session_counts_as_zero(self):
        assert accuracy_summary([_entry(0, total=0)])["mean"] == 0.0

    @pytest.mark.parametrize(
        "scores, expected",
        [
            ([2, 3, 2, 8, 9, 9], "improving"),
            ([9, 9, 8, 2, 3, 2], "declining"),
            ([5, 5, 5, 5], "stable"),
            ([5], "stable"),
        ],
    )
    def test_accuracy_trend(self, scores, expected):
        assert accuracy_trend([_entry(s) for s in scores]) == expected
