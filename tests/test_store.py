"""Tests for SQLite snapshot persistence."""
import json
import sqlite3

import pytest

from taskboard.engine import BoardEngine
from taskboard.schema import AppState, ColumnId
from taskboard.store import SnapshotStore


def _write_raw(db_path, key, value):
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO snapshots (key, value, updated_at) VALUES (?, ?, 'now')",
            (key, value),
        )
        conn.commit()


def test_load_without_snapshot_is_empty(store):
    assert store.load() == AppState.empty()


def test_save_and_load(store, engine):
    task_id = engine.create_task("Persist me", "with body")
    engine.move_task(task_id, ColumnId.DONE)
    engine.set_search_term("persist")

    assert store.save(engine.state)
    loaded = store.load()

    assert loaded == engine.state
    assert loaded.board.column_ids(ColumnId.DONE) == (task_id,)
    assert loaded.board.filters.search_term == "persist"


def test_save_overwrites_previous_snapshot(store, engine):
    engine.create_task("One")
    store.save(engine.state)
    engine.create_task("Two")
    store.save(engine.state)

    assert len(store.load().board.tasks) == 2


@pytest.mark.parametrize("raw", [
    "not json at all",
    "[]",
    json.dumps({"version": 1}),
    json.dumps({"version": 2, "state": {}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {"todo": ["ghost"]}}}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {"x": {"id": "x", "title": ""}}, "order": {}}}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {}}, "history": [{"type": "bogus"}]}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {}}, "history": [
        {"type": "task_deleted", "task_id": "x", "task_title": "X", "timestamp": ""},
    ]}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {}}, "history": [
        {"type": "task_deleted", "task_id": "x", "task_title": "X", "timestamp": "2024-03-01T09:00:00"},
    ]}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {}}, "history": [
        {"type": "task_deleted", "task_id": "x", "task_title": "X"},
    ]}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {}}, "history": [
        {"type": "task_updated", "task_id": "x", "task_title": "X",
         "timestamp": "2024-03-01T09:00:00+00:00", "changes": "title: a → b"},
    ]}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {
        "x": {"id": "x", "title": "X", "created_at": "2024-03-01T09:00:00"},
    }, "order": {"todo": ["x"]}}}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {},
                                                  "filters": {"status_filters": ["todo"]}}}}),
    json.dumps({"version": 1, "state": {"board": {"tasks": {}, "order": {},
                                                  "filters": {"status_filters": {"todo": "false"}}}}}),
])
def test_malformed_snapshot_falls_back_to_empty(store, raw):
    _write_raw(store.db_path, store.key, raw)
    assert store.load() == AppState.empty()


def test_engine_autosaves_through_subscription(store, clock, ids):
    engine = BoardEngine(initial_state=store.load(), clock=clock, id_factory=ids)
    engine.subscribe(store.save)

    task_id = engine.create_task("Autosaved")
    engine.move_task(task_id, ColumnId.IN_PROGRESS)

    reloaded = BoardEngine(initial_state=SnapshotStore(store.db_path).load())
    assert reloaded.board.column_ids(ColumnId.IN_PROGRESS) == (task_id,)
    assert len(reloaded.history) == 2


def test_clear(store, engine):
    engine.create_task("Temporary")
    store.save(engine.state)
    store.clear()
    assert store.load_raw() is None


def test_separate_keys_do_not_collide(db_path, engine):
    engine.create_task("Board A")
    SnapshotStore(db_path, key="a").save(engine.state)
    assert SnapshotStore(db_path, key="b").load() == AppState.empty()
