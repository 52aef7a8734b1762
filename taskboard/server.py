#!/usr/bin/env python3
"""
Task Board Server
-----------------
JSON API over a BoardEngine, persisted to SQLite through SnapshotStore.

Usage:
    taskboard-server --config taskboard.yaml
    python -m taskboard.server --port 3000 --db /tmp/taskboard.db

API:
    GET    /api/board                  → { board, columns, filters, history }
    POST   /api/tasks                  → body { title, description? }
    PUT    /api/tasks/<id>             → body { title?, description? }
    DELETE /api/tasks/<id>
    POST   /api/tasks/<id>/move        → body { column, index? }
    POST   /api/drop                   → body { source_task_id, target_column,
                                                target_task_id?, relative_edge? }
    PUT    /api/filters/search         → body { term }
    POST   /api/filters/<column>/toggle
    DELETE /api/filters
    GET    /health

Mutating routes require an X-API-Key header when api_secret is configured.
"""
import hmac
import logging
import sys
from functools import wraps
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request

from .config import Config
from .dragdrop import DropInstruction
from .engine import BoardEngine
from .filters import active_filter_count, empty_reason, hidden_columns, visible_tasks
from .history import describe, format_timestamp
from .schema import COLUMNS, AppState, ColumnId
from .store import SnapshotStore

logger = logging.getLogger(__name__)


# ── Auth ─────────────────────────────────────────────────────────────────────


def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = current_app.config.get("API_SECRET", "")
        if secret:
            provided = request.headers.get("X-API-Key", "").strip()
            if not hmac.compare_digest(provided, secret):
                code = 401 if not provided else 403
                return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── Views ────────────────────────────────────────────────────────────────────


def board_view(state: AppState) -> Dict[str, Any]:
    """Everything a UI needs to render the board in one payload."""
    board = state.board
    columns = {}
    for column in COLUMNS:
        columns[column.value] = {
            "label": column.filter_label,
            "task_ids": list(visible_tasks(board, column)),
            "total": len(board.column_ids(column)),
            "empty_reason": empty_reason(board, column),
        }
    filters = board.filters.to_dict()
    filters["active_count"] = active_filter_count(board.filters)
    filters["hidden"] = [c.value for c in hidden_columns(board.filters)]
    history = []
    for entry in state.history:
        item = entry.to_dict()
        item["text"] = describe(entry)
        item["age"] = format_timestamp(entry.timestamp)
        history.append(item)
    return {
        "board": board.to_dict(),
        "columns": columns,
        "filters": filters,
        "history": history,
    }


def create_app(
    engine: Optional[BoardEngine] = None,
    store: Optional[SnapshotStore] = None,
    config: Optional[Config] = None,
) -> Flask:
    """
    Build the Flask app around an engine.

    With a store and config.autosave, every new snapshot is written to the
    store as soon as the engine publishes it.
    """
    config = config or Config()
    if engine is None:
        engine = BoardEngine(initial_state=store.load() if store else None)
    if store is not None and config.autosave:
        engine.subscribe(store.save)

    app = Flask(__name__)
    app.config["API_SECRET"] = config.api_secret

    def _body() -> Dict[str, Any]:
        data = request.get_json(force=True, silent=True)
        return data if isinstance(data, dict) else {}

    @app.route("/api/board")
    def api_board():
        return jsonify(board_view(engine.state))

    @app.route("/api/tasks", methods=["POST"])
    @require_api_key
    def api_create_task():
        data = _body()
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            return jsonify({"error": "title is required"}), 400
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            return jsonify({"error": "description must be a string"}), 400

        task_id = engine.create_task(title.strip(), (description or "").strip() or None)
        if task_id is None:
            return jsonify({"error": "Could not allocate a task id"}), 409
        task = engine.board.tasks[task_id]
        return jsonify({"id": task_id, "task": task.to_dict()}), 201

    @app.route("/api/tasks/<task_id>", methods=["PUT"])
    @require_api_key
    def api_update_task(task_id):
        if task_id not in engine.board.tasks:
            return jsonify({"error": "Task not found"}), 404
        data = _body()
        updates = {k: data[k] for k in ("title", "description") if k in data}
        for key, value in updates.items():
            if value is not None and not isinstance(value, str):
                return jsonify({"error": f"{key} must be a string"}), 400
        if "title" in updates and not (updates["title"] or "").strip():
            return jsonify({"error": "title must not be empty"}), 400

        state = engine.update_task(task_id, **updates)
        task = state.board.tasks.get(task_id)
        if task is None:
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    @require_api_key
    def api_delete_task(task_id):
        if task_id not in engine.board.tasks:
            return jsonify({"error": "Task not found"}), 404
        engine.delete_task(task_id)
        return jsonify({"deleted": task_id})

    @app.route("/api/tasks/<task_id>/move", methods=["POST"])
    @require_api_key
    def api_move_task(task_id):
        data = _body()
        column = ColumnId.from_str(data.get("column"))
        if column is None:
            return jsonify({"error": "column must be one of todo, inprogress, done"}), 400
        index = data.get("index")
        if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
            return jsonify({"error": "index must be an integer"}), 400
        if task_id not in engine.board.tasks:
            return jsonify({"error": "Task not found"}), 404

        state = engine.move_task(task_id, column, index)
        return jsonify(board_view(state))

    @app.route("/api/drop", methods=["POST"])
    @require_api_key
    def api_drop():
        drop = DropInstruction.from_dict(_body())
        if drop is None:
            return jsonify({"error": "source_task_id and a valid target_column are required"}), 400
        state = engine.apply_drop(drop)
        return jsonify(board_view(state))

    @app.route("/api/filters/search", methods=["PUT"])
    @require_api_key
    def api_set_search():
        term = _body().get("term", "")
        if not isinstance(term, str):
            return jsonify({"error": "term must be a string"}), 400
        state = engine.set_search_term(term)
        return jsonify(board_view(state))

    @app.route("/api/filters/<column>/toggle", methods=["POST"])
    @require_api_key
    def api_toggle_filter(column):
        column_id = ColumnId.from_str(column)
        if column_id is None:
            return jsonify({"error": f"Unknown column: {column}"}), 400
        state = engine.toggle_status_filter(column_id)
        return jsonify(board_view(state))

    @app.route("/api/filters", methods=["DELETE"])
    @require_api_key
    def api_clear_filters():
        return jsonify(board_view(engine.clear_filters()))

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "db": store.db_path if store else None,
            "tasks": len(engine.board.tasks),
        })

    return app


# ── Main ─────────────────────────────────────────────────────────────────────


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to the SQLite snapshot DB (overrides TASKBOARD_DB)")
    args = parser.parse_args(argv)

    config = Config.load(args.config)
    if args.db:
        config.db_path = args.db
        config.resolve_paths()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    store = SnapshotStore(config.db_path)
    app = create_app(store=store, config=config)
    logger.info(f"Serving task board on http://{config.host}:{config.port} (db={config.db_path})")
    app.run(host=config.host, port=config.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
