#!/usr/bin/env python3
"""
Task Board Server
-----------------
Serves the board page and a JSON API over the same TaskStore.

Usage:
    taskboard-server
    taskboard-server --port 8080 --db ./board.db --fallback static
    python -m taskboard.server

Pages (form posts, one user, one editor):
    GET  /                     → board: three columns, editor modal, delete prompt
    GET  /tasks/new            → open editor in create mode
    GET  /tasks/<id>/edit      → open editor for a card
    POST /tasks                → submit editor form (id empty = create)
    POST /tasks/delete         → ask to delete the task in the editor
    POST /confirm              → answer the delete prompt (answer=yes|no)
    POST /editor/close         → close editor (reason=close|backdrop|escape)

API:
    GET    /api/board          → { tasks, columns, total }
    GET    /api/tasks          → { tasks, count }   (?status=todo|doing|done)
    GET    /api/tasks/<id>     → { task }
    POST   /api/tasks          → { task }           body: { title, description, status, priority }
    PUT    /api/tasks/<id>     → { task }           body: any of the above
    DELETE /api/tasks/<id>     → { deleted }        requires ?confirm=true or { confirm: true }
    GET    /health
"""
import argparse
import logging
import sys
from typing import Optional

from flask import Flask, current_app, jsonify, redirect, render_template, request, url_for

from .config import BoardConfig
from .controller import BoardController, CloseReason, DELETE_PROMPT
from .schema import TaskStatus, TaskPriority, ValidationError
from .store import TaskStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [taskboard] %(levelname)s: %(message)s"


def create_app(config: Optional[BoardConfig] = None, store: Optional[TaskStore] = None) -> Flask:
    """Build the Flask app, load the task list and render it once."""
    config = config or BoardConfig.load()
    if store is None:
        store = TaskStore(config.make_storage(), config.make_sources(), key=config.storage_key)

    app = Flask(__name__)
    controller = BoardController(store)
    store.load()

    app.config["TASKBOARD"] = config
    app.extensions["taskboard"] = controller

    _register_pages(app)
    _register_api(app)
    return app


def _controller() -> BoardController:
    return current_app.extensions["taskboard"]


def _render_board(alert: Optional[str] = None, status: int = 200):
    controller = _controller()
    html = render_template(
        "board.html",
        view=controller.view,
        modal=controller.modal,
        alert=alert,
        statuses=list(TaskStatus),
        priorities=list(TaskPriority),
    )
    return html, status


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _json_body() -> dict:
    """Request JSON as a dict; an empty or unparsable body counts as {}."""
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


# ── Pages ────────────────────────────────────────────────────────────────────

def _register_pages(app: Flask) -> None:

    @app.route("/")
    def index():
        return _render_board()

    @app.route("/tasks/new")
    def new_task():
        _controller().open_editor(None)
        return redirect(url_for("index"))

    @app.route("/tasks/<task_id>/edit")
    def edit_task(task_id):
        _controller().open_editor_for(task_id)
        return redirect(url_for("index"))

    @app.route("/tasks", methods=["POST"])
    def submit_task():
        result = _controller().submit(request.form)
        if not result.accepted:
            return _render_board(alert=result.alert, status=400)
        return redirect(url_for("index"))

    @app.route("/tasks/delete", methods=["POST"])
    def delete_task():
        _controller().request_delete(request.form.get("id") or None)
        return redirect(url_for("index"))

    @app.route("/confirm", methods=["POST"])
    def confirm():
        _controller().resolve_confirmation(request.form.get("answer", "").lower() == "yes")
        return redirect(url_for("index"))

    @app.route("/editor/close", methods=["POST"])
    def close_editor():
        _controller().close_editor(CloseReason.from_str(request.form.get("reason")))
        return redirect(url_for("index"))


# ── API ──────────────────────────────────────────────────────────────────────

def _register_api(app: Flask) -> None:

    @app.errorhandler(ValidationError)
    def validation_failed(e):
        return jsonify({"error": str(e)}), 400

    @app.route("/api/board")
    def api_board():
        controller = _controller()
        tasks = controller.store.tasks
        return jsonify({
            "tasks": [t.to_dict() for t in tasks],
            "columns": controller.view.to_dict(),
            "total": len(tasks),
        })

    @app.route("/api/tasks", methods=["GET"])
    def api_tasks():
        tasks = _controller().store.tasks
        status = request.args.get("status")
        if status:
            wanted = TaskStatus.from_str(status)
            tasks = tuple(t for t in tasks if t.status == wanted)
        return jsonify({"tasks": [t.to_dict() for t in tasks], "count": len(tasks)})

    @app.route("/api/tasks/<task_id>", methods=["GET"])
    def api_task(task_id):
        task = _controller().store.find(task_id)
        if task is None:
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks", methods=["POST"])
    def api_create_task():
        data = _json_body()
        task = _controller().store.create(
            data.get("title", ""),
            data.get("description", ""),
            data.get("status") or TaskStatus.TODO.value,
            data.get("priority"),
        )
        return jsonify({"task": task.to_dict()}), 201

    @app.route("/api/tasks/<task_id>", methods=["PUT"])
    def api_update_task(task_id):
        data = _json_body()
        store = _controller().store
        existing = store.find(task_id)
        if existing is None:
            logger.warning(f"Tried to edit non-existent task id: {task_id}")
            return jsonify({"error": "Task not found"}), 404

        priority = existing.priority.value if existing.priority else None
        task = store.update(
            task_id,
            data.get("title", existing.title),
            data.get("description", existing.description),
            data.get("status", existing.status.value),
            data.get("priority", priority),
        )
        if task is None:
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"task": task.to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    def api_delete_task(task_id):
        data = _json_body()
        store = _controller().store
        if store.find(task_id) is None:
            return jsonify({"error": "Task not found"}), 404
        if not (_truthy(request.args.get("confirm")) or _truthy(data.get("confirm"))):
            return jsonify({"error": "confirmation required", "message": DELETE_PROMPT}), 409
        if not store.delete(task_id):
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"deleted": task_id})

    @app.route("/health")
    def health():
        config = current_app.config["TASKBOARD"]
        return jsonify({
            "status": "ok",
            "tasks": len(_controller().store.tasks),
            "storage": config.storage_backend,
            "fallback": config.fallback,
        })


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to the SQLite file (overrides TASKBOARD_DB)")
    parser.add_argument("--config", help="Path to taskboard.yaml (overrides TASKBOARD_CONFIG)")
    parser.add_argument("--fallback", choices=["remote", "static"],
                        help="Where first-run tasks come from when storage is empty")
    parser.add_argument("--memory", action="store_true",
                        help="Keep tasks in memory only (nothing is saved)")
    args = parser.parse_args(argv)

    config = BoardConfig.load(args.config)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.db:
        config.db_path = args.db
    if args.fallback:
        config.fallback = args.fallback
    if args.memory:
        config.storage_backend = "memory"
    config.validate()

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    app = create_app(config)
    storage = config.db_path if config.storage_backend == "sqlite" else "memory"

    print(f"""
╔═══════════════════════════════════════╗
║  Task Board Server                    ║
╠═══════════════════════════════════════╣
║  URL:  http://{config.host}:{config.port:<20}║
║  DB:   {storage:<31}║
║  Seed: {config.fallback:<31}║
╚═══════════════════════════════════════╝
""")

    app.run(host=config.host, port=config.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
