#!/usr/bin/env python3
"""
Command Center Server
---------------------
JSON API behind the operations dashboard: kanban board synced from the
notes workspace, openclaw sessions and cron jobs, LessonCraft assets,
voice tests, directives and feature requests.

Usage:
    pip install -e .
    python command_center_server.py --config command_center.yaml

Access:
    Local:  http://localhost:3000

API:
    GET  /api/kanban                 → { tasks, columns, projectColors }  (runs a sync pass)
    POST /api/kanban                 → { success, tasks }
                                       body: { action: move|create|update|delete, ... }
    GET  /api/agents                 → { agents }
    POST /api/agents, /api/spawn     → spawn an agent via openclaw
    GET  /api/sessions               → { sessions }
    GET  /api/cron                   → { cron }
    GET  /api/status                 → { status, sessions, cronJobs, timestamp }
    GET  /api/memory                 → { files, count, totalSize }
    GET  /api/projects               → { projects }
    GET|POST|PUT /api/chairman-directives
    GET|POST|PUT /api/feature-requests
    GET|PUT      /api/recovered-tasks
    GET  /api/lessoncraft            → asset dashboard
    GET  /api/lessoncraft/object     → streamed R2 object (?key=...&download=1)
    POST /api/voice/generate         → audio/mpeg
    GET  /health

Write routes require an X-API-Key header when COMMAND_CENTER_API_SECRET is set.
"""

import hmac
import logging
import sys
from datetime import datetime, timezone
from functools import partial, wraps
from typing import Optional

from flask import Flask, Response, jsonify, request, stream_with_context
from werkzeug.exceptions import HTTPException

from command_center import records
from command_center.config import Config
from command_center.errors import (
    CommandError, ConfigError, RecordNotFound, UpstreamError, ValidationError,
)
from command_center.integrations.lessoncraft import build_dashboard, fetch_catalog
from command_center.integrations.openclaw import OpenClawCLI
from command_center.integrations.r2 import R2Client, proxy_headers
from command_center.integrations.voice import synthesize
from command_center.kanban.board import KanbanBoard
from command_center.kanban.projector import fetch_agent_tasks
from command_center.kanban.store import JsonFileKanbanStore
from command_center.kanban.sync import KanbanSync, NoteSource
from command_center.memory_notes import list_memory_files

app = Flask(__name__)

STREAM_CHUNK_BYTES = 64 * 1024

# ── Config & services ────────────────────────────────────────────────────────

_config: Optional[Config] = None
_board: Optional[KanbanBoard] = None


def configure(cfg: Config, board: Optional[KanbanBoard] = None) -> None:
    """Install a config (and optionally a prebuilt board) for all routes."""
    global _config, _board
    _config = cfg
    _board = board


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def get_board() -> KanbanBoard:
    """Board service over the kanban file. Built once so its lock is shared."""
    global _board
    if _board is None:
        cfg = get_config()
        store = JsonFileKanbanStore(cfg.kanban_file)
        sync = KanbanSync(
            store,
            todo_source=NoteSource(cfg.todo_source, cfg.fetch_timeout_secs),
            active_context_source=NoteSource(cfg.active_context_source, cfg.fetch_timeout_secs),
            agent_fetcher=partial(fetch_agent_tasks, cfg.agents_url, cfg.fetch_timeout_secs),
        )
        _board = KanbanBoard(store, sync)
    return _board


def get_cli() -> OpenClawCLI:
    cfg = get_config()
    return OpenClawCLI(cfg.openclaw_bin, cfg.cli_timeout_secs)


def get_r2() -> R2Client:
    cfg = get_config()
    return R2Client(
        cfg.cf_account_id, cfg.cf_email, cfg.cf_api_key, cfg.r2_bucket,
        page_size=cfg.r2_page_size, max_pages=cfg.r2_max_pages,
        timeout=cfg.upstream_timeout_secs,
    )


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


# ── Auth ─────────────────────────────────────────────────────────────────────

def require_api_key(f):
    """Decorator: when an API secret is configured, require a matching X-API-Key."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = get_config().api_secret
        if not secret:
            return f(*args, **kwargs)
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── Error mapping ────────────────────────────────────────────────────────────

@app.errorhandler(ValidationError)
def handle_validation(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(RecordNotFound)
def handle_not_found(e):
    return jsonify({"error": f"{e.kind} not found"}), 404


@app.errorhandler(ConfigError)
def handle_config(e):
    app.logger.error(f"Configuration error: {e}")
    return jsonify({"error": str(e)}), 500


@app.errorhandler(CommandError)
def handle_command(e):
    app.logger.error(f"openclaw error: {e} {e.details}")
    return jsonify({"error": str(e), "details": e.details}), 500


@app.errorhandler(UpstreamError)
def handle_upstream(e):
    app.logger.error(f"Upstream error: {e}")
    return jsonify({"error": str(e), "status": e.status, "details": e.details}), e.status or 502


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    app.logger.exception(f"Unhandled error on {request.path}")
    return jsonify({"error": "Internal server error"}), 500


# ── Kanban ───────────────────────────────────────────────────────────────────

@app.route("/api/kanban", methods=["GET"])
def api_kanban():
    try:
        return jsonify(get_board().read())
    except Exception as e:
        app.logger.error(f"Kanban sync error: {e}")
        return jsonify({"error": "Failed to load kanban tasks"}), 500


@app.route("/api/kanban", methods=["POST"])
@require_api_key
def api_kanban_update():
    data = json_body()
    try:
        tasks = get_board().mutate(data)
    except ValidationError:
        raise
    except Exception as e:
        app.logger.error(f"Kanban write error: {e}")
        return jsonify({"error": "Failed to update kanban tasks"}), 500
    return jsonify({"success": True, "tasks": [t.to_dict() for t in tasks]})


# ── Agents & openclaw ────────────────────────────────────────────────────────

@app.route("/api/agents", methods=["GET"])
def api_agents():
    return jsonify({"agents": get_config().agents})


def _spawn(agent: str, task: str):
    output = get_cli().spawn_agent(agent, task)
    return jsonify({
        "success": True,
        "message": f"Agent {agent} spawned successfully",
        "output": output,
        "task": task,
    })


@app.route("/api/agents", methods=["POST"])
@require_api_key
def api_agents_spawn():
    data = json_body()
    return _spawn(data.get("agentId"), data.get("task"))


@app.route("/api/spawn", methods=["POST"])
@require_api_key
def api_spawn():
    data = json_body()
    if not data.get("task"):
        return jsonify({"error": "Task is required"}), 400
    return _spawn(data.get("agent") or "codex", data["task"])


@app.route("/api/sessions")
def api_sessions():
    return jsonify({"sessions": get_cli().list_sessions()})


@app.route("/api/cron")
def api_cron():
    return jsonify({"cron": get_cli().list_cron()})


@app.route("/api/status")
def api_status():
    snapshot = get_cli().status_snapshot()
    return jsonify({"status": "online", **snapshot, "timestamp": utc_now()})


# ── Notes & static content ───────────────────────────────────────────────────

@app.route("/api/memory")
def api_memory():
    files = list_memory_files(get_config().notes_dir)
    return jsonify({
        "files": files,
        "count": len(files),
        "totalSize": sum(f["size"] for f in files),
    })


@app.route("/api/projects")
def api_projects():
    return jsonify({"projects": get_config().projects})


# ── Directives, feature requests, recovered tasks ───────────────────────────

@app.route("/api/chairman-directives", methods=["GET"])
def api_directives():
    return jsonify({"directives": records.directives(get_config().data_dir).list()})


@app.route("/api/chairman-directives", methods=["POST"])
@require_api_key
def api_directives_add():
    record = records.directives(get_config().data_dir).add(json_body())
    return jsonify(record), 201


@app.route("/api/chairman-directives", methods=["PUT"])
@require_api_key
def api_directives_update():
    data = json_body()
    record = records.directives(get_config().data_dir).update(
        data.get("id"), {"status": data.get("status")}
    )
    return jsonify(record)


@app.route("/api/feature-requests", methods=["GET"])
def api_features():
    return jsonify({"featureRequests": records.feature_requests(get_config().data_dir).list()})


@app.route("/api/feature-requests", methods=["POST"])
@require_api_key
def api_features_add():
    record = records.feature_requests(get_config().data_dir).add(json_body())
    return jsonify(record), 201


@app.route("/api/feature-requests", methods=["PUT"])
@require_api_key
def api_features_update():
    """Update status; convertToTask also files the request on the kanban board."""
    data = json_body()
    features = records.feature_requests(get_config().data_dir)
    if data.get("convertToTask"):
        title = features.get(data.get("id")).get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("feature request has no title to convert")

    feature = features.update(data.get("id"), {"status": data.get("status")})
    if data.get("convertToTask"):
        get_board().mutate({
            "action": "create",
            "title": feature.get("title"),
            "project": feature.get("project"),
            "priority": feature.get("priority"),
            "description": feature.get("description"),
            "owner": "Jackbot",
            "tags": ["feature-request"],
        })
    return jsonify(feature)


@app.route("/api/recovered-tasks", methods=["GET"])
def api_recovered():
    return jsonify({"recoveredTasks": records.recovered_tasks(get_config().data_dir).list()})


@app.route("/api/recovered-tasks", methods=["PUT"])
@require_api_key
def api_recovered_update():
    data = json_body()
    record = records.recovered_tasks(get_config().data_dir).update(
        data.get("id"), {"status": data.get("status")}
    )
    return jsonify(record)


# ── LessonCraft ──────────────────────────────────────────────────────────────

@app.route("/api/lessoncraft")
def api_lessoncraft():
    cfg = get_config()
    r2 = get_r2()
    catalog = fetch_catalog(cfg.catalog_url, cfg.upstream_timeout_secs)
    objects = r2.list_objects()
    return jsonify(build_dashboard(catalog, objects, utc_now()))


@app.route("/api/lessoncraft/object")
def api_lessoncraft_object():
    key = request.args.get("key")
    download = request.args.get("download") == "1"
    if not key:
        return jsonify({"error": "Missing key query parameter"}), 400

    upstream = get_r2().open_object(key, request.headers.get("Range"))

    def generate():
        try:
            for chunk in upstream.iter_content(chunk_size=STREAM_CHUNK_BYTES):
                if chunk:
                    yield chunk
        finally:
            upstream.close()

    return Response(
        stream_with_context(generate()),
        status=upstream.status_code,
        headers=proxy_headers(upstream.headers, key, download),
    )


# ── Voice ────────────────────────────────────────────────────────────────────

@app.route("/api/voice/generate", methods=["POST"])
@require_api_key
def api_voice_generate():
    cfg = get_config()
    data = json_body()
    audio = synthesize(
        data.get("voiceId"),
        data.get("text"),
        api_key=cfg.elevenlabs_api_key,
        stability=data.get("stability", 0.5),
        similarity=data.get("similarity", 0.75),
        model=cfg.elevenlabs_model,
        timeout=cfg.tts_timeout_secs,
    )
    return Response(audio, mimetype="audio/mpeg",
                    headers={"Content-Length": str(len(audio))})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "kanbanFile": get_config().kanban_file})


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Command Center Server")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--config", help="Path to command_center.yaml (overrides COMMAND_CENTER_CONFIG)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    cfg = Config.load(args.config)
    configure(cfg)
    host = args.host or cfg.host
    port = args.port or cfg.port

    print(f"""
╔═══════════════════════════════════════╗
║  Command Center Server                ║
╠═══════════════════════════════════════╣
║  URL:   http://{host}:{port:<19}║
║  Board: {cfg.kanban_file:<30}║
║  Notes: {cfg.notes_dir:<30}║
╚═══════════════════════════════════════╝
""")

    app.run(host=host, port=port, debug=False, threaded=True)
