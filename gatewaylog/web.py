"""Flask app for the operator dashboard: log feed, filters, smoke test, health."""

import atexit
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from gatewaylog.catalog import FilterCatalog
from gatewaylog.config import Config, load_config
from gatewaylog.health import HealthMonitor
from gatewaylog.labels import LabelCatalog
from gatewaylog.local import LocalSink
from gatewaylog.models import LEVELS, RequestContext
from gatewaylog.query import ALL, LogQueryService
from gatewaylog.remote import RemoteSink
from gatewaylog.responses import ApiResponder
from gatewaylog.writer import LogWriter

MAX_LIMIT = 1000
DEFAULT_LIMIT = 100


def request_context(req) -> RequestContext:
    """Snapshot of the current Flask request for log documents."""
    return RequestContext(
        method=req.method,
        path=req.path,
        ip=req.remote_addr,
        user_agent=req.headers.get("User-Agent"),
        headers=dict(req.headers),
    )


def create_app(config: Config | None = None, remote: RemoteSink | None = None,
               local: LocalSink | None = None, start_monitor: bool = True) -> Flask:
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = load_config()

    remote = remote or RemoteSink(config.remote)
    local = local or LocalSink(config)
    writer = LogWriter(config, remote=remote, local=local)
    query_service = LogQueryService(config, remote, local, LabelCatalog(config.label_locale))
    catalog = FilterCatalog(query_service, remote, local)
    responder = ApiResponder(config, writer)
    monitor = HealthMonitor(config, remote)

    # Store components on app for access in tests and by API handlers
    app.config["components"] = {
        "config": config,
        "remote": remote,
        "local": local,
        "writer": writer,
        "query": query_service,
        "catalog": catalog,
        "responder": responder,
        "health": monitor,
    }

    if start_monitor and monitor.start():
        atexit.register(monitor.stop)

    @app.route("/logs")
    def get_logs():
        try:
            limit = int(request.args.get("limit", DEFAULT_LIMIT))
        except ValueError:
            return responder.bad_request("Invalid limit parameter", should_log=False)
        limit = max(0, min(limit, MAX_LIMIT))

        try:
            result = query_service.query(
                level=request.args.get("level", ALL),
                domain=request.args.get("domain", ALL),
                action=request.args.get("action", ALL),
                search=request.args.get("search", ""),
                since=request.args.get("since") or None,
                limit=limit,
            )
        except ValueError as exc:
            return responder.bad_request("Invalid query parameters", {"error": str(exc)}, should_log=False)
        except Exception as exc:
            return responder.server_error("Failed to fetch logs", {"error": str(exc)}, should_log=False)

        return jsonify({
            "logs": result.logs,
            "count": result.count,
            "fallback_mode": result.fallback_mode,
        })

    @app.route("/filters")
    def get_filters():
        try:
            return jsonify(catalog.available_filters())
        except Exception as exc:
            return responder.server_error("Failed to fetch filters", {"error": str(exc)}, should_log=False)

    @app.route("/test", methods=["GET", "POST"])
    def create_test_log():
        body = request.get_json(silent=True) or {}
        level = str(request.args.get("level") or body.get("level") or "info").lower()
        if level not in LEVELS:
            return responder.bad_request(
                "Invalid log level", {"level": f"must be one of {', '.join(LEVELS)}"},
                should_log=False,
            )

        now = datetime.now(timezone.utc)
        message = f"Test {level} log created at {now.strftime('%H:%M:%S')}"
        writer.log(level, message, {
            "domain": "monitor",
            "action": "test_log",
            "force": True,
            "test_data": {
                "created_at": now.isoformat(),
                "ip": request.remote_addr,
                "user_agent": request.headers.get("User-Agent"),
            },
        }, request_context(request))

        return jsonify({"logged": True, "level": level, "message": message})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "remote": monitor.snapshot()})

    return app
