"""Assemble LogDocuments from a log call plus the ambient request."""

import traceback
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone

from gatewaylog.config import Config
from gatewaylog.models import RESERVED_CONTEXT_KEYS, LogDocument, RequestContext
from gatewaylog.redaction import redact

MAX_TRACE_FRAMES = 10


def extract_status(context: Mapping) -> int | None:
    """Return ``context["http"]["status"]`` as an int, or None if absent or malformed."""
    http = context.get("http")
    if not isinstance(http, Mapping):
        return None
    status = http.get("status")
    if status is None or isinstance(status, bool):
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def _frame_owner(frame) -> str | None:
    """Name of the class a frame's function is bound to, if any."""
    local_vars = frame.f_locals
    if "self" in local_vars:
        return type(local_vars["self"]).__qualname__
    owner = local_vars.get("cls")
    if isinstance(owner, type):
        return owner.__qualname__
    return None


def build_exception_record(exc: BaseException) -> dict:
    """Describe *exc*: type, code, throw site, and the innermost frames."""
    frames = list(traceback.walk_tb(exc.__traceback__))
    frames.reverse()

    if frames:
        frame, lineno = frames[0]
        origin = f"{frame.f_code.co_filename}:{lineno}"
    else:
        origin = "unknown:0"

    trace = [
        {
            "file": frame.f_code.co_filename,
            "line": lineno,
            "function": frame.f_code.co_name,
            "class": _frame_owner(frame),
        }
        for frame, lineno in frames[:MAX_TRACE_FRAMES]
    ]

    exc_type = type(exc)
    name = exc_type.__qualname__
    if exc_type.__module__ not in ("builtins", "__main__"):
        name = f"{exc_type.__module__}.{name}"

    code = getattr(exc, "code", None)
    if code is None:
        code = getattr(exc, "errno", None)
    if not isinstance(code, (int, str)):
        code = 0

    return {"class": name, "code": code, "file": origin, "trace": trace}


class DocumentBuilder:
    """Builds LogDocuments; the config supplies app identity and redact keys."""

    def __init__(self, config: Config, clock=None, id_factory=None):
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def build(
        self,
        level: str,
        message: str,
        context: Mapping | None = None,
        request: RequestContext | None = None,
    ) -> LogDocument:
        context = context or {}
        exception = context.get("exception")

        remainder = {
            key: value
            for key, value in context.items()
            if key not in RESERVED_CONTEXT_KEYS and value
        }

        return LogDocument(
            timestamp=self._clock().isoformat(),
            level=str(level).lower(),
            app=self._config.app_name,
            env=self._config.env,
            message=str(message),
            domain=context.get("domain") or None,
            action=context.get("action") or None,
            http=self._http(context, request),
            user=self._user(request),
            exception=(
                build_exception_record(exception)
                if isinstance(exception, BaseException) else None
            ),
            context=redact(remainder, self._config.redact_keys),
        )

    def _http(self, context: Mapping, request: RequestContext | None) -> dict:
        request = request or RequestContext()
        return {
            "method": request.method,
            "path": request.path,
            "status": extract_status(context),
            "ip": request.ip,
            "user_agent": request.user_agent,
            "request_id": request.header("X-Request-Id") or self._id_factory(),
        }

    @staticmethod
    def _user(request: RequestContext | None) -> dict | None:
        if request is None:
            return None
        raw_id = request.header("X-User-Id")
        if raw_id is None:
            return None
        try:
            user_id = int(raw_id.strip())
        except ValueError:
            return None
        return {"id": user_id, "role": request.header("X-User-Role")}
