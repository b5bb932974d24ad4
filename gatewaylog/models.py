"""Log document model and the ambient request it is built from."""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

LEVELS = ("debug", "info", "warning", "error", "critical", "alert", "emergency")

# Levels logged even without a status code or force flag.
ALWAYS_LOGGED_LEVELS = frozenset({"error", "warning", "critical", "alert", "emergency"})

RESERVED_CONTEXT_KEYS = ("domain", "action", "exception", "http", "user", "force")

REMOTE_PREFIX = "[REMOTE]"
FALLBACK_PREFIX = "[REMOTE-FALLBACK]"
ERROR_PREFIX = "[REMOTE-ERROR]"


@dataclass(frozen=True)
class RequestContext:
    """The inbound HTTP request a log call happens under."""

    method: str | None = None
    path: str | None = None
    ip: str | None = None
    user_agent: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        lowered = {str(k).lower(): v for k, v in dict(self.headers).items()}
        object.__setattr__(self, "headers", lowered)

    def header(self, name: str, default: str | None = None) -> str | None:
        value = self.headers.get(name.lower())
        return value if value else default


@dataclass(frozen=True)
class LogDocument:
    """One normalized log record, written once and read many times."""

    timestamp: str
    level: str
    app: str
    env: str
    message: str
    domain: str | None = None
    action: str | None = None
    http: dict | None = None
    user: dict | None = None
    exception: dict | None = None
    context: dict = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready copy; optional fields that are unset are omitted."""
        doc = {
            "timestamp": self.timestamp,
            "level": self.level,
            "app": self.app,
            "env": self.env,
            "message": self.message,
        }
        for name in ("domain", "action", "http", "user", "exception"):
            value = getattr(self, name)
            if value is not None:
                doc[name] = copy.deepcopy(value)
        doc["context"] = copy.deepcopy(self.context)
        return doc
