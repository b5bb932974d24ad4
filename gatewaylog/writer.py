"""LogWriter — the policy gate and the remote-then-local dual write.

``log()`` is fire-and-forget: whatever goes wrong inside it ends in one
best-effort emergency line in the local file, never in an exception for the
caller.
"""

import logging
from collections.abc import Mapping

from gatewaylog.config import Config
from gatewaylog.document import DocumentBuilder, extract_status
from gatewaylog.local import LocalSink
from gatewaylog.models import (
    ALWAYS_LOGGED_LEVELS,
    ERROR_PREFIX,
    FALLBACK_PREFIX,
    REMOTE_PREFIX,
    RequestContext,
)
from gatewaylog.remote import RemoteSink

logger = logging.getLogger(__name__)


class LogWriter:
    def __init__(
        self,
        config: Config,
        remote: RemoteSink | None = None,
        local: LocalSink | None = None,
        builder: DocumentBuilder | None = None,
    ):
        self._config = config
        self._remote = remote or RemoteSink(config.remote)
        self._local = local or LocalSink(config)
        self._builder = builder or DocumentBuilder(config)

    def should_log(self, level: str, context: Mapping | None = None) -> bool:
        """Decide whether a call is persisted at all.

        An explicit ``force: False`` in the context wins over everything,
        including the global ``log_force`` switch.
        """
        context = context or {}
        force = context.get("force")
        if force is False:
            return False
        if self._config.log_force or force:
            return True

        status = extract_status(context)
        if status is not None and status >= 400:
            return True
        if status is not None and 200 <= status < 300:
            return self._config.logs_response_type("success")

        return str(level).lower() in ALWAYS_LOGGED_LEVELS

    def log(
        self,
        level: str,
        message: str,
        context: Mapping | None = None,
        request: RequestContext | None = None,
    ) -> None:
        try:
            if not self.should_log(level, context):
                return

            document = self._builder.build(level, message, context, request)

            remote_sent = False
            if self._config.remote.enabled:
                remote_sent = self._remote.send(document)

            if self._config.local_fallback:
                prefix = REMOTE_PREFIX if remote_sent else FALLBACK_PREFIX
                self._local.append(document.level, f"{prefix} {document.message}", document.to_dict())
        except Exception as exc:
            self._emergency_write(level, message, exc)

    def _emergency_write(self, level, message, error: Exception) -> None:
        try:
            self._local.append("error", f"{ERROR_PREFIX} Failed to log", {
                "level": "error",
                "app": self._config.app_name,
                "env": self._config.env,
                "message": "Failed to log",
                "context": {
                    "original_message": str(message),
                    "original_level": str(level),
                    "error": f"{type(error).__name__}: {error}",
                    "fallback_used": True,
                },
            })
        except Exception:
            logger.debug("Emergency local write failed", exc_info=True)

    def debug(self, message: str, context: Mapping | None = None, request: RequestContext | None = None) -> None:
        self.log("debug", message, context, request)

    def info(self, message: str, context: Mapping | None = None, request: RequestContext | None = None) -> None:
        self.log("info", message, context, request)

    def warning(self, message: str, context: Mapping | None = None, request: RequestContext | None = None) -> None:
        self.log("warning", message, context, request)

    def error(self, message: str, context: Mapping | None = None, request: RequestContext | None = None) -> None:
        self.log("error", message, context, request)

    def critical(self, message: str, context: Mapping | None = None, request: RequestContext | None = None) -> None:
        self.log("critical", message, context, request)
