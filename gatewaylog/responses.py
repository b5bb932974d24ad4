"""Unified JSON response envelope for API handlers, with response logging.

Every helper returns a ``(flask.Response, status)`` pair shaped as
``{success, message, api_version, data?, errors?}``. Whether a response is
logged is decided per call:

- ``should_log=False`` never logs, and neither does ``log_responses=false``;
- ``should_log=True`` logs;
- ``should_log=None`` defers to ``log_responses_per_type[<kind>]``.

A logged response still passes through the writer's own policy gate.
"""

import logging

from flask import jsonify

from gatewaylog.config import Config
from gatewaylog.labels import LabelCatalog
from gatewaylog.models import RequestContext
from gatewaylog.writer import LogWriter

logger = logging.getLogger(__name__)


class ApiResponder:
    def __init__(self, config: Config, writer: LogWriter, messages: LabelCatalog | None = None):
        self._config = config
        self._writer = writer
        self._messages = messages or LabelCatalog(config.response_locale)

    def should_log_response(self, response_type: str, should_log: bool | None = None) -> bool:
        if should_log is False:
            return False
        if not self._config.log_responses:
            return False
        if should_log is True:
            return True
        return self._config.logs_response_type(response_type)

    def respond(self, success: bool, message: str | None, data=None, errors=None,
                status: int = 200, should_log: bool = False, request: RequestContext | None = None):
        body = {
            "success": success,
            "message": message,
            "api_version": self._config.api_version,
        }
        if success and data is not None:
            body["data"] = data
        if not success and errors:
            body["errors"] = errors

        if should_log:
            self._log_response(message or "API Response", status, data, errors or {}, request)

        return jsonify(body), status

    def _log_response(self, message, status, data, errors, request):
        context = {
            "domain": "api",
            "action": "response",
            "http": {"status": status},
            "response_data": {
                "success": status < 400,
                "message": message,
                "errors": errors,
                "data_type": type(data).__name__,
            },
        }
        try:
            if status >= 500:
                self._writer.error(message, context, request)
            elif status >= 400:
                self._writer.warning(message, context, request)
            else:
                self._writer.info(message, context, request)
        except Exception:
            logger.debug("Response logging failed", exc_info=True)

    # --- success ---

    def success(self, data=None, message=None, status=200, should_log=None, request=None):
        return self.respond(
            True, message or self._messages.message("success.default"), data=data,
            status=status, should_log=self.should_log_response("success", should_log),
            request=request,
        )

    def created(self, data=None, message=None, should_log=None, request=None):
        return self.respond(
            True, message or self._messages.message("success.created"), data=data,
            status=201, should_log=self.should_log_response("created", should_log),
            request=request,
        )

    def updated(self, data=None, message=None, should_log=None, request=None):
        return self.respond(
            True, message or self._messages.message("success.updated"), data=data,
            status=200, should_log=self.should_log_response("updated", should_log),
            request=request,
        )

    def deleted(self, message=None, should_log=None, request=None):
        return self.respond(
            True, message or self._messages.message("success.deleted"),
            status=200, should_log=self.should_log_response("deleted", should_log),
            request=request,
        )

    def paginated(self, data, message=None, should_log=None, request=None):
        return self.respond(
            True, message or self._messages.message("success.retrieved"), data=data,
            status=200, should_log=self.should_log_response("paginated", should_log),
            request=request,
        )

    def no_content(self, should_log=False, request=None):
        return self.respond(True, None, status=204,
                            should_log=self.should_log_response("success", should_log),
                            request=request)

    def redirect(self, url: str, message=None, should_log=False, request=None):
        return self.respond(
            True, message or self._messages.message("success.redirecting"), data={"url": url},
            status=302, should_log=self.should_log_response("success", should_log),
            request=request,
        )

    # --- errors ---

    def error(self, message=None, status=400, errors=None, should_log=None,
              response_type="error", request=None):
        return self.respond(
            False, message or self._messages.message("error.default"), errors=errors,
            status=status, should_log=self.should_log_response(response_type, should_log),
            request=request,
        )

    def validation_error(self, errors, message=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.validation"), 422, errors,
                          should_log, "validation", request)

    def not_found(self, message=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.not_found"), 404, None,
                          should_log, "not_found", request)

    def unauthorized(self, message=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.unauthorized"), 401, None,
                          should_log, "unauthorized", request)

    def forbidden(self, message=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.forbidden"), 403, None,
                          should_log, "forbidden", request)

    def bad_request(self, message=None, errors=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.bad_request"), 400, errors,
                          should_log, "error", request)

    def rate_limited(self, message=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.rate_limited"), 429, None,
                          should_log, "error", request)

    def server_error(self, message=None, errors=None, should_log=None, request=None):
        return self.error(message or self._messages.message("error.server_error"), 500, errors,
                          should_log, "server_error", request)
