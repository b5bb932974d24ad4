"""Masking of sensitive values in structured log context.

A value is masked when its key, lower-cased, contains any of the configured
redact substrings. Nested mappings are walked rather than masked, so a
``{"auth": {"user": "x"}}`` entry keeps its structure while every matching
leaf underneath it is replaced.
"""

from collections.abc import Iterable, Mapping

REDACTION_MARKER = "***REDACTED***"

DEFAULT_REDACT_KEYS = (
    "password",
    "password_confirmation",
    "token",
    "authorization",
    "cookie",
    "auth",
    "secret",
    "key",
    "api_key",
    "access_token",
    "refresh_token",
    "jwt",
    "bearer",
    "x-api-key",
)


def is_sensitive_key(key, redact_keys: Iterable[str]) -> bool:
    """True if the lower-cased key contains any redact substring."""
    lowered = str(key).lower()
    return any(needle.lower() in lowered for needle in redact_keys)


def _redact_value(value, redact_keys):
    if isinstance(value, Mapping):
        return redact(value, redact_keys)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, redact_keys) for item in value]
    return value


def redact(data: Mapping, redact_keys: Iterable[str] = DEFAULT_REDACT_KEYS) -> dict:
    """Return a new dict with sensitive values replaced by REDACTION_MARKER."""
    redact_keys = tuple(redact_keys)
    result = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            result[key] = redact(value, redact_keys)
        elif is_sensitive_key(key, redact_keys):
            result[key] = REDACTION_MARKER
        elif isinstance(value, (list, tuple)):
            result[key] = _redact_value(value, redact_keys)
        else:
            result[key] = value
    return result
