"""Local log line parser — compiled regex plus trailing JSON context.

Lines look like::

    [2026-10-18 09:15:02] production.ERROR: [REMOTE-FALLBACK] boom {"level":"error",...}
"""

import hashlib
import json
import re
from datetime import datetime, timezone

LINE_PATTERN = re.compile(r"^\[([^\]]+)\]\s+(\w+)\.(\w+):\s+(.+)$")

PREFIX_PATTERN = re.compile(r"^\[REMOTE(-FALLBACK)?\]\s*")

_DECODER = json.JSONDecoder()


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_context(text: str) -> tuple[str, dict]:
    """Split ``message {json}`` into the message and the decoded JSON object.

    Starts at the last ``{`` and walks left until a brace opens a JSON object
    running to the end of the line, so nested objects decode whole. Without
    such an object the message ends at the last ``{`` and the context is empty.
    """
    last = text.rfind("{")
    if last == -1:
        return text.strip(), {}

    pos = last
    while pos != -1:
        try:
            obj, end = _DECODER.raw_decode(text, pos)
        except ValueError:
            obj, end = None, pos
        if isinstance(obj, dict) and not text[end:].strip():
            return text[:pos].strip(), obj
        pos = text.rfind("{", 0, pos)

    return text[:last].strip(), {}


def strip_prefix(message: str) -> str:
    return PREFIX_PATTERN.sub("", message, count=1)


def parse_line(line: str, default_app: str | None = None) -> dict | None:
    """Parse one local log line into a record dict. Returns None for unparseable lines."""
    raw = line.rstrip("\r\n")
    match = LINE_PATTERN.match(raw)
    if not match:
        return None

    timestamp_str, env, level_word, rest = match.groups()
    timestamp = parse_timestamp(timestamp_str)
    if timestamp is None:
        return None

    message, data = split_context(rest)

    context = data.get("context")
    http = data.get("http")
    user = data.get("user")
    return {
        "id": hashlib.md5(raw.encode("utf-8")).hexdigest(),
        "timestamp": timestamp.isoformat(),
        "level": level_word.lower(),
        "message": strip_prefix(message),
        "domain": data.get("domain"),
        "action": data.get("action"),
        "app": data.get("app", default_app),
        "env": env,
        "http": http if isinstance(http, dict) else {},
        "user": user if isinstance(user, dict) else {},
        "context": context if isinstance(context, dict) else {},
        "exception": data.get("exception"),
    }
