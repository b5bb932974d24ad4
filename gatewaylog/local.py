"""Local sink — append-only, date-named log files plus a newest-first scanner."""

import glob
import json
import os
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Iterator

from gatewaylog.config import Config
from gatewaylog.parser import parse_line

LINE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_line(timestamp: datetime, env: str, level: str, message: str, context: dict | None) -> str:
    """Render one event as ``[ts] env.LEVEL: message {json}`` (no trailing newline)."""
    message = " ".join(str(message).splitlines())
    line = f"[{timestamp.strftime(LINE_TIMESTAMP_FORMAT)}] {env}.{level.upper()}: {message}"
    if context:
        line += " " + json.dumps(context, ensure_ascii=False, default=str, separators=(",", ":"))
    return line


def read_lines_reversed(filepath: str) -> list[str]:
    """All lines of a file, newest (last) first."""
    with open(filepath, "r", encoding="utf-8", errors="replace") as f:
        lines = f.read().split("\n")
    lines.reverse()
    return lines


def read_last_lines(filepath: str, count: int) -> list[str]:
    """The last *count* lines of a file, in file order."""
    with open(filepath, "r", encoding="utf-8", errors="replace") as f:
        return list(deque(f, maxlen=count))


class LocalSink:
    """Thread-safe appender; switches to a new file when the UTC date changes."""

    def __init__(self, config: Config, clock=None):
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._file = None
        self._filepath = None

    @property
    def log_dir(self) -> str:
        return self._config.log_dir

    def path_for(self, moment: datetime) -> str:
        day = moment.astimezone(timezone.utc).strftime("%Y-%m-%d")
        return os.path.join(self._config.log_dir, f"{self._config.log_file_prefix}-{day}.log")

    def _open(self, path: str):
        self._close()
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._file = open(path, "a", encoding="utf-8")
        self._filepath = path

    def _close(self):
        if self._file and not self._file.closed:
            self._file.close()
        self._file = None
        self._filepath = None

    def append(self, level: str, message: str, context: dict | None = None) -> str:
        """Append one line for an event. Returns the path written to."""
        now = self._clock()
        line = format_line(now, self._config.env, level, message, context)
        path = self.path_for(now)

        with self._lock:
            if self._file is None or self._file.closed or self._filepath != path:
                self._open(path)
            self._file.write(line + "\n")
            self._file.flush()
        return path

    def files(self) -> list[str]:
        """Log files for this sink, most recently modified first."""
        pattern = os.path.join(self._config.log_dir, f"{self._config.log_file_prefix}-*.log")
        stamped = []
        for path in glob.glob(pattern):
            try:
                stamped.append((os.path.getmtime(path), path))
            except FileNotFoundError:
                continue
        stamped.sort(reverse=True)
        return [path for _, path in stamped]

    def scan(self, max_files: int | None = None, max_lines: int | None = None) -> Iterator[dict]:
        """Yield parsed records, newest file first and newest line first.

        Unparseable and blank lines are skipped. With *max_lines* only that
        many trailing lines of each file are considered.
        """
        paths = self.files()
        if max_files is not None:
            paths = paths[:max_files]

        for path in paths:
            try:
                if max_lines is not None:
                    lines = read_last_lines(path, max_lines)
                    lines.reverse()
                else:
                    lines = read_lines_reversed(path)
            except FileNotFoundError:
                continue

            for line in lines:
                if not line.strip():
                    continue
                record = parse_line(line, default_app=self._config.app_name)
                if record is not None:
                    yield record

    def close(self):
        with self._lock:
            self._close()
