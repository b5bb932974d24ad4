"""Read path for the log feed, served from the remote index or local files."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from gatewaylog.config import Config
from gatewaylog.labels import LabelCatalog
from gatewaylog.local import LocalSink
from gatewaylog.parser import parse_timestamp
from gatewaylog.remote import RemoteSink, RemoteSinkError, build_search_query

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass
class QueryResult:
    logs: list[dict] = field(default_factory=list)
    fallback_mode: bool = False

    @property
    def count(self) -> int:
        return len(self.logs)


def _active(value: str | None) -> bool:
    return bool(value) and value != ALL


def build_filter_chain(
    level: str = ALL,
    domain: str = ALL,
    action: str = ALL,
    search: str = "",
    since: datetime | None = None,
) -> Callable[[dict], bool]:
    """Combine the active filters into one predicate over local records."""
    predicates = []

    if _active(level):
        predicates.append(lambda r, v=level: r.get("level") == v)
    if _active(domain):
        predicates.append(lambda r, v=domain: r.get("domain") == v)
    if _active(action):
        predicates.append(lambda r, v=action: r.get("action") == v)
    if search:
        needle = search.lower()
        predicates.append(lambda r: needle in _searchable_text(r))
    if since is not None:
        predicates.append(lambda r: _not_before(r, since))

    if not predicates:
        return lambda record: True

    def combined(record: dict) -> bool:
        return all(p(record) for p in predicates)

    return combined


def _searchable_text(record: dict) -> str:
    context = json.dumps(record.get("context") or {}, ensure_ascii=False, default=str)
    return f"{record.get('message', '')} {context}".lower()


def _not_before(record: dict, since: datetime) -> bool:
    ts = parse_timestamp(record.get("timestamp") or "")
    return ts is not None and ts >= since


def _sort_key(record: dict):
    ts = parse_timestamp(record.get("timestamp") or "")
    return ts.timestamp() if ts is not None else float("-inf")


class LogQueryService:
    def __init__(self, config: Config, remote: RemoteSink, local: LocalSink, labels: LabelCatalog | None = None):
        self._config = config
        self._remote = remote
        self._local = local
        self._labels = labels or LabelCatalog(config.label_locale)

    def remote_available(self) -> bool:
        """Short health probe used by the dashboard; False when disabled."""
        if not self._remote.enabled:
            return False
        return self._remote.is_healthy(timeout=self._config.remote.probe_timeout)

    def query(
        self,
        level: str = ALL,
        domain: str = ALL,
        action: str = ALL,
        search: str = "",
        since: str | None = None,
        limit: int = 100,
    ) -> QueryResult:
        """Return at most *limit* records, newest first.

        ``since`` must be ISO-8601; a ValueError is raised otherwise.
        """
        since_dt = None
        if since:
            since_dt = parse_timestamp(since)
            if since_dt is None:
                raise ValueError(f"Invalid since timestamp: {since!r}")

        if self.remote_available():
            try:
                logs = self._query_remote(level, domain, action, search, since, limit)
                return QueryResult(logs=logs, fallback_mode=False)
            except (RemoteSinkError, AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Remote log query failed, reading local files: %s", exc)

        logs = self._query_local(level, domain, action, search, since_dt, limit)
        return QueryResult(logs=logs, fallback_mode=True)

    def _query_remote(self, level, domain, action, search, since, limit) -> list[dict]:
        body = build_search_query(level, domain, action, search, since, limit)
        data = self._remote.search(body)
        hits = (data.get("hits") or {}).get("hits") or []
        return [self.present({**hit["_source"], "id": hit.get("_id")}) for hit in hits]

    def _query_local(self, level, domain, action, search, since, limit) -> list[dict]:
        accept = build_filter_chain(level, domain, action, search, since)
        logs = []
        if limit <= 0:
            return logs
        for record in self._local.scan():
            if accept(record):
                logs.append(self.present(record))
                if len(logs) >= limit:
                    break
        logs.sort(key=_sort_key, reverse=True)
        return logs

    def present(self, source: dict) -> dict:
        """Uniform record shape with labels, whichever store it came from."""
        level = source.get("level")
        domain = source.get("domain")
        action = source.get("action")
        return {
            "id": source.get("id"),
            "timestamp": source.get("timestamp"),
            "level": level,
            "level_name": self._labels.label("levels", level),
            "message": source.get("message"),
            "domain": domain,
            "domain_name": self._labels.label("domains", domain),
            "action": action,
            "action_name": self._labels.label("actions", action),
            "app": source.get("app") or self._config.app_name,
            "env": source.get("env") or self._config.env,
            "http": source.get("http") or {},
            "user": source.get("user") or {},
            "context": source.get("context") or {},
            "exception": source.get("exception"),
        }
