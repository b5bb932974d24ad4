"""Distinct levels, domains and actions for the dashboard filter menus."""

import logging

from gatewaylog.query import LogQueryService
from gatewaylog.local import LocalSink
from gatewaylog.remote import RemoteSink, RemoteSinkError, build_filters_query

logger = logging.getLogger(__name__)

RECENT_FILES = 3
RECENT_LINES = 1000


def _bucket_keys(aggregations: dict, name: str) -> list[str]:
    buckets = (aggregations.get(name) or {}).get("buckets") or []
    return [b["key"] for b in buckets if b.get("key")]


class FilterCatalog:
    def __init__(self, query_service: LogQueryService, remote: RemoteSink, local: LocalSink,
                 recent_files: int = RECENT_FILES, recent_lines: int = RECENT_LINES):
        self._query_service = query_service
        self._remote = remote
        self._local = local
        self._recent_files = recent_files
        self._recent_lines = recent_lines

    def available_filters(self) -> dict[str, list[str]]:
        if self._query_service.remote_available():
            try:
                return self._remote_filters()
            except (RemoteSinkError, AttributeError, KeyError, TypeError) as exc:
                logger.warning("Remote filter aggregation failed, reading local files: %s", exc)
        return self._local_filters()

    def _remote_filters(self) -> dict[str, list[str]]:
        data = self._remote.search(build_filters_query())
        aggregations = data.get("aggregations") or {}
        return {
            "levels": _bucket_keys(aggregations, "levels"),
            "domains": _bucket_keys(aggregations, "domains"),
            "actions": _bucket_keys(aggregations, "actions"),
        }

    def _local_filters(self) -> dict[str, list[str]]:
        """Approximation from recent local lines only."""
        levels, domains, actions = set(), set(), set()
        for record in self._local.scan(max_files=self._recent_files, max_lines=self._recent_lines):
            levels.add(record["level"])
            if record.get("domain"):
                domains.add(str(record["domain"]))
            if record.get("action"):
                actions.add(str(record["action"]))
        return {
            "levels": sorted(levels),
            "domains": sorted(domains),
            "actions": sorted(actions),
        }
