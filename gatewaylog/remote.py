"""Remote sink: a date-partitioned, Elasticsearch-compatible document index.

Every call is bounded by a timeout. The write path only ever sees booleans;
the read path gets RemoteSinkError so the caller can fall back to local files.
"""

import logging
from datetime import datetime, timezone

import httpx

from gatewaylog.config import RemoteConfig
from gatewaylog.models import LogDocument

logger = logging.getLogger(__name__)

HEALTHY_STATUSES = ("green", "yellow")

LEVELS_AGG_SIZE = 20
DOMAINS_AGG_SIZE = 50
ACTIONS_AGG_SIZE = 100


class RemoteSinkError(Exception):
    """Raised when a remote search or aggregation cannot be completed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteSink:
    def __init__(self, config: RemoteConfig, client: httpx.Client | None = None, clock=None):
        self._config = config
        self._client = client or httpx.Client()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def index_name(self) -> str:
        """Index for a write happening now: ``<prefix>-YYYY.MM.DD`` (UTC)."""
        if self._config.index:
            return self._config.index
        now = self._clock().astimezone(timezone.utc)
        return f"{self._config.index_prefix}-{now.strftime('%Y.%m.%d')}"

    def search_index(self) -> str:
        """Index pattern covering every daily partition."""
        if self._config.index:
            return self._config.index
        return f"{self._config.index_prefix}-*"

    def is_healthy(self, timeout: float | None = None) -> bool:
        """True only if the cluster answers and reports green or yellow."""
        if timeout is None:
            timeout = self._config.timeout
        try:
            response = self._client.get(
                f"{self._config.host}/_cluster/health", timeout=timeout
            )
            if not response.is_success:
                return False
            health = response.json()
        except Exception as exc:
            logger.debug("Remote health check failed: %s", exc)
            return False
        return isinstance(health, dict) and health.get("status") in HEALTHY_STATUSES

    def send(self, document: LogDocument) -> bool:
        """POST a document to today's index. Returns True on a 2xx answer."""
        if not self._config.enabled:
            return False
        try:
            if not self.is_healthy(self._config.timeout):
                return False
            response = self._client.post(
                f"{self._config.host}/{self.index_name()}/_doc",
                json=document.to_dict(),
                timeout=self._config.timeout,
            )
            return response.is_success
        except Exception as exc:
            logger.debug("Remote send failed: %s", exc)
            return False

    def search(self, body: dict) -> dict:
        """Run a ``_search`` request and return the decoded answer."""
        url = f"{self._config.host}/{self.search_index()}/_search"
        try:
            response = self._client.post(url, json=body, timeout=self._config.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteSinkError(f"Remote search failed: {exc}") from exc

        if not response.is_success:
            raise RemoteSinkError(
                f"Remote search answered {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteSinkError("Remote search returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RemoteSinkError("Remote search returned an unexpected payload")
        return data

    def close(self):
        self._client.close()


def build_search_query(
    level: str = "all",
    domain: str = "all",
    action: str = "all",
    search: str = "",
    since: str | None = None,
    limit: int = 100,
) -> dict:
    """Filtered, newest-first search body for the log feed."""
    must = []
    for field_name, value in (("level", level), ("domain", domain), ("action", action)):
        if value and value != "all":
            must.append({"term": {f"{field_name}.keyword": value}})
    if search:
        must.append({"multi_match": {"query": search, "fields": ["message", "context.*"]}})
    if since:
        must.append({"range": {"timestamp": {"gte": since}}})

    return {
        "size": limit,
        "sort": [{"timestamp": {"order": "desc"}}],
        "query": {"bool": {"must": must}},
    }


def build_filters_query() -> dict:
    """Aggregation body returning the distinct levels, domains and actions."""
    return {
        "size": 0,
        "aggs": {
            "levels": {"terms": {"field": "level.keyword", "size": LEVELS_AGG_SIZE}},
            "domains": {"terms": {"field": "domain.keyword", "size": DOMAINS_AGG_SIZE}},
            "actions": {"terms": {"field": "action.keyword", "size": ACTIONS_AGG_SIZE}},
        },
    }
