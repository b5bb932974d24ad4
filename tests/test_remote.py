"""Tests for the remote sink."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from gatewaylog.document import DocumentBuilder
from gatewaylog.remote import (
    RemoteSink,
    RemoteSinkError,
    build_filters_query,
    build_search_query,
)

from conftest import FakeRemote, make_config, make_remote


@pytest.fixture
def document(tmp_path, fixed_clock):
    return DocumentBuilder(make_config(tmp_path), clock=fixed_clock).build("error", "boom")


class TestIndexName:
    def test_dated_index(self, tmp_path):
        cfg = make_config(tmp_path, remote={"index_prefix": "gateway-logs"})
        remote = make_remote(cfg, FakeRemote())
        assert remote.index_name() == "gateway-logs-2026.10.18"
        assert remote.search_index() == "gateway-logs-*"

    def test_index_follows_day_rollover(self, tmp_path):
        days = iter([
            datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc),
            datetime(2026, 10, 19, 0, 0, 1, tzinfo=timezone.utc),
        ])
        cfg = make_config(tmp_path)
        remote = make_remote(cfg, FakeRemote(), clock=lambda: next(days))
        assert remote.index_name().endswith("2026.10.18")
        assert remote.index_name().endswith("2026.10.19")

    def test_fixed_index_override(self, tmp_path):
        cfg = make_config(tmp_path, remote={"index": "fixed"})
        remote = make_remote(cfg, FakeRemote())
        assert remote.index_name() == "fixed"
        assert remote.search_index() == "fixed"


class TestIsHealthy:
    @pytest.mark.parametrize("status,expected", [
        ("green", True), ("yellow", True), ("red", False),
    ])
    def test_cluster_status(self, tmp_path, status, expected):
        remote = make_remote(make_config(tmp_path), FakeRemote(status=status))
        assert remote.is_healthy() is expected

    def test_connection_error(self, tmp_path):
        remote = make_remote(make_config(tmp_path), FakeRemote(down=True))
        assert remote.is_healthy() is False

    def test_timeout(self, tmp_path):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        remote = RemoteSink(make_config(tmp_path).remote, client=client)
        assert remote.is_healthy(timeout=0.01) is False

    def test_non_success_status(self, tmp_path):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        remote = RemoteSink(make_config(tmp_path).remote, client=client)
        assert remote.is_healthy() is False

    def test_invalid_json(self, tmp_path):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="ok")))
        remote = RemoteSink(make_config(tmp_path).remote, client=client)
        assert remote.is_healthy() is False

    def test_malformed_host(self, tmp_path):
        fake = FakeRemote()
        remote = make_remote(make_config(tmp_path, remote={"host": "http://[::1"}), fake)
        assert remote.is_healthy() is False
        assert fake.requests == []


class TestSend:
    def test_posts_document_to_dated_index(self, tmp_path, document):
        fake = FakeRemote()
        remote = make_remote(make_config(tmp_path), fake)
        assert remote.send(document) is True
        assert fake.paths() == ["/_cluster/health", "/gateway-logs-2026.10.18/_doc"]
        posted = json.loads(fake.requests[-1].content)
        assert posted["message"] == "boom"
        assert posted["level"] == "error"

    def test_disabled_skips_network(self, tmp_path, document):
        fake = FakeRemote()
        remote = make_remote(make_config(tmp_path, remote={"enabled": False}), fake)
        assert remote.send(document) is False
        assert fake.requests == []

    def test_unhealthy_skips_write(self, tmp_path, document):
        fake = FakeRemote(status="red")
        remote = make_remote(make_config(tmp_path), fake)
        assert remote.send(document) is False
        assert fake.paths("POST") == []

    def test_rejected_write(self, tmp_path, document):
        remote = make_remote(make_config(tmp_path), FakeRemote(doc_status=400))
        assert remote.send(document) is False

    def test_unreachable_never_raises(self, tmp_path, document):
        remote = make_remote(make_config(tmp_path), FakeRemote(down=True))
        assert remote.send(document) is False


class TestSearch:
    def test_returns_payload(self, tmp_path):
        fake = FakeRemote(search_payload={"hits": {"hits": [{"_id": "1"}]}})
        remote = make_remote(make_config(tmp_path), fake)
        assert remote.search({"size": 1}) == {"hits": {"hits": [{"_id": "1"}]}}
        assert fake.paths() == ["/gateway-logs-*/_search"]

    def test_error_status_raises(self, tmp_path):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        remote = RemoteSink(make_config(tmp_path).remote, client=client)
        with pytest.raises(RemoteSinkError) as excinfo:
            remote.search({})
        assert excinfo.value.status_code == 500

    def test_connection_error_raises(self, tmp_path):
        remote = make_remote(make_config(tmp_path), FakeRemote(down=True))
        with pytest.raises(RemoteSinkError):
            remote.search({})

    def test_malformed_host_raises(self, tmp_path):
        remote = make_remote(make_config(tmp_path, remote={"host": "http://[::1"}), FakeRemote())
        with pytest.raises(RemoteSinkError):
            remote.search({})


class TestQueryBodies:
    def test_all_filters_omitted(self):
        body = build_search_query(limit=25)
        assert body["size"] == 25
        assert body["sort"] == [{"timestamp": {"order": "desc"}}]
        assert body["query"]["bool"]["must"] == []

    def test_every_filter(self):
        body = build_search_query("error", "company", "create", "boom", "2026-10-01T00:00:00Z", 10)
        must = body["query"]["bool"]["must"]
        assert {"term": {"level.keyword": "error"}} in must
        assert {"term": {"domain.keyword": "company"}} in must
        assert {"term": {"action.keyword": "create"}} in must
        assert {"multi_match": {"query": "boom", "fields": ["message", "context.*"]}} in must
        assert {"range": {"timestamp": {"gte": "2026-10-01T00:00:00Z"}}} in must

    def test_filters_aggregation_sizes(self):
        aggs = build_filters_query()["aggs"]
        assert aggs["levels"]["terms"]["size"] == 20
        assert aggs["domains"]["terms"]["size"] == 50
        assert aggs["actions"]["terms"]["size"] == 100
