import dataclasses
from datetime import datetime, timezone

import httpx
import pytest

from gatewaylog.config import Config, RemoteConfig
from gatewaylog.local import LocalSink
from gatewaylog.remote import RemoteSink
from gatewaylog.writer import LogWriter

FIXED_NOW = datetime(2026, 10, 18, 9, 15, 2, tzinfo=timezone.utc)


class FakeRemote:
    """Records requests made through an httpx.MockTransport."""

    def __init__(self, status="green", doc_status=201, search_payload=None, down=False):
        self.status = status
        self.doc_status = doc_status
        self.search_payload = search_payload or {"hits": {"hits": []}}
        self.down = down
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        if path == "/_cluster/health":
            return httpx.Response(200, json={"status": self.status})
        if path.endswith("/_doc"):
            return httpx.Response(self.doc_status, json={"result": "created"})
        if path.endswith("/_search"):
            return httpx.Response(200, json=self.search_payload)
        return httpx.Response(404)

    def paths(self, method=None):
        return [r.url.path for r in self.requests if method is None or r.method == method]


def make_config(log_dir, **overrides) -> Config:
    remote_overrides = overrides.pop("remote", {})
    config = Config(log_dir=str(log_dir), env="testing", app_name="gateway", **overrides)
    return dataclasses.replace(config, remote=dataclasses.replace(RemoteConfig(), **remote_overrides))


def make_remote(config: Config, fake: FakeRemote, clock=None) -> RemoteSink:
    client = httpx.Client(transport=httpx.MockTransport(fake))
    return RemoteSink(config.remote, client=client, clock=clock or (lambda: FIXED_NOW))


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def config(log_dir):
    return make_config(log_dir)


@pytest.fixture
def local_sink(config, fixed_clock):
    sink = LocalSink(config, clock=fixed_clock)
    yield sink
    sink.close()


@pytest.fixture
def writer_factory(log_dir, fixed_clock):
    """Build (writer, local_sink, fake_remote) triples with config overrides."""
    sinks = []

    def factory(fake=None, **overrides):
        cfg = make_config(log_dir, **overrides)
        fake = fake or FakeRemote()
        local = LocalSink(cfg, clock=fixed_clock)
        sinks.append(local)
        writer = LogWriter(cfg, remote=make_remote(cfg, fake), local=local)
        return writer, local, fake

    yield factory
    for sink in sinks:
        sink.close()


def read_log_lines(log_dir) -> list[str]:
    lines = []
    for path in sorted(log_dir.glob("*.log")):
        lines.extend(path.read_text(encoding="utf-8").splitlines())
    return lines
