"""Shared fixtures for the minihive test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from minihive.cluster import LocalFileSystem, MiniHS2
from minihive.config import SiteConf, TopologyBuilder, TopologyConfig

PRINCIPAL = "hive/localhost@EXAMPLE.COM"
KEYTAB = "/etc/security/keytabs/hive.keytab"


def make_config(
    temp_root: Path | str,
    *,
    http: bool = False,
    remote_metastore: bool = False,
    secure_metastore: bool = False,
    simulated: bool = False,
    kerberos: bool = False,
    conf: dict | None = None,
    probe: tuple[float, float] = (0.01, 2.0),
    cleanup: bool = True,
) -> TopologyConfig:
    """Create a TopologyConfig with fast probe timing for tests.

    This is the canonical config factory for tests. Prefer this over
    hand-building builders so new options are handled in one place.
    """
    builder = TopologyBuilder().with_temp_root(str(temp_root))
    builder.with_readiness_probe(*probe).cleanup_workspace_on_startup(cleanup)
    if http:
        builder.with_http_transport()
    if remote_metastore:
        builder.with_remote_metastore()
    if secure_metastore:
        builder.with_secure_remote_metastore(PRINCIPAL, KEYTAB)
    if simulated:
        builder.with_simulated_compute()
    if kerberos:
        builder.with_simulated_auth(PRINCIPAL, KEYTAB)
    if conf:
        builder.with_conf(conf)
    return builder.build()


# =============================================================================
# Fake services
# =============================================================================


class FakeService:
    """In-memory ServiceHandle that records lifecycle calls in a shared log."""

    def __init__(self, name: str, events: list[str], fail_start=False, fail_stop=False):
        self.name = name
        self.events = events
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.alive = False
        self.stop_calls = 0

    @property
    def is_alive(self) -> bool:
        return self.alive

    def start(self) -> None:
        self.events.append(f"start:{self.name}")
        if self.fail_start:
            raise RuntimeError(f"{self.name} refused to start")
        self.alive = True

    def stop(self) -> None:
        self.stop_calls += 1
        self.events.append(f"stop:{self.name}")
        if self.fail_stop:
            raise RuntimeError(f"{self.name} refused to stop")
        self.alive = False


class FakeServices:
    """Front-end and metastore factories that snapshot the conf they receive."""

    def __init__(self):
        self.events: list[str] = []
        self.front_end_conf: dict[str, str] = {}
        self.metastore_conf: dict[str, str] = {}
        self.metastore_port: int | None = None
        self.server: FakeService | None = None
        self.metastore_handle: FakeService | None = None
        self.fail_front_end_start = False
        self.fail_front_end_stop = False

    def front_end(self, conf: SiteConf, workspace) -> FakeService:
        self.events.append("build:hiveserver2")
        self.front_end_conf = conf.as_dict()
        self.server = FakeService(
            "hiveserver2",
            self.events,
            fail_start=self.fail_front_end_start,
            fail_stop=self.fail_front_end_stop,
        )
        return self.server

    def metastore(self, port: int, conf: SiteConf, workspace) -> FakeService:
        self.events.append("build:metastore")
        self.metastore_port = port
        self.metastore_conf = conf.as_dict()
        self.metastore_handle = FakeService("metastore", self.events)
        return self.metastore_handle


class FakeSessionClient:
    """SessionClient that refuses the first ``failures`` sessions."""

    def __init__(self, failures: int = 0, on_open=None):
        self.failures = failures
        self.on_open = on_open
        self.opened: list[tuple[str, str]] = []
        self.closed = 0

    def open_session(self, user, password, conf=None):
        self.opened.append((user, password))
        if self.on_open is not None:
            self.on_open()
        if len(self.opened) <= self.failures:
            raise ConnectionRefusedError("connection refused")
        return object()

    def close_session(self, handle) -> None:
        self.closed += 1


# =============================================================================
# Fake simulated cluster
# =============================================================================


class RootedLocalFileSystem(LocalFileSystem):
    """Local filesystem posing as a cluster filesystem rooted at ``root``."""

    def __init__(self, root: Path):
        self.root = root

    @property
    def uri(self) -> str:
        return f"file://{self.root.as_posix()}"


class FakeDfs:
    def __init__(self, root: Path, events: list[str], fail_stop=False):
        self.filesystem = RootedLocalFileSystem(root)
        self.events = events
        self.fail_stop = fail_stop

    @property
    def uri(self) -> str:
        return self.filesystem.uri

    def get_filesystem(self):
        return self.filesystem

    def shutdown(self) -> None:
        self.events.append("stop:dfs")
        if self.fail_stop:
            raise RuntimeError("datanode hung")


class FakeCompute:
    def __init__(self, fs_uri: str, events: list[str], fail_stop=False):
        self.fs_uri = fs_uri
        self.events = events
        self.fail_stop = fail_stop

    def setup_configuration(self, conf: SiteConf) -> None:
        conf.set("fs.defaultFS", self.fs_uri)
        conf.set("mapreduce.framework.name", "yarn")

    def shutdown(self) -> None:
        self.events.append("stop:compute")
        if self.fail_stop:
            raise RuntimeError("nodemanager hung")


class FakeClusterFactory:
    """SimulatedClusterFactory backed by a directory on local disk."""

    def __init__(self, root: Path, events: list[str] | None = None):
        self.root = root
        self.events = events if events is not None else []
        self.nodes: list[int] = []
        self.fail_dfs_start = False
        self.fail_compute_stop = False
        self.dfs: FakeDfs | None = None
        self.compute: FakeCompute | None = None

    def start_dfs(self, conf, nodes):
        self.events.append("start:dfs")
        self.nodes.append(nodes)
        if self.fail_dfs_start:
            raise RuntimeError("namenode failed to format")
        self.root.mkdir(parents=True, exist_ok=True)
        self.dfs = FakeDfs(self.root, self.events)
        return self.dfs

    def start_compute(self, conf, nodes, fs_uri):
        self.events.append("start:compute")
        self.nodes.append(nodes)
        self.compute = FakeCompute(fs_uri, self.events, fail_stop=self.fail_compute_stop)
        return self.compute


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def topology(tmp_path):
    """``make_config`` bound to this test's tmp_path."""

    def _make(**options) -> TopologyConfig:
        return make_config(tmp_path, **options)

    return _make


@pytest.fixture
def fake_service():
    """Factory for FakeService handles sharing one event log."""
    events: list[str] = []

    def _make(name: str, **flags) -> FakeService:
        return FakeService(name, events, **flags)

    _make.events = events
    return _make


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def session_client() -> FakeSessionClient:
    return FakeSessionClient()


@pytest.fixture
def flaky_client():
    """Factory for session clients that refuse the first N sessions."""
    return FakeSessionClient


@pytest.fixture
def cluster_factory(tmp_path, services) -> FakeClusterFactory:
    """Simulated cluster sharing the services' event log."""
    return FakeClusterFactory(tmp_path / "dfs", services.events)


@pytest.fixture
def make_hs2(services, session_client, cluster_factory):
    """Build a MiniHS2 wired to the fake services."""

    def _make(config: TopologyConfig, client=None) -> MiniHS2:
        client = client or session_client
        return MiniHS2(
            config,
            front_end_factory=services.front_end,
            metastore_factory=services.metastore,
            cluster_factory=cluster_factory,
            session_client_factory=lambda cfg, ports: client,
        )

    return _make


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that exercise the hdfs command line."""
    with patch("subprocess.run") as m:
        m.return_value = MagicMock(
            returncode=0,
            stdout="",
            stderr="",
        )
        yield m
