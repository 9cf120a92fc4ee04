"""Tests for ServiceSupervisor start ordering."""

from unittest.mock import patch

import pytest

from minihive.cluster import PortAssignment, ServiceSupervisor, StartupError, WorkspaceProvisioner
from minihive.config import ConfVars, SiteConf


@pytest.fixture
def make_supervisor(services):
    def _make(config):
        conf = SiteConf(config.base_conf)
        workspace = WorkspaceProvisioner(config).provision(conf)
        return ServiceSupervisor(
            config,
            conf,
            PortAssignment.allocate(),
            workspace,
            front_end_factory=services.front_end,
            metastore_factory=services.metastore,
        )

    return _make


class TestServiceSupervisor:
    """Tests for ServiceSupervisor.start()."""

    def test_embedded_metastore_not_started(self, topology, services, make_supervisor):
        supervisor = make_supervisor(topology())
        server = supervisor.start()

        assert server is services.server
        assert server.is_alive
        assert supervisor.metastore is None
        assert services.events == ["build:hiveserver2", "start:hiveserver2"]
        assert ConfVars.METASTORE_URIS not in services.front_end_conf

    def test_remote_metastore_before_front_end(self, topology, services, make_supervisor):
        supervisor = make_supervisor(topology(remote_metastore=True))
        supervisor.start()

        assert services.events == [
            "build:metastore",
            "start:metastore",
            "build:hiveserver2",
            "start:hiveserver2",
        ]
        uri = f"thrift://localhost:{services.metastore_port}"
        assert services.metastore_conf[ConfVars.METASTORE_URIS] == uri
        assert services.front_end_conf[ConfVars.METASTORE_URIS] == uri
        assert supervisor.ports.metastore == services.metastore_port

    def test_front_end_ports_in_conf(self, topology, services, make_supervisor):
        supervisor = make_supervisor(topology())
        supervisor.start()

        conf = services.front_end_conf
        assert conf[ConfVars.THRIFT_BIND_HOST] == "localhost"
        assert conf[ConfVars.THRIFT_PORT] == str(supervisor.ports.binary)
        assert conf[ConfVars.THRIFT_HTTP_PORT] == str(supervisor.ports.http)

    def test_overrides_win(self, topology, services, make_supervisor):
        config = topology(http=True, conf={"p": "base"})
        supervisor = make_supervisor(config)
        supervisor.start({"p": "v", ConfVars.THRIFT_PORT: "1"})

        conf = services.front_end_conf
        assert conf["p"] == "v"
        assert conf[ConfVars.THRIFT_PORT] == "1"
        assert conf[ConfVars.TRANSPORT_MODE] == "http"

    def test_factory_error_wrapped(self, topology, make_supervisor):
        supervisor = make_supervisor(topology())

        def broken(conf, workspace):
            raise ValueError("bad conf")

        supervisor.front_end_factory = broken
        with pytest.raises(StartupError, match="bad conf"):
            supervisor.start()
        assert supervisor.server is None

    def test_failed_start_keeps_handle(self, topology, services, make_supervisor):
        services.fail_front_end_start = True
        supervisor = make_supervisor(topology())
        with pytest.raises(StartupError, match="refused to start"):
            supervisor.start()
        assert supervisor.server is services.server
        assert not supervisor.server.is_alive

    def test_no_retry(self, topology, services, make_supervisor):
        services.fail_front_end_start = True
        supervisor = make_supervisor(topology())
        with pytest.raises(StartupError):
            supervisor.start()
        assert services.events.count("start:hiveserver2") == 1

    def test_metastore_stopped_at_exit(self, topology, services, make_supervisor):
        supervisor = make_supervisor(topology(remote_metastore=True))
        with patch("minihive.cluster.supervisor.atexit.register") as register:
            supervisor.start()

        register.assert_called_once_with(services.metastore_handle.stop)
        assert services.metastore_handle.is_alive

    def test_no_exit_hook_for_embedded_metastore(self, topology, make_supervisor):
        supervisor = make_supervisor(topology())
        with patch("minihive.cluster.supervisor.atexit.register") as register:
            supervisor.start()
        register.assert_not_called()
