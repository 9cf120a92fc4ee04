"""Tests for the simulated Hadoop cluster bootstrapper."""

from pathlib import Path
from unittest.mock import patch

import pytest

from minihive.cluster import HadoopMiniCluster, SimulatedClusterBootstrapper, StartupError
from minihive.cluster.readiness import WaitResult, WaitStatus
from minihive.cluster.simulated import HadoopMiniCompute
from minihive.config import SiteConf


class TestSimulatedClusterBootstrapper:
    """Tests for SimulatedClusterBootstrapper."""

    def test_dfs_then_compute(self, cluster_factory, tmp_path):
        conf = SiteConf()
        fs = SimulatedClusterBootstrapper(cluster_factory).bootstrap(conf)

        assert cluster_factory.events == ["start:dfs", "start:compute"]
        assert cluster_factory.nodes == [4, 4]
        assert fs.uri == f"file://{tmp_path / 'dfs'}"
        assert cluster_factory.compute.fs_uri == fs.uri

    def test_compute_configuration_merged(self, cluster_factory):
        conf = SiteConf({"existing": "1"})
        SimulatedClusterBootstrapper(cluster_factory, nodes=2).bootstrap(conf)
        assert conf["mapreduce.framework.name"] == "yarn"
        assert conf["existing"] == "1"
        assert cluster_factory.nodes == [2, 2]

    def test_dfs_failure(self, cluster_factory):
        cluster_factory.fail_dfs_start = True
        bootstrapper = SimulatedClusterBootstrapper(cluster_factory)
        with pytest.raises(StartupError, match="namenode"):
            bootstrapper.bootstrap(SiteConf())
        assert "start:compute" not in cluster_factory.events
        assert bootstrapper.dfs is None

    def test_handles_recorded_on_partial_failure(self, cluster_factory):
        bootstrapper = SimulatedClusterBootstrapper(cluster_factory)
        with patch.object(cluster_factory, "start_compute", side_effect=RuntimeError("rm down")):
            with pytest.raises(StartupError, match="rm down"):
                bootstrapper.bootstrap(SiteConf())
        assert bootstrapper.dfs is not None
        assert bootstrapper.compute is None


class TestHadoopMiniCluster:
    """Tests for the `mapred minicluster` backed factory (processes mocked)."""

    def test_resolve_from_hadoop_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HADOOP_HOME", "/opt/hadoop")
        assert HadoopMiniCluster(tmp_path).resolve_mapred_bin() == str(
            Path("/opt/hadoop/bin/mapred")
        )

    def test_resolve_missing(self, monkeypatch, tmp_path):
        monkeypatch.delenv("HADOOP_HOME", raising=False)
        monkeypatch.setattr("minihive.cluster.simulated.shutil.which", lambda name: None)
        with pytest.raises(StartupError, match="mapred not found"):
            HadoopMiniCluster(tmp_path).resolve_mapred_bin()

    def test_start_dfs_command(self, tmp_path):
        cluster = HadoopMiniCluster(tmp_path, mapred_bin="mapred")
        ready = WaitResult(WaitStatus.READY, "up", 0.1, 1)
        with (
            patch("minihive.cluster.simulated.ProcessService") as mock_service,
            patch("minihive.cluster.simulated.wait_for_condition", return_value=ready),
        ):
            dfs = cluster.start_dfs(SiteConf(), 4)

        command = mock_service.call_args.kwargs["command"]
        assert command[:3] == ["mapred", "minicluster", "-nomr"]
        assert command[command.index("-datanodes") + 1] == "4"
        port = command[command.index("-nnport") + 1]
        assert dfs.uri == f"hdfs://localhost:{port}"
        assert command[-2:] == ["-writeConfig", str(tmp_path / "dfs-site.xml")]
        mock_service.return_value.start.assert_called_once()

    def test_start_failure_stops_process(self, tmp_path):
        cluster = HadoopMiniCluster(tmp_path, mapred_bin="mapred")
        timeout = WaitResult(WaitStatus.TIMEOUT, "no config written", 180.0, 90)
        with (
            patch("minihive.cluster.simulated.ProcessService") as mock_service,
            patch("minihive.cluster.simulated.wait_for_condition", return_value=timeout),
        ):
            with pytest.raises(StartupError, match="mini-compute did not start"):
                cluster.start_compute(SiteConf(), 4, "hdfs://localhost:9000")
        mock_service.return_value.stop.assert_called_once()

    def test_compute_configuration_read_from_written_file(self, tmp_path):
        path = SiteConf({"yarn.resourcemanager.address": "localhost:8032"}).write(
            tmp_path / "compute-site.xml"
        )
        compute = HadoopMiniCompute(service=None, config_path=path)
        conf = SiteConf()
        compute.setup_configuration(conf)
        assert conf["yarn.resourcemanager.address"] == "localhost:8032"
