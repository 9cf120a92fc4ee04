"""Simulated Hadoop cluster bootstrapping.

The DFS and compute cluster themselves are external; this module only
sequences their start and feeds the compute cluster's runtime configuration
back into the site conf so HiveServer2 submits jobs to it.
"""

from __future__ import annotations

import logging
import os
import shutil
import socket
import threading
from pathlib import Path
from typing import Protocol

from minihive._constants import SIMULATED_NODES
from minihive.config import SiteConf

from .fs import FileSystem, HdfsFileSystem
from .ports import find_free_port
from .readiness import WaitStatus, wait_for_condition
from .services import ProcessService, StartupError

logger = logging.getLogger(__name__)


class SimulatedDfs(Protocol):
    """A running simulated distributed filesystem."""

    @property
    def uri(self) -> str: ...

    def get_filesystem(self) -> FileSystem: ...

    def shutdown(self) -> None: ...


class SimulatedCompute(Protocol):
    """A running simulated compute cluster."""

    def setup_configuration(self, conf: SiteConf) -> None: ...

    def shutdown(self) -> None: ...


class SimulatedClusterFactory(Protocol):
    def start_dfs(self, conf: SiteConf, nodes: int) -> SimulatedDfs: ...

    def start_compute(self, conf: SiteConf, nodes: int, fs_uri: str) -> SimulatedCompute: ...


class SimulatedClusterBootstrapper:
    """Starts the DFS, then a compute cluster bound to it.

    Handles are stored as soon as each start returns, so a failure half-way
    still leaves something for teardown to stop.
    """

    def __init__(self, factory: SimulatedClusterFactory, nodes: int = SIMULATED_NODES):
        self.factory = factory
        self.nodes = nodes
        self.dfs: SimulatedDfs | None = None
        self.compute: SimulatedCompute | None = None
        self.filesystem: FileSystem | None = None

    def bootstrap(self, conf: SiteConf) -> FileSystem:
        """Start both clusters and return the DFS filesystem handle.

        Raises:
            StartupError: If either cluster fails to start.
        """
        try:
            logger.info("Starting simulated DFS with %d nodes", self.nodes)
            self.dfs = self.factory.start_dfs(conf, self.nodes)
            self.filesystem = self.dfs.get_filesystem()

            logger.info("Starting simulated compute cluster on %s", self.filesystem.uri)
            self.compute = self.factory.start_compute(conf, self.nodes, self.filesystem.uri)
            self.compute.setup_configuration(conf)
        except StartupError:
            raise
        except Exception as e:
            raise StartupError(f"Simulated cluster failed to start: {e}") from e
        return self.filesystem


# =============================================================================
# Default implementation: `mapred minicluster`
# =============================================================================


class HadoopMiniDfs:
    def __init__(self, service: ProcessService, uri: str, hdfs_bin: str = "hdfs"):
        self.service = service
        self._uri = uri
        self.hdfs_bin = hdfs_bin

    @property
    def uri(self) -> str:
        return self._uri

    def get_filesystem(self) -> FileSystem:
        return HdfsFileSystem(self._uri, hdfs_bin=self.hdfs_bin)

    def shutdown(self) -> None:
        self.service.stop()


class HadoopMiniCompute:
    def __init__(self, service: ProcessService, config_path: Path):
        self.service = service
        self.config_path = config_path

    def setup_configuration(self, conf: SiteConf) -> None:
        """Copy the running cluster's configuration into ``conf``."""
        conf.update(SiteConf.from_xml(self.config_path).as_dict())

    def shutdown(self) -> None:
        self.service.stop()


class HadoopMiniCluster:
    """Runs ``mapred minicluster`` twice: once DFS-only, once compute-only.

    Each process writes its effective configuration with ``-writeConfig``;
    a process counts as up once that file exists and its main port accepts
    connections.
    """

    def __init__(
        self,
        work_dir: Path,
        mapred_bin: str | None = None,
        hdfs_bin: str = "hdfs",
        startup_timeout: float = 180.0,
        poll_interval: float = 1.0,
    ):
        self.work_dir = work_dir
        self.mapred_bin = mapred_bin
        self.hdfs_bin = hdfs_bin
        self.startup_timeout = startup_timeout
        self.poll_interval = poll_interval

    def resolve_mapred_bin(self) -> str:
        if self.mapred_bin:
            return self.mapred_bin
        hadoop_home = os.environ.get("HADOOP_HOME")
        if hadoop_home:
            return str(Path(hadoop_home) / "bin" / "mapred")
        found = shutil.which("mapred")
        if found is None:
            raise StartupError("mapred not found on PATH and HADOOP_HOME is not set")
        return found

    def _launch(self, name: str, args: list[str], config_path: Path, port: int) -> ProcessService:
        config_path.unlink(missing_ok=True)
        command = [self.resolve_mapred_bin(), "minicluster", *args]
        service = ProcessService(
            name=name,
            command=[*command, "-writeConfig", str(config_path)],
            cwd=self.work_dir,
            log_path=self.work_dir / "logs" / f"{name}.log",
        )
        self.work_dir.mkdir(parents=True, exist_ok=True)
        service.start()

        exited = threading.Event()

        def check() -> tuple[bool, str]:
            if not service.is_alive:
                exited.set()
                return False, f"{name} exited during startup"
            if not config_path.exists():
                return False, f"waiting for {config_path.name}"
            with socket.create_connection(("localhost", port), timeout=2):
                return True, f"{name} listening on {port}"

        result = wait_for_condition(
            check,
            timeout_seconds=self.startup_timeout,
            poll_interval=self.poll_interval,
            description=name,
            cancel=exited,
        )
        if result.status != WaitStatus.READY:
            service.stop()
            raise StartupError(f"{name} did not start: {result.message}")
        return service

    def start_dfs(self, conf: SiteConf, nodes: int) -> HadoopMiniDfs:
        port = find_free_port()
        args = ["-nomr", "-format", "-datanodes", str(nodes), "-nnport", str(port)]
        service = self._launch("mini-dfs", args, self.work_dir / "dfs-site.xml", port)
        return HadoopMiniDfs(service, f"hdfs://localhost:{port}", hdfs_bin=self.hdfs_bin)

    def start_compute(self, conf: SiteConf, nodes: int, fs_uri: str) -> HadoopMiniCompute:
        rm_port = find_free_port()
        jhs_port = find_free_port(exclude=[rm_port])
        config_path = self.work_dir / "compute-site.xml"
        args = [
            "-nodfs",
            "-nodemanagers",
            str(nodes),
            "-rmport",
            str(rm_port),
            "-jhsport",
            str(jhs_port),
            "-D",
            f"fs.defaultFS={fs_uri}",
        ]
        service = self._launch("mini-compute", args, config_path, rm_port)
        return HadoopMiniCompute(service, config_path)
