"""The embedded HiveServer2 test cluster."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path

from minihive._constants import DEFAULT_DATABASE, JDBC_DRIVER_NAME
from minihive.config import ConfVars, SiteConf, TopologyConfig

from .endpoint import base_jdbc_url, build_jdbc_url
from .fs import LocalFileSystem
from .ports import PortAssignment
from .readiness import SessionClient, default_session_client, probe_session
from .services import (
    FrontEndFactory,
    HiveProcessLauncher,
    MetastoreFactory,
    ServiceHandle,
    StartupError,
)
from .simulated import (
    HadoopMiniCluster,
    SimulatedClusterBootstrapper,
    SimulatedClusterFactory,
    SimulatedCompute,
    SimulatedDfs,
)
from .supervisor import ServiceSupervisor
from .teardown import TeardownCoordinator, TeardownResult
from .workspace import (
    Workspace,
    WorkspaceProvisioner,
    delete_workspace,
    get_base_dir,
    get_temp_root,
)

logger = logging.getLogger(__name__)

SessionClientFactory = Callable[[TopologyConfig, PortAssignment], SessionClient]


class NotStartedError(RuntimeError):
    """Raised when a running-cluster accessor is used before start() or after stop()."""

    pass


class MiniHS2:
    """An embedded HiveServer2 test cluster.

    Lifecycle: construct -> ``start()`` -> use -> ``stop()`` ->
    ``cleanup_workspace()``. Calls must be serialized; one instance per
    workspace at a time.

    Ports are allocated at construction. The workspace (and the simulated
    Hadoop cluster, when requested) is provisioned on the first ``start()``
    or an explicit ``provision()``.

    Every collaborator is injectable. By default the metastore and
    HiveServer2 run as ``hive --service ...`` processes and the simulated
    cluster as ``mapred minicluster`` processes.
    """

    def __init__(
        self,
        config: TopologyConfig,
        *,
        front_end_factory: FrontEndFactory | None = None,
        metastore_factory: MetastoreFactory | None = None,
        cluster_factory: SimulatedClusterFactory | None = None,
        session_client_factory: SessionClientFactory | None = None,
        local_fs: LocalFileSystem | None = None,
    ):
        self.config = config
        self.conf = SiteConf(config.base_conf)
        self.ports = PortAssignment.allocate()
        self.local_fs = local_fs or LocalFileSystem()
        self.workspace: Workspace | None = None

        launcher = HiveProcessLauncher()
        self.front_end_factory = front_end_factory or launcher.hiveserver2
        self.metastore_factory = metastore_factory or launcher.metastore
        self.cluster_factory = cluster_factory
        self.session_client_factory = session_client_factory or default_session_client

        # Set to abort a readiness probe that is in progress
        self.cancel_event = threading.Event()

        self._simulated: SimulatedClusterBootstrapper | None = None
        self._supervisor: ServiceSupervisor | None = None
        self._teardown = TeardownCoordinator()
        self._started = False

        self._apply_security_conf()

    def _apply_security_conf(self) -> None:
        cfg = self.config
        if cfg.kerberos is not None:
            self.conf.set(ConfVars.KERBEROS_PRINCIPAL, cfg.kerberos.principal)
            self.conf.set(ConfVars.KERBEROS_KEYTAB, cfg.kerberos.keytab)
            self.conf.set(ConfVars.AUTHENTICATION, cfg.authentication_type)
        if cfg.is_metastore_secure:
            self.conf.set(ConfVars.METASTORE_KERBEROS_PRINCIPAL, cfg.metastore.principal)
            self.conf.set(ConfVars.METASTORE_KERBEROS_KEYTAB, cfg.metastore.keytab)
            self.conf.set(ConfVars.METASTORE_USE_SASL, True)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def provision(self) -> Workspace:
        """Start the simulated cluster (if any) and create the workspace.

        Raises:
            StartupError: If the simulated cluster fails to start.
            ProvisioningError: If the workspace cannot be created.
        """
        if self.workspace is not None:
            return self.workspace

        cluster_fs = None
        if self.config.use_simulated_compute:
            factory = self.cluster_factory or HadoopMiniCluster(
                work_dir=get_temp_root(self.config.temp_root) / "minicluster"
            )
            self._simulated = SimulatedClusterBootstrapper(factory, self.config.simulated_nodes)
            cluster_fs = self._simulated.bootstrap(self.conf)

        provisioner = WorkspaceProvisioner(self.config, self.local_fs)
        self.workspace = provisioner.provision(self.conf, cluster_fs)
        return self.workspace

    def start(self, overrides: Mapping[str, str] | None = None) -> None:
        """Start all services and block until HiveServer2 accepts sessions.

        Args:
            overrides: hive-site properties applied last, winning over
                everything else

        Raises:
            ProvisioningError: If the workspace cannot be created.
            StartupError: If a service fails to start.
            StartupTimeoutError: If HiveServer2 never accepts a session.
        """
        if self._started:
            raise StartupError("MiniHS2 is already started")
        self.cancel_event.clear()

        workspace = self.provision()
        # Overrides and ports land on a copy so they do not outlive this start
        self._supervisor = ServiceSupervisor(
            self.config,
            self.conf.copy(),
            self.ports,
            workspace,
            front_end_factory=self.front_end_factory,
            metastore_factory=self.metastore_factory,
        )
        self._supervisor.start(overrides)
        self._wait_for_startup()
        self._started = True
        logger.info("MiniHS2 started at %s", self.get_base_jdbc_url())

    def _wait_for_startup(self) -> None:
        client = self.session_client_factory(self.config, self.ports)
        endpoint = build_jdbc_url(self.config, self.ports)
        probe_session(client, endpoint, self.config.probe, cancel=self.cancel_event)

    def cancel_startup(self) -> None:
        """Abort a ``start()`` blocked in the readiness probe (from another thread)."""
        self.cancel_event.set()

    def stop(self) -> list[TeardownResult]:
        """Stop HiveServer2 and the simulated cluster. Never raises.

        The remote metastore keeps running until the process exits. A
        workspace rooted on the simulated DFS is dropped with it, so the next
        ``start()`` bootstraps a fresh cluster.
        """
        if not self._started:
            logger.debug("stop() on a MiniHS2 that is not started, stopping leftovers only")
        self._started = False
        server = None
        if self._supervisor is not None:
            server, self._supervisor.server = self._supervisor.server, None
        results = self._teardown.stop_all(server, self._simulated)
        if self.workspace is not None and self.workspace.remote:
            self.workspace = None
        for result in results:
            logger.info("Teardown %s: %s", result.component, result.message)
        return results

    def cleanup_workspace(self) -> bool:
        """Delete the local workspace tree, ignoring a missing directory."""
        base_dir = self.workspace.base_dir if self.workspace else self.base_dir
        self.workspace = None
        return delete_workspace(base_dir)

    @staticmethod
    def cleanup_local_dir(temp_root: str | None = None) -> bool:
        """Delete ``<temp_root>/local_base`` without a cluster instance."""
        return delete_workspace(get_base_dir(temp_root))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def is_started(self) -> bool:
        return self._started

    def verify_started(self) -> None:
        if not self._started:
            raise NotStartedError("MiniHS2 is not started")

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def base_dir(self) -> Path:
        return get_base_dir(self.config.temp_root)

    @property
    def server(self) -> ServiceHandle | None:
        return self._supervisor.server if self._supervisor else None

    @property
    def metastore(self) -> ServiceHandle | None:
        return self._supervisor.metastore if self._supervisor else None

    @property
    def dfs(self) -> SimulatedDfs | None:
        return self._simulated.dfs if self._simulated else None

    @property
    def compute_cluster(self) -> SimulatedCompute | None:
        return self._simulated.compute if self._simulated else None

    def get_service_client(self) -> SessionClient:
        """Session client for the running HiveServer2."""
        self.verify_started()
        return self.session_client_factory(self.config, self.ports)

    def get_jdbc_url(
        self,
        database: str = DEFAULT_DATABASE,
        session_ext: str | None = "",
        conf_ext: str | None = "",
    ) -> str:
        self.verify_started()
        return build_jdbc_url(self.config, self.ports, database, session_ext, conf_ext)

    def get_base_jdbc_url(self) -> str:
        self.verify_started()
        return base_jdbc_url(self.config, self.ports)

    @staticmethod
    def get_jdbc_driver_name() -> str:
        return JDBC_DRIVER_NAME
