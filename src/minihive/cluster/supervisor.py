"""Ordered startup of the metastore and HiveServer2."""

from __future__ import annotations

import atexit
import logging
from collections.abc import Mapping

from minihive.config import ConfVars, SiteConf, TopologyConfig

from .ports import PortAssignment
from .services import FrontEndFactory, MetastoreFactory, ServiceHandle, StartupError
from .workspace import Workspace

logger = logging.getLogger(__name__)


class ServiceSupervisor:
    """Starts services in dependency order.

    1. Remote metastore (if configured), publishing its URI in the site conf
    2. Fresh front-end ports, then caller overrides (overrides win)
    3. HiveServer2, built from the final site conf

    Nothing is retried. Handles are recorded before ``start()`` is called on
    them so a failed start can still be stopped.

    Teardown leaves the metastore running; it is stopped when the interpreter
    exits.
    """

    def __init__(
        self,
        config: TopologyConfig,
        conf: SiteConf,
        ports: PortAssignment,
        workspace: Workspace,
        front_end_factory: FrontEndFactory,
        metastore_factory: MetastoreFactory,
    ):
        self.config = config
        self.conf = conf
        self.ports = ports
        self.workspace = workspace
        self.front_end_factory = front_end_factory
        self.metastore_factory = metastore_factory
        self.metastore: ServiceHandle | None = None
        self.server: ServiceHandle | None = None

    def start(self, overrides: Mapping[str, str] | None = None) -> ServiceHandle:
        """Run the start sequence and return the front-end handle.

        Raises:
            StartupError: If any service fails to construct or start.
        """
        if self.config.is_metastore_remote:
            self._start_metastore()

        self._bind_ports()

        for key, value in (overrides or {}).items():
            self.conf.set(key, value)

        return self._start_front_end()

    def _start_metastore(self) -> None:
        port = self.ports.allocate_metastore()
        uri = f"thrift://{self.config.host}:{port}"
        self.conf.set(ConfVars.METASTORE_URIS, uri)
        logger.info("Starting remote metastore at %s", uri)
        try:
            self.metastore = self.metastore_factory(port, self.conf, self.workspace)
            atexit.register(self.metastore.stop)
            self.metastore.start()
        except StartupError:
            raise
        except Exception as e:
            raise StartupError(f"Metastore failed to start on port {port}: {e}") from e

    def _bind_ports(self) -> None:
        self.ports.reallocate()
        self.conf.set(ConfVars.THRIFT_BIND_HOST, self.config.host)
        self.conf.set(ConfVars.THRIFT_PORT, self.ports.binary)
        self.conf.set(ConfVars.THRIFT_HTTP_PORT, self.ports.http)

    def _start_front_end(self) -> ServiceHandle:
        logger.info(
            "Starting HiveServer2 (%s transport, binary port %d, http port %d)",
            self.config.transport_mode.value,
            self.ports.binary,
            self.ports.http,
        )
        try:
            self.server = self.front_end_factory(self.conf, self.workspace)
            self.server.start()
        except StartupError:
            raise
        except Exception as e:
            raise StartupError(f"HiveServer2 failed to start: {e}") from e
        return self.server
