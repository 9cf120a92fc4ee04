"""Reverse-order shutdown of a cluster.

HiveServer2 goes first, then the simulated compute cluster, then the
simulated DFS. A failure in one step is logged and the remaining steps
still run; nothing here raises.

The remote metastore is not stopped: it runs until the test process exits.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .services import ServiceHandle
from .simulated import SimulatedClusterBootstrapper

logger = logging.getLogger(__name__)


class TeardownWarning(UserWarning):
    """A subordinate service failed to stop."""


class TeardownStatus(Enum):
    """Outcome of one teardown step."""

    STOPPED = "stopped"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TeardownResult:
    """Result of one teardown step."""

    component: str
    status: TeardownStatus
    message: str


class TeardownCoordinator:
    """Stops whatever the supervisor and bootstrapper started."""

    def stop_all(
        self,
        server: ServiceHandle | None,
        simulated: SimulatedClusterBootstrapper | None = None,
    ) -> list[TeardownResult]:
        results = [self._stop_server(server)]

        if simulated is not None:
            compute, simulated.compute = simulated.compute, None
            results.append(
                self._stop_subordinate("compute", compute.shutdown if compute else None)
            )
            dfs, simulated.dfs = simulated.dfs, None
            simulated.filesystem = None
            results.append(self._stop_subordinate("dfs", dfs.shutdown if dfs else None))

        return results

    def _stop_server(self, server: ServiceHandle | None) -> TeardownResult:
        if server is None:
            return TeardownResult("hiveserver2", TeardownStatus.SKIPPED, "HiveServer2 not running")
        if not server.is_alive:
            # Exited on its own; stop() still releases what the handle holds
            try:
                server.stop()
            except Exception as e:
                logger.warning("Ignoring error while releasing exited HiveServer2: %s", e)
            return TeardownResult("hiveserver2", TeardownStatus.SKIPPED, "HiveServer2 not running")
        try:
            server.stop()
        except Exception as e:
            logger.error("Failed to stop HiveServer2: %s", e, exc_info=True)
            return TeardownResult("hiveserver2", TeardownStatus.FAILED, str(e))
        return TeardownResult("hiveserver2", TeardownStatus.STOPPED, "HiveServer2 stopped")

    def _stop_subordinate(
        self, component: str, shutdown: Callable[[], None] | None
    ) -> TeardownResult:
        if shutdown is None:
            return TeardownResult(component, TeardownStatus.SKIPPED, f"No simulated {component}")
        try:
            shutdown()
        except Exception as e:
            logger.warning("Ignoring error while stopping simulated %s: %s", component, e)
            warnings.warn(
                f"simulated {component} did not stop cleanly: {e}", TeardownWarning, stacklevel=3
            )
            return TeardownResult(component, TeardownStatus.FAILED, str(e))
        return TeardownResult(component, TeardownStatus.STOPPED, f"Simulated {component} stopped")
