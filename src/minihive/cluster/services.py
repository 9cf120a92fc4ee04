"""Service handles and the default process-backed Hive services.

The orchestrator only needs to start and stop services; what runs behind a
handle is up to the factory that built it. The defaults launch the Hive
command line with a rendered ``hive-site.xml``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol

from minihive.config import SiteConf

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """Raised when a service fails to construct or start."""

    pass


class ServiceHandle(Protocol):
    """Start/stop capability for one running component."""

    name: str

    def start(self) -> None: ...

    def stop(self) -> None: ...

    @property
    def is_alive(self) -> bool: ...


# Factories the supervisor calls. Each receives the final site conf.
FrontEndFactory = Callable[[SiteConf, "Workspace"], ServiceHandle]
MetastoreFactory = Callable[[int, SiteConf, "Workspace"], ServiceHandle]


class ProcessService:
    """A service backed by a child process.

    Output goes to ``log_path`` when given. ``stop()`` terminates the
    process, escalating to kill after ``stop_timeout`` seconds, and is safe
    to call more than once.
    """

    def __init__(
        self,
        name: str,
        command: list[str],
        env: dict[str, str] | None = None,
        cwd: Path | None = None,
        log_path: Path | None = None,
        stop_timeout: float = 30.0,
    ):
        self.name = name
        self.command = command
        self.env = env
        self.cwd = cwd
        self.log_path = log_path
        self.stop_timeout = stop_timeout
        self._proc: subprocess.Popen | None = None
        self._log: IO[bytes] | None = None

    @property
    def is_alive(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    def start(self) -> None:
        if self.is_alive:
            return
        logger.info("Starting %s: %s", self.name, " ".join(self.command))
        stdout: IO[bytes] | int = subprocess.DEVNULL
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._log = open(self.log_path, "ab")  # noqa: SIM115
            stdout = self._log
        try:
            self._proc = subprocess.Popen(
                self.command,
                env=self.env,
                cwd=self.cwd,
                stdout=stdout,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            self._close_log()
            raise StartupError(f"Could not launch {self.name}: {e}") from e

    def stop(self) -> None:
        proc = self._proc
        if proc is None or proc.poll() is not None:
            self._close_log()
            return
        logger.info("Stopping %s (pid %d)", self.name, proc.pid)
        proc.terminate()
        try:
            proc.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%s did not exit after %ss, killing", self.name, self.stop_timeout)
            proc.kill()
            proc.wait()
        finally:
            self._close_log()

    def _close_log(self) -> None:
        if self._log is not None:
            self._log.close()
            self._log = None


class HiveProcessLauncher:
    """Builds process-backed metastore and HiveServer2 services.

    Each service gets its own ``HIVE_CONF_DIR`` under the workspace holding
    a snapshot of the site conf taken when the service is built.
    """

    def __init__(self, hive_bin: str | None = None, extra_env: dict[str, str] | None = None):
        self.hive_bin = hive_bin
        self.extra_env = extra_env or {}

    def resolve_hive_bin(self) -> str:
        if self.hive_bin:
            return self.hive_bin
        hive_home = os.environ.get("HIVE_HOME")
        if hive_home:
            return str(Path(hive_home) / "bin" / "hive")
        found = shutil.which("hive")
        if found is None:
            raise StartupError("hive not found on PATH and HIVE_HOME is not set")
        return found

    def _build(
        self, name: str, args: list[str], conf: SiteConf, workspace: Workspace
    ) -> ProcessService:
        conf_dir = workspace.conf_dir / name
        conf.write(conf_dir / "hive-site.xml", description=name)
        env = {**os.environ, **self.extra_env, "HIVE_CONF_DIR": str(conf_dir)}
        return ProcessService(
            name=name,
            command=[self.resolve_hive_bin(), *args],
            env=env,
            cwd=workspace.base_dir,
            log_path=workspace.base_dir / "logs" / f"{name}.log",
        )

    def metastore(self, port: int, conf: SiteConf, workspace: Workspace) -> ProcessService:
        args = ["--service", "metastore", "-p", str(port)]
        return self._build("metastore", args, conf, workspace)

    def hiveserver2(self, conf: SiteConf, workspace: Workspace) -> ProcessService:
        return self._build("hiveserver2", ["--service", "hiveserver2"], conf, workspace)
