"""Filesystem access for workspace provisioning.

Paths are plain strings so the same provisioning code can target the local
disk (``file://`` URIs or absolute paths) or a cluster filesystem
(``hdfs://`` URIs) driven through the ``hdfs dfs`` command line.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
import subprocess
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

logger = logging.getLogger(__name__)


class FileSystemError(Exception):
    """Raised when a filesystem command fails."""

    pass


class FileSystem(Protocol):
    """Operations the workspace provisioner needs."""

    @property
    def uri(self) -> str: ...

    def mkdirs(self, path: str, mode: int | None = None) -> None: ...

    def delete(self, path: str, recursive: bool = True) -> bool: ...

    def exists(self, path: str) -> bool: ...


def join_path(root: str, *parts: str) -> str:
    """Join path segments onto a path or URI without normalising the scheme."""
    result = root.rstrip("/")
    for part in parts:
        result = f"{result}/{part.strip('/')}"
    return result


def path_depth(path: str) -> int:
    """Number of directory levels below the filesystem root.

    ``/`` is 0, ``/tmp`` is 1, ``file:///tmp/a/b`` is 3. ``..`` segments are
    collapsed first, so ``/tmp/a/../b`` is 2.
    """
    parsed = urlparse(path)
    raw = parsed.path if parsed.scheme else path
    normalised = posixpath.normpath(raw or "/")
    return len([p for p in normalised.split("/") if p and p != "."])


class LocalFileSystem:
    """Local disk, accepting both ``file://`` URIs and plain paths."""

    @property
    def uri(self) -> str:
        return "file:///"

    @staticmethod
    def to_local(path: str) -> Path:
        parsed = urlparse(path)
        if parsed.scheme == "file":
            if parsed.netloc not in ("", "localhost"):
                raise FileSystemError(f"Not a local path (host {parsed.netloc!r}): {path}")
            return Path(unquote(parsed.path))
        if parsed.scheme:
            raise FileSystemError(f"Not a local path: {path}")
        return Path(path)

    def mkdirs(self, path: str, mode: int | None = None) -> None:
        local = self.to_local(path)
        local.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            # chmod after mkdir so the umask cannot strip bits
            os.chmod(local, mode)

    def delete(self, path: str, recursive: bool = True) -> bool:
        local = self.to_local(path)
        if not local.exists():
            return False
        if local.is_dir() and not local.is_symlink():
            if recursive:
                shutil.rmtree(local)
            else:
                local.rmdir()
        else:
            local.unlink()
        return True

    def exists(self, path: str) -> bool:
        return self.to_local(path).exists()


class HdfsFileSystem:
    """A Hadoop-compatible filesystem driven through ``hdfs dfs``."""

    def __init__(self, uri: str, hdfs_bin: str = "hdfs", timeout: int = 60):
        self._uri = uri.rstrip("/")
        self.hdfs_bin = hdfs_bin
        self.timeout = timeout

    @property
    def uri(self) -> str:
        return self._uri

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd = [self.hdfs_bin, "dfs", "-fs", self._uri, *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise FileSystemError(f"{' '.join(cmd)} failed: {e}") from e
        if check and result.returncode != 0:
            raise FileSystemError(
                f"{' '.join(cmd)} exited {result.returncode}: {result.stderr.strip()}"
            )
        return result

    def mkdirs(self, path: str, mode: int | None = None) -> None:
        self._run("-mkdir", "-p", path)
        if mode is not None:
            self._run("-chmod", format(mode, "o"), path)

    def delete(self, path: str, recursive: bool = True) -> bool:
        if not self.exists(path):
            return False
        args = ["-rm", "-r", "-f", path] if recursive else ["-rm", "-f", path]
        self._run(*args)
        return True

    def exists(self, path: str) -> bool:
        return self._run("-test", "-e", path, check=False).returncode == 0
