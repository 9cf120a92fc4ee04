"""Workspace provisioning: base, warehouse and scratch directories."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from minihive._constants import (
    FULL_PERM,
    LOCAL_BASE_DIRNAME,
    MIN_CLEANUP_DEPTH,
    TEST_TMP_DIR_ENV,
    WRITE_ALL_PERM,
)
from minihive.config import ConfVars, SiteConf, TopologyConfig

from .fs import FileSystem, FileSystemError, LocalFileSystem, join_path, path_depth

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Raised when the workspace cannot be created, chmod'ed or cleaned."""

    pass


class WorkspaceGuardError(ProvisioningError):
    """Raised instead of deleting a directory too close to the filesystem root."""

    pass


def get_temp_root(override: str | None = None) -> Path:
    """Resolve the directory that roots all workspaces.

    Order: explicit override, ``$TEST_TMP_DIR``, ``<system tmp>/minihive``.
    The result is absolute with ``..`` segments resolved; relative roots are
    taken against the current directory.
    """
    if override:
        root = Path(override)
    elif os.environ.get(TEST_TMP_DIR_ENV):
        root = Path(os.environ[TEST_TMP_DIR_ENV])
    else:
        root = Path(tempfile.gettempdir()) / "minihive"
    return root.resolve()


def get_base_dir(temp_root: str | None = None) -> Path:
    return get_temp_root(temp_root) / LOCAL_BASE_DIRNAME


def check_cleanup_depth(path: str) -> None:
    """Refuse to clean anything shallower than ``MIN_CLEANUP_DEPTH`` levels."""
    depth = path_depth(path)
    if depth < MIN_CLEANUP_DEPTH:
        raise WorkspaceGuardError(
            f"Refusing to clean {path}: it is {depth} level(s) below the filesystem root, "
            f"need at least {MIN_CLEANUP_DEPTH}"
        )


def delete_workspace(base_dir: Path) -> bool:
    """Best-effort recursive delete of a local workspace.

    Returns:
        True if something was deleted.
    """
    try:
        shutil.rmtree(base_dir)
        logger.info("Deleted workspace %s", base_dir)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not fully delete workspace %s: %s", base_dir, e)
        return False


@dataclass(frozen=True)
class Workspace:
    """Directories provisioned for one cluster instance."""

    base_dir: Path
    root: str
    warehouse: str
    scratch: str
    local_scratch: Path
    remote: bool = False

    @property
    def conf_dir(self) -> Path:
        """Where process-backed services get their rendered hive-site.xml."""
        return self.base_dir / "conf"

    @property
    def metastore_url(self) -> str:
        return f"jdbc:derby:;databaseName={self.base_dir / 'test_metastore'};create=true"


class WorkspaceProvisioner:
    """Creates the workspace tree and records its paths in the site conf.

    Without a cluster filesystem everything lives under
    ``<temp_root>/local_base``. With one (simulated compute), the root,
    warehouse and shared scratch move onto it while the local scratch dir
    stays on local disk.
    """

    def __init__(self, config: TopologyConfig, local_fs: LocalFileSystem | None = None):
        self.config = config
        self.local_fs = local_fs or LocalFileSystem()

    def provision(self, conf: SiteConf, cluster_fs: FileSystem | None = None) -> Workspace:
        """Create directories and write their locations into ``conf``.

        Raises:
            WorkspaceGuardError: If cleanup targets a too-shallow path.
            ProvisioningError: On any filesystem failure.
        """
        base_dir = get_base_dir(self.config.temp_root)

        try:
            if cluster_fs is None:
                fs: FileSystem = self.local_fs
                root = base_dir.as_uri()
                if self.config.cleanup_workspace_on_startup:
                    # The base dir can be shared across test runs
                    logger.info("Cleaning up %s before provisioning", base_dir)
                    check_cleanup_depth(root)
                    fs.delete(root, recursive=True)
            else:
                fs = cluster_fs
                root = join_path(cluster_fs.uri, "base")

            self.local_fs.mkdirs(str(base_dir))
            fs.mkdirs(root)

            warehouse = join_path(root, "warehouse")
            fs.mkdirs(warehouse, FULL_PERM)

            scratch = join_path(root, "scratch")
            fs.mkdirs(scratch, WRITE_ALL_PERM)

            local_scratch = base_dir / "scratch"
            self.local_fs.mkdirs(str(local_scratch))
        except (OSError, FileSystemError) as e:
            raise ProvisioningError(f"Failed to provision workspace under {base_dir}: {e}") from e

        workspace = Workspace(
            base_dir=base_dir,
            root=root,
            warehouse=warehouse,
            scratch=scratch,
            local_scratch=local_scratch,
            remote=cluster_fs is not None,
        )

        conf.set(ConfVars.METASTORE_CONNECT_URL, workspace.metastore_url)
        conf.set(ConfVars.METASTORE_WAREHOUSE, workspace.warehouse)
        conf.set(ConfVars.SCRATCH_DIR, workspace.scratch)
        conf.set(ConfVars.LOCAL_SCRATCH_DIR, str(workspace.local_scratch))

        logger.info("Provisioned workspace at %s (warehouse: %s)", root, warehouse)
        return workspace
