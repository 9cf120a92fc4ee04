"""Cluster lifecycle module for minihive."""

from .endpoint import HTTP_TRANSPORT_PROPS, base_jdbc_url, build_jdbc_url
from .fs import FileSystem, FileSystemError, HdfsFileSystem, LocalFileSystem, path_depth
from .orchestrator import MiniHS2, NotStartedError
from .ports import PortAssignment, find_free_port
from .readiness import (
    HttpSessionClient,
    SessionClient,
    StartupTimeoutError,
    TcpSessionClient,
    WaitResult,
    WaitStatus,
    probe_session,
    wait_for_condition,
)
from .services import HiveProcessLauncher, ProcessService, ServiceHandle, StartupError
from .simulated import HadoopMiniCluster, SimulatedClusterBootstrapper
from .supervisor import ServiceSupervisor
from .teardown import TeardownCoordinator, TeardownResult, TeardownStatus, TeardownWarning
from .workspace import (
    ProvisioningError,
    Workspace,
    WorkspaceGuardError,
    WorkspaceProvisioner,
    get_base_dir,
)

__all__ = [
    # Orchestrator
    "MiniHS2",
    # Components
    "WorkspaceProvisioner",
    "Workspace",
    "SimulatedClusterBootstrapper",
    "HadoopMiniCluster",
    "ServiceSupervisor",
    "TeardownCoordinator",
    "TeardownResult",
    "TeardownStatus",
    "PortAssignment",
    "find_free_port",
    "get_base_dir",
    # Services
    "ServiceHandle",
    "ProcessService",
    "HiveProcessLauncher",
    # Filesystems
    "FileSystem",
    "LocalFileSystem",
    "HdfsFileSystem",
    "path_depth",
    # Readiness
    "SessionClient",
    "TcpSessionClient",
    "HttpSessionClient",
    "WaitResult",
    "WaitStatus",
    "probe_session",
    "wait_for_condition",
    # Endpoints
    "HTTP_TRANSPORT_PROPS",
    "base_jdbc_url",
    "build_jdbc_url",
    # Errors
    "FileSystemError",
    "NotStartedError",
    "ProvisioningError",
    "StartupError",
    "StartupTimeoutError",
    "TeardownWarning",
    "WorkspaceGuardError",
]
