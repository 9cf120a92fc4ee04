"""Topology file loader for minihive."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .schema import TopologyConfig


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when a topology file is not found."""

    pass


class ConfigParseError(ConfigError):
    """Raised when a topology file cannot be parsed."""

    pass


class ConfigurationError(ConfigError):
    """Raised when options are invalid or conflict with each other."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> ConfigurationError:
        errors = exc.errors()
        error_messages = []
        for err in errors:
            loc = ".".join(str(x) for x in err["loc"]) or "topology"
            error_messages.append(f"  - {loc}: {err['msg']}")
        return cls(
            "Configuration validation failed:\n" + "\n".join(error_messages),
            errors=[dict(e) for e in errors],  # type: ignore[call-overload]
        )


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dictionary.

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Topology file not found: {path}")

    try:
        with open(path) as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(
            f"Expected a mapping at the top of {path}, got {type(content).__name__}"
        )
    return content


def load_topology(path: str | Path) -> TopologyConfig:
    """Load and validate a topology from a YAML file.

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
        ConfigurationError: If validation fails
    """
    data = load_yaml(Path(path))
    try:
        return TopologyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(e) from e


def save_topology(config: TopologyConfig, path: str | Path) -> None:
    """Save a topology to a YAML file."""
    data = config.model_dump(mode="json", exclude_none=True)
    with open(Path(path), "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)


def generate_example_topology_yaml() -> str:
    """Generate a commented example topology file.

    Only the fields most users touch are uncommented; everything else is
    shown with its default so it can be discovered and enabled.
    """
    return """# minihive topology
# =================
# Describes one embedded HiveServer2 test cluster.
#
# Commented-out fields show their DEFAULT value, which stays active.

# local | simulated  (simulated = Hadoop mini DFS + compute cluster)
compute: local

# binary | http
transport_mode: binary

metastore:
  mode: embedded                 # embedded | remote | secure_remote
  # principal: hive/_HOST@EXAMPLE.COM   # secure_remote only
  # keytab: /etc/security/keytabs/hive.keytab

## Kerberos-style authentication for HiveServer2.
## Not supported together with compute: simulated.
# kerberos:
#   principal: hive/localhost@EXAMPLE.COM
#   keytab: /etc/security/keytabs/hive.keytab
# authentication_type: KERBEROS

# Wipe <temp_root>/local_base before provisioning
# cleanup_workspace_on_startup: true

## Workspace root. Defaults to $TEST_TMP_DIR, then <system tmp>/minihive.
# temp_root: /var/tmp/minihive

# host: localhost
# simulated_nodes: 4

## Readiness probe timing in seconds
# probe:
#   interval: 0.5
#   timeout: 1000

## Extra hive-site properties applied before the cluster starts
# base_conf:
#   hive.support.concurrency: "false"
"""
