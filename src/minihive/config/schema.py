"""Pydantic models for minihive topology configuration.

A ``TopologyConfig`` is built once (by ``TopologyBuilder`` or the YAML
loader) and never mutated afterwards. Illegal option combinations are
rejected here, at build time, rather than when the cluster starts.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from minihive._constants import DEFAULT_AUTH_TYPE, DEFAULT_HOST, SIMULATED_NODES

from .siteconf import ConfVars, to_conf_value

# =============================================================================
# Enums
# =============================================================================


class TransportMode(str, Enum):
    """HiveServer2 client transport."""

    BINARY = "binary"
    HTTP = "http"


class ComputeMode(str, Enum):
    """Where warehouse and scratch data live."""

    LOCAL = "local"
    SIMULATED = "simulated"  # Hadoop mini DFS + compute cluster


class MetastoreMode(str, Enum):
    """How the metastore is run."""

    EMBEDDED = "embedded"
    REMOTE = "remote"
    SECURE_REMOTE = "secure_remote"


# =============================================================================
# Sub-models
# =============================================================================


class KerberosSettings(BaseModel):
    """Server principal and keytab for Kerberos-style authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    principal: str
    keytab: str

    @field_validator("principal", "keytab")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class MetastoreSettings(BaseModel):
    """Metastore placement and, for secure remote metastores, its credentials."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: MetastoreMode = MetastoreMode.EMBEDDED
    principal: str | None = None
    keytab: str | None = None

    @model_validator(mode="after")
    def validate_credentials(self) -> MetastoreSettings:
        if self.mode == MetastoreMode.SECURE_REMOTE and not (self.principal and self.keytab):
            raise ValueError("secure_remote metastore requires both principal and keytab")
        return self

    @property
    def is_remote(self) -> bool:
        return self.mode != MetastoreMode.EMBEDDED

    @property
    def is_secure(self) -> bool:
        return self.mode == MetastoreMode.SECURE_REMOTE


class ProbeSettings(BaseModel):
    """Readiness probe timing, in seconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval: float = Field(default=0.5, gt=0)
    timeout: float = Field(default=1000.0, gt=0)

    @model_validator(mode="after")
    def interval_within_timeout(self) -> ProbeSettings:
        if self.interval > self.timeout:
            raise ValueError(
                f"probe interval ({self.interval}s) exceeds probe timeout ({self.timeout}s)"
            )
        return self


# =============================================================================
# Root model
# =============================================================================


class TopologyConfig(BaseModel):
    """Immutable description of one test-cluster topology."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    compute: ComputeMode = ComputeMode.LOCAL
    kerberos: KerberosSettings | None = None
    authentication_type: str = DEFAULT_AUTH_TYPE
    metastore: MetastoreSettings = Field(default_factory=MetastoreSettings)
    transport_mode: TransportMode = TransportMode.BINARY
    cleanup_workspace_on_startup: bool = True
    base_conf: dict[str, str] = Field(default_factory=dict)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)

    # Overrides TEST_TMP_DIR when set
    temp_root: str | None = None
    host: str = DEFAULT_HOST
    simulated_nodes: int = Field(default=SIMULATED_NODES, ge=1)

    @model_validator(mode="before")
    @classmethod
    def apply_derived_conf(cls, data: object) -> object:
        """Fold derived HiveServer2 settings into ``base_conf``.

        The transport-mode key always mirrors ``transport_mode``; start
        attempts are pinned so a failed bind surfaces quickly in tests.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        conf = {str(k): to_conf_value(v) for k, v in (data.get("base_conf") or {}).items()}
        mode = data.get("transport_mode", TransportMode.BINARY)
        if not isinstance(mode, TransportMode):
            # Unknown values are reported by field validation
            mode = next((m for m in TransportMode if m.value == mode), None)
        if mode is not None:
            conf[ConfVars.TRANSPORT_MODE] = mode.value
        conf[ConfVars.MAX_START_ATTEMPTS] = "3"
        conf[ConfVars.START_ATTEMPT_SLEEP] = "10s"
        data["base_conf"] = conf
        return data

    @model_validator(mode="after")
    def validate_component_combination(self) -> TopologyConfig:
        if self.compute == ComputeMode.SIMULATED and self.kerberos is not None:
            raise ValueError(
                "Simulated authentication is not supported together with a "
                "simulated compute cluster"
            )
        return self

    @property
    def use_simulated_compute(self) -> bool:
        return self.compute == ComputeMode.SIMULATED

    @property
    def use_simulated_auth(self) -> bool:
        return self.kerberos is not None

    @property
    def is_metastore_remote(self) -> bool:
        return self.metastore.is_remote

    @property
    def is_metastore_secure(self) -> bool:
        return self.metastore.is_secure

    @property
    def is_http_transport(self) -> bool:
        return self.transport_mode == TransportMode.HTTP

    @property
    def server_principal(self) -> str | None:
        return self.kerberos.principal if self.kerberos else None

    def summary(self) -> dict[str, Any]:
        """Flat view used by the CLI."""
        return {
            "compute": self.compute.value,
            "transport": self.transport_mode.value,
            "metastore": self.metastore.mode.value,
            "kerberos": self.server_principal or "off",
            "authentication": self.authentication_type if self.kerberos else "-",
            "cleanup on startup": self.cleanup_workspace_on_startup,
            "probe": f"every {self.probe.interval}s, up to {self.probe.timeout}s",
        }
