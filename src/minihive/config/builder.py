"""Fluent builder for ``TopologyConfig``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from minihive._constants import DEFAULT_AUTH_TYPE

from .loader import ConfigurationError
from .schema import ComputeMode, MetastoreMode, TopologyConfig, TransportMode
from .siteconf import SiteConf


class TopologyBuilder:
    """Collects topology options and validates them once, in ``build()``.

    Example::

        config = (
            TopologyBuilder()
            .with_remote_metastore()
            .with_http_transport()
            .build()
        )
    """

    def __init__(self) -> None:
        self._conf: dict[str, Any] = {}
        self._compute = ComputeMode.LOCAL
        self._kerberos: dict[str, str] | None = None
        self._auth_type = DEFAULT_AUTH_TYPE
        self._metastore: dict[str, Any] = {"mode": MetastoreMode.EMBEDDED}
        self._transport = TransportMode.BINARY
        self._cleanup = True
        self._probe: dict[str, float] = {}
        self._temp_root: str | None = None

    def with_simulated_compute(self) -> TopologyBuilder:
        self._compute = ComputeMode.SIMULATED
        return self

    def with_simulated_auth(self, principal: str, keytab: str) -> TopologyBuilder:
        self._kerberos = {"principal": principal, "keytab": keytab}
        return self

    def with_authentication_type(self, auth_type: str) -> TopologyBuilder:
        self._auth_type = auth_type
        return self

    def with_remote_metastore(self) -> TopologyBuilder:
        self._metastore = {"mode": MetastoreMode.REMOTE}
        return self

    def with_secure_remote_metastore(self, principal: str, keytab: str) -> TopologyBuilder:
        self._metastore = {
            "mode": MetastoreMode.SECURE_REMOTE,
            "principal": principal,
            "keytab": keytab,
        }
        return self

    def with_http_transport(self) -> TopologyBuilder:
        """Start HiveServer2 with HTTP transport; the default is binary."""
        self._transport = TransportMode.HTTP
        return self

    def cleanup_workspace_on_startup(self, value: bool) -> TopologyBuilder:
        self._cleanup = value
        return self

    def with_conf(self, conf: Mapping[str, Any] | SiteConf) -> TopologyBuilder:
        """Use ``conf`` as the base configuration to extend."""
        self._conf = conf.as_dict() if isinstance(conf, SiteConf) else dict(conf)
        return self

    def with_readiness_probe(self, interval: float, timeout: float) -> TopologyBuilder:
        self._probe = {"interval": interval, "timeout": timeout}
        return self

    def with_temp_root(self, path: str) -> TopologyBuilder:
        self._temp_root = str(path)
        return self

    def build(self) -> TopologyConfig:
        """Validate the collected options and freeze them.

        Raises:
            ConfigurationError: If options are invalid or conflict.
        """
        if self._compute == ComputeMode.SIMULATED and self._kerberos is not None:
            raise ConfigurationError(
                "Can't create a secure simulated compute cluster: "
                "with_simulated_compute() and with_simulated_auth() are mutually exclusive"
            )

        data: dict[str, Any] = {
            "compute": self._compute,
            "kerberos": self._kerberos,
            "authentication_type": self._auth_type,
            "metastore": self._metastore,
            "transport_mode": self._transport,
            "cleanup_workspace_on_startup": self._cleanup,
            "base_conf": self._conf,
            "temp_root": self._temp_root,
        }
        if self._probe:
            data["probe"] = self._probe

        try:
            return TopologyConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError.from_validation_error(e) from e
