"""JDBC connection strings for a running cluster.

Pure functions of the topology, the port assignment and caller input.
"""

from __future__ import annotations

from minihive._constants import DEFAULT_DATABASE, HTTP_PATH, JDBC_SCHEME
from minihive.config import ConfVars, TopologyConfig

from .ports import PortAssignment

# Always sent for HTTP transport, ahead of any caller-supplied properties
HTTP_TRANSPORT_PROPS = f"{ConfVars.TRANSPORT_MODE}=http;{ConfVars.THRIFT_HTTP_PATH}={HTTP_PATH};"


def base_jdbc_url(config: TopologyConfig, ports: PortAssignment) -> str:
    """``jdbc:hive2://host:port/`` for the configured transport."""
    port = ports.http if config.is_http_transport else ports.binary
    return f"{JDBC_SCHEME}{config.host}:{port}/"


def build_jdbc_url(
    config: TopologyConfig,
    ports: PortAssignment,
    database: str = DEFAULT_DATABASE,
    session_ext: str | None = "",
    conf_ext: str | None = "",
) -> str:
    """Build a connection URL.

    Args:
        config: Cluster topology
        ports: Ports the front end listens on
        database: Database name placed in the URL path
        session_ext: Appended verbatim to the session-conf part
        conf_ext: Hive conf properties, without the leading ``?``

    Returns:
        ``jdbc:hive2://host:port/db[;principal=...][session_ext][?conf]``
    """
    session_ext = session_ext or ""
    conf_ext = conf_ext or ""

    principal = ""
    if config.use_simulated_auth:
        principal = f";principal={config.server_principal}"

    if config.is_http_transport:
        conf_ext = HTTP_TRANSPORT_PROPS + conf_ext

    if conf_ext.strip():
        conf_ext = "?" + conf_ext

    return base_jdbc_url(config, ports) + database + principal + session_ext + conf_ext
