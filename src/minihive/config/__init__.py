"""minihive configuration module."""

from .builder import TopologyBuilder
from .loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigurationError,
    generate_example_topology_yaml,
    load_topology,
    save_topology,
)
from .schema import (
    ComputeMode,
    KerberosSettings,
    MetastoreMode,
    MetastoreSettings,
    ProbeSettings,
    TopologyConfig,
    TransportMode,
)
from .siteconf import ConfVars, SiteConf, TemplateRenderer

__all__ = [
    # Config classes
    "TopologyConfig",
    "TopologyBuilder",
    "KerberosSettings",
    "MetastoreSettings",
    "ProbeSettings",
    "SiteConf",
    "ConfVars",
    "TemplateRenderer",
    # Enums
    "ComputeMode",
    "MetastoreMode",
    "TransportMode",
    # Loader functions
    "load_topology",
    "save_topology",
    "generate_example_topology_yaml",
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigurationError",
]
