"""Instance-scoped Hive site configuration.

Every service the cluster starts receives the same ``SiteConf`` object, so
values such as the metastore URI or scratch directories never leak into
process-wide state. Process-backed services get it rendered as a
``hive-site.xml`` file.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape


class ConfVars:
    """Hive configuration keys the orchestrator reads or writes."""

    # HiveServer2
    TRANSPORT_MODE = "hive.server2.transport.mode"
    THRIFT_BIND_HOST = "hive.server2.thrift.bind.host"
    THRIFT_PORT = "hive.server2.thrift.port"
    THRIFT_HTTP_PORT = "hive.server2.thrift.http.port"
    THRIFT_HTTP_PATH = "hive.server2.thrift.http.path"
    MAX_START_ATTEMPTS = "hive.server2.max.start.attempts"
    START_ATTEMPT_SLEEP = "hive.server2.sleep.interval.between.start.attempts"
    AUTHENTICATION = "hive.server2.authentication"
    KERBEROS_PRINCIPAL = "hive.server2.authentication.kerberos.principal"
    KERBEROS_KEYTAB = "hive.server2.authentication.kerberos.keytab"

    # Metastore
    METASTORE_URIS = "hive.metastore.uris"
    METASTORE_CONNECT_URL = "javax.jdo.option.ConnectionURL"
    METASTORE_WAREHOUSE = "hive.metastore.warehouse.dir"
    METASTORE_KERBEROS_PRINCIPAL = "hive.metastore.kerberos.principal"
    METASTORE_KERBEROS_KEYTAB = "hive.metastore.kerberos.keytab.file"
    METASTORE_USE_SASL = "hive.metastore.sasl.enabled"

    # Scratch space
    SCRATCH_DIR = "hive.exec.scratchdir"
    LOCAL_SCRATCH_DIR = "hive.exec.local.scratchdir"


def to_conf_value(value: Any) -> str:
    """Render a Python value the way Hadoop configuration files expect it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateRenderer:
    """Renders Jinja2 templates for generated configuration files."""

    def __init__(self, template_dir: Path | None = None):
        if template_dir is None:
            from minihive._resources import get_templates_dir

            template_dir = get_templates_dir()

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["xml", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(**context)


class SiteConf:
    """Mutable key/value configuration owned by one cluster instance."""

    TEMPLATE = "hive-site.xml.j2"

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values: dict[str, str] = {}
        if values:
            self.update(values)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = to_conf_value(value)

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def copy(self) -> SiteConf:
        return SiteConf(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SiteConf({len(self._values)} properties)"

    def to_xml(self, renderer: TemplateRenderer | None = None, description: str = "") -> str:
        """Render as a Hadoop-style ``<configuration>`` document."""
        renderer = renderer or TemplateRenderer()
        return renderer.render(
            self.TEMPLATE,
            {
                "description": description,
                "properties": sorted(self._values.items()),
            },
        )

    def write(self, path: str | Path, description: str = "") -> Path:
        """Write the rendered configuration to ``path``, creating parent dirs."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_xml(description=description))
        return path

    @classmethod
    def from_xml(cls, path: str | Path) -> SiteConf:
        """Load a Hadoop-style XML configuration file.

        Properties without a ``<value>`` element are skipped.
        """
        tree = ET.parse(str(path))
        conf = cls()
        for prop in tree.getroot().iter("property"):
            name = prop.findtext("name")
            value = prop.findtext("value")
            if name and value is not None:
                conf.set(name.strip(), value)
        return conf
