"""Tests for JDBC URL construction."""

import pytest

from minihive.cluster import HTTP_TRANSPORT_PROPS, PortAssignment, base_jdbc_url, build_jdbc_url
from minihive.config import TopologyBuilder

PRINCIPAL = "hive/localhost@EXAMPLE.COM"


@pytest.fixture
def ports():
    return PortAssignment(binary=10000, http=10001)


class TestBaseJdbcUrl:
    def test_binary_uses_binary_port(self, ports):
        assert base_jdbc_url(TopologyBuilder().build(), ports) == "jdbc:hive2://localhost:10000/"

    def test_http_uses_http_port(self, ports):
        config = TopologyBuilder().with_http_transport().build()
        assert base_jdbc_url(config, ports) == "jdbc:hive2://localhost:10001/"


class TestBuildJdbcUrl:
    """Tests for build_jdbc_url()."""

    def test_plain_database(self, ports):
        url = build_jdbc_url(TopologyBuilder().build(), ports, "db1")
        assert url == "jdbc:hive2://localhost:10000/db1"

    def test_default_database(self, ports):
        assert build_jdbc_url(TopologyBuilder().build(), ports).endswith("/default")

    def test_principal_appended_with_auth(self, ports):
        config = TopologyBuilder().with_simulated_auth(PRINCIPAL, "/k").build()
        url = build_jdbc_url(config, ports, "db1", session_ext=";ssl=true")
        assert url == f"jdbc:hive2://localhost:10000/db1;principal={PRINCIPAL};ssl=true"

    def test_conf_ext_gets_question_mark(self, ports):
        url = build_jdbc_url(TopologyBuilder().build(), ports, conf_ext="a=1;b=2")
        assert url == "jdbc:hive2://localhost:10000/default?a=1;b=2"

    @pytest.mark.parametrize("conf_ext", ["", "   ", None])
    def test_blank_conf_ext_has_no_question_mark(self, ports, conf_ext):
        url = build_jdbc_url(TopologyBuilder().build(), ports, "db1", None, conf_ext)
        assert "?" not in url
        assert url == "jdbc:hive2://localhost:10000/db1"

    def test_http_props_prepended_once(self, ports):
        config = TopologyBuilder().with_http_transport().build()
        url = build_jdbc_url(config, ports, "db1", conf_ext="p=v")
        assert url == f"jdbc:hive2://localhost:10001/db1?{HTTP_TRANSPORT_PROPS}p=v"
        assert url.count("hive.server2.transport.mode=http") == 1
        assert url.index("hive.server2.thrift.http.path=cliservice") < url.index("p=v")

    def test_http_without_conf_ext(self, ports):
        config = TopologyBuilder().with_http_transport().build()
        url = build_jdbc_url(config, ports)
        assert url == (
            "jdbc:hive2://localhost:10001/default"
            "?hive.server2.transport.mode=http;hive.server2.thrift.http.path=cliservice;"
        )

    def test_http_with_principal(self, ports):
        config = TopologyBuilder().with_http_transport().with_simulated_auth(PRINCIPAL, "/k").build()
        url = build_jdbc_url(config, ports, "db1")
        assert url.startswith(f"jdbc:hive2://localhost:10001/db1;principal={PRINCIPAL}?")
