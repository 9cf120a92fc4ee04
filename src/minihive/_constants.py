"""Shared constants for minihive."""

# Transport modes understood by HiveServer2
HS2_BINARY_MODE = "binary"
HS2_HTTP_MODE = "http"

# JDBC driver class clients load to talk to the front end
JDBC_DRIVER_NAME = "org.apache.hive.jdbc.HiveDriver"
JDBC_SCHEME = "jdbc:hive2://"
HTTP_PATH = "cliservice"

DEFAULT_HOST = "localhost"
DEFAULT_DATABASE = "default"
DEFAULT_AUTH_TYPE = "KERBEROS"

# Environment variable that roots the workspace (falls back to the system temp dir)
TEST_TMP_DIR_ENV = "TEST_TMP_DIR"
LOCAL_BASE_DIRNAME = "local_base"

# Warehouse must be fully open and shared scratch write-all so that
# impersonated users can create tables and session dirs.
FULL_PERM = 0o777
WRITE_ALL_PERM = 0o733

# Cleanup refuses to delete anything closer to "/" than this
MIN_CLEANUP_DEPTH = 3

# Simulated Hadoop cluster sizing
SIMULATED_NODES = 4

# Placeholder credentials used by the readiness probe's trial session
PROBE_USER = "foo"
PROBE_PASSWORD = "bar"
