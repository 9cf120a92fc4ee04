"""minihive - embedded HiveServer2 test-cluster orchestrator."""

__version__ = "0.3.0"
