"""Free-port allocation for cluster services.

Ports are found by binding to port 0 and reading back what the OS assigned.
The socket is closed before the service binds, so another process can grab
the port in between; ``PortAssignment.reallocate`` narrows that window by
refreshing the front-end ports right before the server is constructed.
"""

from __future__ import annotations

import socket
from collections.abc import Iterable
from dataclasses import dataclass

_MAX_ATTEMPTS = 20


def find_free_port(exclude: Iterable[int] = (), host: str = "") -> int:
    """Return a TCP port that is currently free, skipping ``exclude``."""
    excluded = set(exclude)
    for _ in range(_MAX_ATTEMPTS):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            port = sock.getsockname()[1]
        if port not in excluded:
            return port
    raise OSError(f"Could not find a free port outside {sorted(excluded)}")


@dataclass
class PortAssignment:
    """Ports used by one cluster instance."""

    binary: int
    http: int
    metastore: int | None = None

    @classmethod
    def allocate(cls) -> PortAssignment:
        binary = find_free_port()
        http = find_free_port(exclude=[binary])
        return cls(binary=binary, http=http)

    def in_use(self) -> list[int]:
        return [p for p in (self.binary, self.http, self.metastore) if p is not None]

    def allocate_metastore(self) -> int:
        self.metastore = find_free_port(exclude=self.in_use())
        return self.metastore

    def reallocate(self) -> None:
        """Refresh the front-end ports.

        Simulated cluster services and the metastore may have taken ports
        since construction.
        """
        taken = [self.metastore] if self.metastore is not None else []
        self.binary = find_free_port(exclude=taken)
        self.http = find_free_port(exclude=[*taken, self.binary])
