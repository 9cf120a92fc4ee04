"""Readiness probing for freshly started services.

A server that reports "started" may not have bound its listener yet, so the
prober keeps opening (and immediately closing) a trial session until one
succeeds or the deadline passes.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from minihive._constants import HTTP_PATH, PROBE_PASSWORD, PROBE_USER
from minihive.config import ProbeSettings, TopologyConfig

from .ports import PortAssignment
from .services import StartupError

logger = logging.getLogger(__name__)


class WaitStatus(Enum):
    """Status of a wait operation."""

    READY = "ready"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class WaitResult:
    """Result of a wait operation."""

    status: WaitStatus
    message: str
    elapsed_seconds: float
    attempts: int


class StartupTimeoutError(StartupError):
    """Raised when a started server never accepted a session."""

    def __init__(self, endpoint: str, result: WaitResult | None = None):
        super().__init__(f"Couldn't access new HiveServer2: {endpoint}")
        self.endpoint = endpoint
        self.result = result


def wait_for_condition(
    check_fn: Callable[[], tuple[bool, str]],
    timeout_seconds: float = 300,
    poll_interval: float = 5,
    description: str = "condition",
    cancel: threading.Event | None = None,
) -> WaitResult:
    """Generic wait for a condition to be true.

    Exceptions raised by ``check_fn`` count as "not yet". Setting
    ``cancel`` ends the wait early with ``WaitStatus.CANCELLED``.

    Args:
        check_fn: Function that returns (success, message)
        timeout_seconds: Maximum time to wait
        poll_interval: Seconds between checks
        description: Description for logging
        cancel: Optional event that aborts the wait

    Returns:
        WaitResult with outcome
    """
    cancel = cancel or threading.Event()
    start_time = time.monotonic()
    deadline = start_time + timeout_seconds
    attempts = 0
    message = "not checked"

    while True:
        attempts += 1
        try:
            success, message = check_fn()
            if success:
                return WaitResult(
                    status=WaitStatus.READY,
                    message=message,
                    elapsed_seconds=time.monotonic() - start_time,
                    attempts=attempts,
                )
        except Exception as e:
            message = str(e)
            logger.debug("%s not ready (attempt %d): %s", description, attempts, e)

        now = time.monotonic()
        if now >= deadline:
            elapsed = now - start_time
            return WaitResult(
                status=WaitStatus.TIMEOUT,
                message=f"Timeout after {elapsed:.1f}s waiting for {description}: {message}",
                elapsed_seconds=elapsed,
                attempts=attempts,
            )

        if cancel.wait(min(poll_interval, deadline - now)):
            return WaitResult(
                status=WaitStatus.CANCELLED,
                message=f"Cancelled while waiting for {description}",
                elapsed_seconds=time.monotonic() - start_time,
                attempts=attempts,
            )


# =============================================================================
# Session clients
# =============================================================================


class SessionClient(Protocol):
    """Opens and closes client sessions against a running front end."""

    def open_session(
        self, user: str, password: str, conf: dict[str, str] | None = None
    ) -> Any: ...

    def close_session(self, handle: Any) -> None: ...


class TcpSessionClient:
    """Binary transport: a session is an accepted TCP connection.

    This only shows that the thrift listener is bound. No thrift
    ``OpenSession`` call is made, so ``user`` and ``password`` are not
    checked; pass a real HiveServer2 client through
    ``session_client_factory`` when credentials matter.
    """

    def __init__(self, host: str, port: int, connect_timeout: float = 5.0):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout

    def open_session(
        self, user: str, password: str, conf: dict[str, str] | None = None
    ) -> socket.socket:
        return socket.create_connection((self.host, self.port), timeout=self.connect_timeout)

    def close_session(self, handle: socket.socket) -> None:
        handle.close()


class HttpSessionClient:
    """HTTP transport: any HTTP response from the thrift path means the listener is up."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def open_session(
        self, user: str, password: str, conf: dict[str, str] | None = None
    ) -> httpx.Client:
        client = httpx.Client(auth=(user, password), timeout=self.timeout)
        try:
            client.get(self.url, headers=conf or {})
        except httpx.HTTPError:
            client.close()
            raise
        return client

    def close_session(self, handle: httpx.Client) -> None:
        handle.close()


def default_session_client(config: TopologyConfig, ports: PortAssignment) -> SessionClient:
    """Pick the session client matching the configured transport."""
    if config.is_http_transport:
        return HttpSessionClient(f"http://{config.host}:{ports.http}/{HTTP_PATH}")
    return TcpSessionClient(config.host, ports.binary)


def probe_session(
    client: SessionClient,
    endpoint: str,
    settings: ProbeSettings,
    cancel: threading.Event | None = None,
) -> WaitResult:
    """Block until a trial session opens and closes cleanly.

    Raises:
        StartupTimeoutError: If no session opened within ``settings.timeout``.
        StartupError: If the wait was cancelled.
    """

    def check() -> tuple[bool, str]:
        handle = client.open_session(PROBE_USER, PROBE_PASSWORD, {})
        client.close_session(handle)
        return True, f"Session opened against {endpoint}"

    result = wait_for_condition(
        check,
        timeout_seconds=settings.timeout,
        poll_interval=settings.interval,
        description=f"HiveServer2 at {endpoint}",
        cancel=cancel,
    )
    if result.status == WaitStatus.TIMEOUT:
        raise StartupTimeoutError(endpoint, result)
    if result.status == WaitStatus.CANCELLED:
        raise StartupError(f"Startup cancelled while probing {endpoint}")

    logger.info(
        "HiveServer2 ready at %s after %d attempt(s), %.1fs",
        endpoint,
        result.attempts,
        result.elapsed_seconds,
    )
    return result
