"""
MPP Test Configuration
======================

Shared fixtures: loopback UDP peers, ephemeral-port configs, a fake clock.
"""

import json
import select
import socket

import pytest

from ara_mpp import MppConfig


# =============================================================================
# Pytest Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "network: tests that open loopback UDP sockets")
    config.addinivalue_line("markers", "slow: tests that depend on wall-clock timing")


# =============================================================================
# Helpers
# =============================================================================

class UdpPeer:
    """A plain loopback UDP socket standing in for another component."""

    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(1.0)

    @property
    def port(self) -> int:
        return self.sock.getsockname()[1]

    def send(self, port: int, payload) -> None:
        if not isinstance(payload, bytes):
            payload = (json.dumps(payload) + "\n").encode("utf-8")
        self.sock.sendto(payload, ("127.0.0.1", port))

    def recv_raw(self) -> bytes:
        data, _ = self.sock.recvfrom(65536)
        return data

    def recv_json(self):
        return json.loads(self.recv_raw().decode("utf-8"))

    def pending(self, timeout: float = 0.05) -> bool:
        readable, _, _ = select.select([self.sock], [], [], timeout)
        return bool(readable)

    def close(self) -> None:
        self.sock.close()


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def free_udp_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def wait_readable(sock, timeout: float = 1.0) -> bool:
    """Block until `sock` has a datagram queued."""
    readable, _, _ = select.select([sock], [], [], timeout)
    return bool(readable)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def peer():
    p = UdpPeer()
    yield p
    p.close()


@pytest.fixture
def sink():
    """Stands in for the belief-sink (BLS) port."""
    p = UdpPeer()
    yield p
    p.close()


@pytest.fixture
def config(sink):
    """Config pointing the sink at the `sink` fixture and the bus at a free port."""
    return MppConfig(
        bus_port=free_udp_port(),
        sink_port=sink.port,
        idle_wait_ms=5.0,
    )


@pytest.fixture
def clock():
    return FakeClock()
