"""
Shared fixtures for LIFX client tests.

Provides a fake UDP socket, a manual clock and a client bound to both, with
timer intervals long enough that tests drive ticks by hand.
"""

import queue
import socket
import time

import pytest

from lifx_client import Client
from lifx_protocol import create, encode


OWN_SOURCE = '3e805108'
DEVICE_ID = 'd073d5006d72'
DEVICE_ADDRESS = '192.168.0.50'


class FakeSocket:
    """Records datagrams instead of sending them; inbound data is queued by the test."""

    def __init__(self):
        self.sent: list[tuple[bytes, tuple]] = []
        self.bound = None
        self.closed = False
        self.timeout = None
        self.send_error: OSError | None = None
        self.inbox: queue.Queue = queue.Queue()

    def bind(self, address):
        self.bound = address

    def settimeout(self, timeout):
        self.timeout = timeout

    def getsockname(self):
        if self.closed or self.bound is None:
            raise OSError('socket is not bound')
        return (self.bound[0], self.bound[1] or 50123)

    def sendto(self, data, address):
        if self.closed:
            raise OSError('socket is closed')
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, address))

    def recvfrom(self, size):
        if self.closed:
            raise OSError('socket is closed')
        try:
            return self.inbox.get(timeout=self.timeout or 0.01)
        except queue.Empty:
            raise socket.timeout()

    def close(self):
        self.closed = True


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def inbound(type, params=None, source=OWN_SOURCE, target=DEVICE_ID, sequence=0) -> bytes:
    """Encode a datagram as a device would send it back to us."""
    packet = create(type, params, source=source, target=target)
    packet.sequence = sequence
    return encode(packet)


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(fake_socket, clock):
    """Client that has not been initialized yet."""
    client = Client(clock=clock, socket_factory=lambda: fake_socket, own_addresses=frozenset())
    yield client
    client.destroy()


@pytest.fixture
def start_client(client):
    """Initialize the client with manual timers; extra options override the defaults."""

    def start(**options):
        opts = {
            'source': OWN_SOURCE,
            'start_discovery': False,
            'message_rate_limit': 60000,
            'discovery_interval': 60000,
        }
        opts.update(options)
        return client.init(**opts)

    return start


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll predicate until it holds or timeout seconds pass; for tests that use real tickers."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
