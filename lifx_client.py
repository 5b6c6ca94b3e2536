"""
LIFX LAN Client

Owns one UDP socket and everything that shares it: the device registry, the
rate-limited send queue, the message handler registry and the discovery
loop. A receiver thread decodes inbound datagrams, two ticker threads drain
the send queue and drive discovery. Shared state is guarded by a single
client lock and every callback or event listener runs after it is released.

Usage:
    client = Client()
    client.on('light-new', lambda device: print(device))
    client.init(lights=['192.168.1.20'])
    ...
    client.destroy()
"""

import logging
import socket
import threading
import time
from collections import defaultdict
from concurrent.futures import Future
from typing import Callable, Optional

import psutil

from lifx_config import ClientConfig, is_ipv4
from lifx_devices import EVENT_NEW, EVENT_ONLINE, Device, DeviceRegistry
from lifx_errors import (
    AckTimeoutError,
    ConfigurationError,
    DecodeError,
    LifxError,
    SocketError,
)
from lifx_handlers import HandlerCall, HandlerRegistry, run_calls
from lifx_log import get_logger
from lifx_packets import PacketType
from lifx_protocol import (
    NO_SOURCE,
    NO_TARGET,
    SEQUENCE_MAX,
    Packet,
    PacketTypeLike,
    create,
    decode,
    encode,
    generate_source_id,
    packet_type,
)
from lifx_queue import SendQueue, Transaction

logger = get_logger(__name__)


RECEIVE_BUFFER_SIZE = 1024
RECEIVE_POLL_INTERVAL = 0.2
JOIN_TIMEOUT = 1.0

EVENTS = frozenset({
    'listening',
    'light-new',
    'light-online',
    'light-offline',
    'message',
    'malformed',
    'error',
})


# =============================================================================
# Helpers
# =============================================================================

def udp_socket() -> socket.socket:
    """Create and configure UDP socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    return sock


def host_addresses() -> frozenset:
    """IPv4 addresses of every network interface, used to ignore our own broadcasts."""
    addresses = set()
    for interface_addresses in psutil.net_if_addrs().values():
        for snic in interface_addresses:
            if snic.family == socket.AF_INET:
                addresses.add(snic.address)
    return frozenset(addresses)


class Ticker(threading.Thread):
    """
    Calls action every interval seconds until stopped or until the action
    returns False.
    """

    def __init__(self, interval: float, action: Callable[[], Optional[bool]], name: str):
        super().__init__(name=name, daemon=True)
        self.interval = interval
        self._action = action
        self._stop_event = threading.Event()

    def run(self):
        while not self._stop_event.wait(self.interval):
            if self._action() is False:
                break

    def stop(self, join: bool = True):
        self._stop_event.set()
        if join and self.is_alive() and self is not threading.current_thread():
            self.join(timeout=JOIN_TIMEOUT)


# =============================================================================
# Client
# =============================================================================

class Client:
    """
    LIFX LAN client.

    Args:
        config: Client options; replaced by the options given to init()
        clock: Monotonic time source in seconds
        socket_factory: Returns an unbound UDP socket
        own_addresses: Addresses whose datagrams are ignored (defaults to
                       this host's addresses, resolved on init)

    Raises:
        ConfigurationError: config is invalid
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        socket_factory: Callable[[], socket.socket] = udp_socket,
        own_addresses: Optional[frozenset] = None,
    ):
        self.config = config or ClientConfig()
        self.config.validate()
        self._clock = clock
        self._socket_factory = socket_factory
        self._own_addresses = own_addresses

        self.source = self.config.source or generate_source_id()
        self.debug = False
        self.devices = DeviceRegistry()
        self.queue = SendQueue(clock=clock)
        self.handlers = HandlerRegistry(clock=clock)
        self._apply_config(self.config)

        self.sequence = 0
        self.discovery_epoch = 0
        self.socket: Optional[socket.socket] = None
        self.is_socket_bound = False
        self.port: Optional[int] = None

        self._lock = threading.RLock()
        self._listeners: dict[str, list[Callable]] = defaultdict(list)
        self._running = False
        self._receiver: Optional[threading.Thread] = None
        self._send_ticker: Optional[Ticker] = None
        self._discovery_ticker: Optional[Ticker] = None
        self._discovery_lights: list[str] = []

        # Built-in permanent handlers keep the registry current
        self.handlers.register(PacketType.STATE_SERVICE, self._process_discovery_packet)
        self.handlers.register(PacketType.STATE_LABEL, self._process_label_packet)
        self.handlers.register(PacketType.LIGHT_STATE, self._process_label_packet)

    def _apply_config(self, config: ClientConfig):
        self.queue.max_retries = config.resend_max_times
        self.queue.retry_delay = config.resend_packet_delay / 1000
        self.handlers.timeout = config.message_handler_timeout / 1000
        self.set_debug(config.debug)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(self, **options) -> 'Client':
        """
        Validate options, bind the socket and start discovery.

        Options are the fields of ClientConfig. Nothing is bound when an
        option is invalid.

        Raises:
            ConfigurationError: invalid options, or the client is already running
            SocketError: the socket could not be bound
        """
        if self._running:
            raise ConfigurationError('LIFX Client is already initialized')

        config = ClientConfig.from_options(**options)
        self.config = config
        self.source = config.source.lower() if config.source else self.source
        self._apply_config(config)

        sock = self._socket_factory()
        try:
            sock.bind((config.address, config.port))
            sock.settimeout(RECEIVE_POLL_INTERVAL)
            bound_port = sock.getsockname()[1]
        except OSError as e:
            sock.close()
            raise SocketError(f"LIFX Client could not bind to {config.address}:{config.port}: {e}") from e

        if self._own_addresses is None:
            self._own_addresses = host_addresses()

        with self._lock:
            self.socket = sock
            self.is_socket_bound = True
            self.port = bound_port
            self._running = True
            self._receiver = threading.Thread(target=self._receive_loop, name='lifx-receiver', daemon=True)
            self._receiver.start()

        logger.info(f"LIFX Client listening on {config.address}:{bound_port} (source {self.source})")
        self._emit('listening')

        if config.start_discovery:
            self.start_discovery(config.lights)
        return self

    def destroy(self):
        """Stop discovery and sending, close the socket and join the receiver."""
        with self._lock:
            self._running = False
            tickers = [self._send_ticker, self._discovery_ticker]
            self._send_ticker = None
            self._discovery_ticker = None
            sock = self.socket
            self.is_socket_bound = False
            receiver = self._receiver
            self._receiver = None
            self.queue.clear()

        for ticker in tickers:
            if ticker is not None:
                ticker.stop()
        if sock is not None:
            sock.close()
        if receiver is not None and receiver is not threading.current_thread():
            receiver.join(timeout=JOIN_TIMEOUT)
        logger.debug('LIFX Client destroyed')

    def address(self) -> Optional[tuple]:
        """Local (address, port) of the bound socket, or None when unbound."""
        if self.socket is None or not self.is_socket_bound:
            return None
        try:
            return self.socket.getsockname()
        except OSError:
            return None

    def set_debug(self, debug: bool):
        """Turn per-datagram debug logging on or off at runtime."""
        if not isinstance(debug, bool):
            raise TypeError('LIFX Client set_debug expects boolean as parameter')
        self.debug = debug
        logger.setLevel(logging.DEBUG if debug else logging.NOTSET)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, listener: Callable):
        """Register an event listener."""
        if event not in EVENTS:
            raise ValueError(f"Unknown LIFX Client event: {event}")
        if not callable(listener):
            raise TypeError('LIFX Client event listener must be callable')
        with self._lock:
            self._listeners[event].append(listener)

    def off(self, event: str, listener: Optional[Callable] = None):
        """Remove one listener, or every listener of an event."""
        with self._lock:
            if listener is None:
                self._listeners.pop(event, None)
            elif listener in self._listeners.get(event, []):
                self._listeners[event].remove(listener)

    def _emit(self, event: str, *args):
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' raised")

    # -------------------------------------------------------------------------
    # Receiving
    # -------------------------------------------------------------------------

    def _receive_loop(self):
        while self._running:
            try:
                data, rinfo = self.socket.recvfrom(RECEIVE_BUFFER_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self._running and self.is_socket_bound:
                    self._handle_socket_error(e)
                break
            self.handle_datagram(data, rinfo)

    def handle_datagram(self, data: bytes, rinfo: tuple):
        """Decode one inbound datagram and dispatch it to handlers and listeners."""
        if self._own_addresses and rinfo[0] in self._own_addresses:
            return

        if self.debug:
            logger.debug(f"{data.hex()} from {rinfo[0]}")

        try:
            packet = decode(data)
        except DecodeError as e:
            logger.warning(f"Dropped malformed packet from {rinfo[0]}: {e.reason} ({e.data_preview.hex()})")
            self._emit('malformed', e, data, rinfo)
            return

        with self._lock:
            calls, matched = self.handlers.collect(packet, rinfo, self.source)
            for sequence in matched:
                self.queue.remove_sequence(sequence)

        run_calls(calls)
        self._emit('message', packet, rinfo)

    def _handle_socket_error(self, error: OSError):
        logger.error(f"LIFX Client UDP error: {error}")
        socket_error = SocketError(str(error))
        with self._lock:
            self.is_socket_bound = False
            sock = self.socket
            calls = self._fail_outstanding(socket_error)
        if sock is not None:
            sock.close()
        run_calls(calls)
        self._emit('error', socket_error)

    def _fail_outstanding(self, error: LifxError) -> list:
        """Drop queued packets and fail every waiting one-shot handler. Caller holds the lock."""
        self.queue.clear()
        return self.handlers.fail_pending(error)

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def _next_sequence(self) -> int:
        """Get next sequence number (wraps at 255)."""
        if self.sequence >= SEQUENCE_MAX:
            self.sequence = 0
        else:
            self.sequence += 1
        return self.sequence

    def _queue_packet(self, packet: Packet, callback=None,
                      response_type: PacketType = PacketType.ACKNOWLEDGEMENT) -> int:
        if not isinstance(packet, Packet):
            raise TypeError('LIFX Client send expects a Packet (see lifx_protocol.create)')
        if callback is not None and not callable(callback):
            raise TypeError('LIFX Client send expects callback to be callable')

        with self._lock:
            address = packet.address
            if packet.target and packet.target != NO_TARGET:
                device = self.devices.get(packet.target)
                if device is not None:
                    address = device.address
            if packet.source == NO_SOURCE:
                packet.header.source = self.source

            sequence = self._next_sequence()
            packet.sequence = sequence
            transaction = Transaction.ONE_WAY
            if callback is not None:
                if response_type is PacketType.ACKNOWLEDGEMENT:
                    packet.header.ack_required = True
                else:
                    packet.header.res_required = True
                transaction = Transaction.REQUEST_RESPONSE

            data = encode(packet)
            if callback is not None:
                self.handlers.register(response_type, callback, sequence)
            self.queue.enqueue(data, address, transaction, sequence)
            self._start_sending_process()
        return sequence

    def send(self, packet: Packet, callback=None) -> int:
        """
        Queue a packet for sending.

        With a callback the packet asks for an acknowledgement and is resent
        until one arrives; callback(error, packet, rinfo) then receives the
        acknowledgement or an AckTimeoutError.

        Returns:
            The sequence number of the request

        Raises:
            EncodeError: unknown type or invalid payload fields
        """
        return self._queue_packet(packet, callback)

    def request(self, packet: Packet, response_type: Optional[PacketTypeLike] = None) -> Future:
        """
        Send a packet and return a Future for the reply.

        Without response_type the future resolves with the acknowledgement,
        otherwise with the first reply of that type carrying the request's
        sequence. Timeouts resolve it with the corresponding LifxError.
        """
        future: Future = Future()

        def resolve(error, response, rinfo):
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(response)

        resolved = packet_type(response_type) if response_type is not None else PacketType.ACKNOWLEDGEMENT
        self._queue_packet(packet, resolve, resolved)
        return future

    def _start_sending_process(self):
        if self._send_ticker is None and self._running:
            self._send_ticker = Ticker(self.config.message_rate_limit / 1000, self._sending_process, 'lifx-sender')
            self._send_ticker.start()

    def _transmit(self, entry):
        address = entry.address or self.config.broadcast
        self.socket.sendto(entry.data, (address, self.config.send_port))
        if self.debug:
            logger.debug(f"{entry.data.hex()} to {address}, send {entry.times_sent + 1} time(s)")

    def _sending_process(self) -> bool:
        """Send or resend one queued packet. Returns False once the queue is empty."""
        if not self._running:
            return False

        exhausted = []
        socket_error = None
        with self._lock:
            if not self.is_socket_bound:
                self._send_ticker = None
                logger.warning('LIFX Client stopped sending due to unbound socket')
                calls = self._fail_outstanding(SocketError('LIFX Client socket is not bound'))
                sent = False
            else:
                try:
                    sent = self.queue.tick(self._transmit, exhausted.append)
                except OSError as e:
                    socket_error = e
                    sent = False
                if not sent:
                    self._send_ticker = None
                calls = []

            for entry in exhausted:
                logger.debug(f"Packet with sequence {entry.sequence} reached resend limit")
                # Requests made with a response type wait on that type instead of an ack
                handler = self.handlers.pop_ack(entry.sequence) or self.handlers.pop_sequence(entry.sequence)
                if handler is not None:
                    calls.append(HandlerCall(handler, AckTimeoutError(entry.sequence, self.queue.max_retries)))
            calls.extend(self.handlers.expire())

        run_calls(calls)
        if socket_error is not None:
            self._handle_socket_error(socket_error)
        return sent

    # -------------------------------------------------------------------------
    # Handlers and devices
    # -------------------------------------------------------------------------

    def add_message_handler(self, type: PacketTypeLike, callback, sequence: Optional[int] = None):
        """
        Call callback(error, packet, rinfo) when a packet of the given type arrives.

        With a sequence the handler fires once for that sequence and expires
        after message_handler_timeout; without one it is permanent.
        """
        with self._lock:
            return self.handlers.register(type, callback, sequence)

    def light(self, identifier: str) -> Optional[Device]:
        """Find a device by address, id or label."""
        with self._lock:
            return self.devices.find(identifier)

    find_device = light

    def lights(self, status: Optional[str] = 'on') -> list[Device]:
        """
        Known devices filtered by status.

        Args:
            status: 'on' (default), 'off', or '' / None for all devices
        """
        if status is not None and not isinstance(status, str):
            raise TypeError('LIFX Client lights expects status to be a string')
        with self._lock:
            return self.devices.list(status)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def start_discovery(self, lights: Optional[list] = None):
        """
        Start periodic discovery, probing immediately.

        Args:
            lights: Addresses of known lights to probe by unicast as well
        """
        lights = list(lights or [])
        for light in lights:
            if not is_ipv4(light):
                raise ConfigurationError(f"LIFX Client lights element '{light}' is not expected IPv4 format")

        with self._lock:
            if self._discovery_ticker is not None:
                return
            self._discovery_lights = lights
            self._discovery_ticker = Ticker(
                self.config.discovery_interval / 1000, self._discovery_tick, 'lifx-discovery'
            )
            ticker = self._discovery_ticker

        self._discovery_tick()
        ticker.start()

    def stop_discovery(self):
        """Stop discovery; the registry stops updating liveness."""
        with self._lock:
            ticker = self._discovery_ticker
            self._discovery_ticker = None
        if ticker is not None:
            ticker.stop()

    def _discovery_tick(self) -> bool:
        if not self._running:
            return False

        with self._lock:
            stale = self.devices.mark_stale(self.discovery_epoch, self.config.light_offline_tolerance)
            lights = list(self._discovery_lights)

        for device in stale:
            logger.info(f"Light offline: {device}")
            self._emit('light-offline', device)

        self.send(create(PacketType.GET_SERVICE, source=self.source))
        for address in lights:
            self.send(create(PacketType.GET_SERVICE, {'address': address}, source=self.source))

        with self._lock:
            self.discovery_epoch += 1
        return True

    def _process_discovery_packet(self, error: Optional[LifxError], packet: Packet, rinfo):
        if error is not None:
            return
        if packet['service'] != 'udp' or packet['port'] != self.config.send_port:
            return

        with self._lock:
            device, event = self.devices.upsert_from_discovery(
                packet.target, rinfo[0], packet['port'], self.discovery_epoch
            )

        if event == EVENT_NEW:
            logger.info(f"New light: {device}")
            self.send(create(PacketType.GET_LABEL, source=self.source, target=device.id))
            self._emit('light-new', device)
        elif event == EVENT_ONLINE:
            logger.info(f"Light online: {device}")
            self._emit('light-online', device)

    def _process_label_packet(self, error: Optional[LifxError], packet: Packet, rinfo):
        if error is not None:
            return
        with self._lock:
            self.devices.set_label(packet.target, packet['label'])
