"""
LIFX Message Handler Registry

Correlates decoded inbound packets with the callers waiting for them.
Handlers filter on packet type and optionally on sequence number: a
sequence-filtered handler fires once and is removed, an unfiltered handler
is permanent. Sequence-filtered handlers that wait longer than the handler
timeout are expired with HandlerTimeoutError.

Callbacks take (error, packet, rinfo).
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from lifx_errors import HandlerTimeoutError
from lifx_log import get_logger
from lifx_packets import PacketType
from lifx_protocol import Packet, PacketTypeLike, packet_type

logger = get_logger(__name__)

Callback = Callable[[Optional[Exception], Optional[Packet], Optional[tuple]], None]


@dataclass
class MessageHandler:
    """A registered waiter for one packet type."""
    type: PacketType
    callback: Callback
    sequence: Optional[int] = None
    timestamp: float = 0.0

    @property
    def one_shot(self) -> bool:
        return self.sequence is not None


@dataclass
class HandlerCall:
    """A callback invocation collected under the client lock, run after it is released."""
    handler: MessageHandler
    error: Optional[Exception] = None
    packet: Optional[Packet] = None
    rinfo: Optional[tuple] = None

    def run(self) -> None:
        try:
            self.handler.callback(self.error, self.packet, self.rinfo)
        except Exception:
            logger.exception(f"Message handler for {self.handler.type.label} raised")


def run_calls(calls: list[HandlerCall]) -> None:
    for call in calls:
        call.run()


class HandlerRegistry:
    """
    Ordered list of message handlers.

    Args:
        timeout: Seconds a sequence-filtered handler may wait before expiring
        clock: Monotonic time source in seconds
    """

    def __init__(self, timeout: float = 45.0, clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self._clock = clock
        self._handlers: list[MessageHandler] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self):
        return iter(list(self._handlers))

    def register(self, type: PacketTypeLike, callback: Callback,
                 sequence: Optional[int] = None) -> MessageHandler:
        """
        Add a handler at the end of the list.

        Raises:
            EncodeError: unknown packet type
            TypeError: callback is not callable or sequence is not an int
        """
        resolved = packet_type(type)
        if not callable(callback):
            raise TypeError('LIFX message handler callback must be callable')
        if sequence is not None and (not isinstance(sequence, int) or isinstance(sequence, bool)):
            raise TypeError('LIFX message handler sequence must be an integer')

        handler = MessageHandler(type=resolved, callback=callback, sequence=sequence,
                                 timestamp=self._clock())
        self._handlers.append(handler)
        return handler

    def remove(self, handler: MessageHandler) -> bool:
        try:
            self._handlers.remove(handler)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        self._handlers.clear()

    def collect(self, packet: Packet, rinfo, own_source: str) -> tuple[list[HandlerCall], list[int]]:
        """
        Match a packet against the registered handlers without running callbacks.

        Expired handlers are collected first. Packets carrying another
        client's source id match nothing. Returns the calls to run and the
        sequences whose one-shot handlers were satisfied.
        """
        calls = self.expire()
        if packet.source.lower() != (own_source or '').lower():
            return calls, []

        matched_sequences = []
        for handler in list(self._handlers):
            if int(handler.type) != packet.header.type:
                continue
            if handler.one_shot:
                if handler.sequence != packet.sequence:
                    continue
                self._handlers.remove(handler)
                matched_sequences.append(handler.sequence)
            calls.append(HandlerCall(handler, None, packet, rinfo))
        return calls, matched_sequences

    def dispatch(self, packet: Packet, rinfo, own_source: str) -> list[int]:
        """Match a packet and run the callbacks immediately; returns the matched sequences."""
        calls, matched = self.collect(packet, rinfo, own_source)
        run_calls(calls)
        return matched

    def expire(self) -> list[HandlerCall]:
        """Remove one-shot handlers older than the timeout and return their error calls."""
        now = self._clock()
        expired = []
        for handler in list(self._handlers):
            if handler.one_shot and now - handler.timestamp > self.timeout:
                self._handlers.remove(handler)
                logger.debug(f"Handler for {handler.type.label} sequence {handler.sequence} expired")
                expired.append(HandlerCall(
                    handler,
                    HandlerTimeoutError(handler.type.label, handler.sequence),
                ))
        return expired

    def fail_pending(self, error: Exception) -> list[HandlerCall]:
        """Remove every one-shot handler and return calls delivering error to them."""
        pending = [handler for handler in self._handlers if handler.one_shot]
        for handler in pending:
            self._handlers.remove(handler)
        return [HandlerCall(handler, error) for handler in pending]

    def pop_ack(self, sequence: int) -> Optional[MessageHandler]:
        """Remove and return the acknowledgement handler waiting on a sequence."""
        for handler in self._handlers:
            if handler.type is PacketType.ACKNOWLEDGEMENT and handler.sequence == sequence:
                self._handlers.remove(handler)
                return handler
        return None

    def pop_sequence(self, sequence: int) -> Optional[MessageHandler]:
        """Remove and return any one-shot handler waiting on a sequence."""
        for handler in self._handlers:
            if handler.sequence == sequence:
                self._handlers.remove(handler)
                return handler
        return None
