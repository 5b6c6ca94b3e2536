"""
LIFX Send Queue

Outbound datagrams waiting for the rate-limited sender. One entry is
handled per tick: one-way packets go out once, request-response packets are
resent until acknowledged or until the resend budget runs out.
"""

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class Transaction(Enum):
    """How a queued packet is delivered."""
    ONE_WAY = 'one_way'
    REQUEST_RESPONSE = 'request_response'


@dataclass
class QueueEntry:
    """A packet waiting in the send queue."""
    data: bytes
    address: Optional[str]
    transaction: Transaction
    sequence: int
    times_sent: int = 0
    time_last_sent: Optional[float] = None
    time_created: float = 0.0


class SendQueue:
    """
    FIFO of outbound packets with bounded resends.

    Args:
        max_retries: Transmissions allowed per request-response entry
        retry_delay: Minimum seconds between two transmissions of one entry
        clock: Monotonic time source in seconds
    """

    def __init__(self, max_retries: int = 3, retry_delay: float = 0.15,
                 clock: Callable[[], float] = time.monotonic):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._clock = clock
        self._entries: deque[QueueEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def enqueue(self, data: bytes, address: Optional[str], transaction: Transaction,
                sequence: int) -> int:
        """Add a packet to the back of the queue and return its sequence."""
        self._entries.append(QueueEntry(
            data=data,
            address=address,
            transaction=transaction,
            sequence=sequence,
            time_created=self._clock(),
        ))
        return sequence

    def remove_sequence(self, sequence: int) -> int:
        """Drop pending request-response entries for an answered sequence; returns how many."""
        before = len(self._entries)
        self._entries = deque(
            entry for entry in self._entries
            if not (entry.transaction is Transaction.REQUEST_RESPONSE and entry.sequence == sequence)
        )
        return before - len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def tick(self, transmit: Callable[[QueueEntry], None],
             on_exhausted: Callable[[QueueEntry], None]) -> bool:
        """
        Handle the entry at the front of the queue.

        transmit(entry) is called for every actual send, on_exhausted(entry)
        once a request-response entry has used up its resends (it is then
        dropped). Returns False if the queue was empty.
        """
        if not self._entries:
            return False

        entry = self._entries.popleft()
        if entry.transaction is Transaction.ONE_WAY:
            transmit(entry)
            entry.times_sent += 1
            entry.time_last_sent = self._clock()
            return True

        if entry.times_sent >= self.max_retries:
            on_exhausted(entry)
            return True

        now = self._clock()
        if entry.time_last_sent is None or now - entry.time_last_sent >= self.retry_delay:
            transmit(entry)
            entry.times_sent += 1
            entry.time_last_sent = now
        # Back of the queue until acknowledged or exhausted
        self._entries.append(entry)
        return True
