"""
LIFX client exceptions.

Transport noise (DecodeError) is absorbed by the client, caller mistakes
(EncodeError, ConfigurationError) are raised synchronously, and protocol
non-responses (AckTimeoutError, HandlerTimeoutError) are handed to the
callback that started the exchange.
"""

from typing import Optional


class LifxError(Exception):
    """Base class for all LIFX client errors."""
    pass


class DecodeError(LifxError):
    """
    Inbound datagram could not be decoded.

    Attributes:
        reason: Short failure reason (e.g. "too_short", "size_mismatch")
        data_preview: First 16 bytes of the offending buffer
    """

    def __init__(self, reason: str, data: bytes = b''):
        self.reason = reason
        self.data_preview = data[:16] if data else b''
        super().__init__(f"Packet decode failed: {reason}")


class EncodeError(LifxError):
    """Unknown packet type or a payload field outside its valid range."""
    pass


class AckTimeoutError(LifxError):
    """A request-response transaction ran out of resends without an acknowledgement."""

    def __init__(self, sequence: int, retries: int):
        self.sequence = sequence
        self.retries = retries
        super().__init__(f"No LIFX response after max resend limit of {retries}")


class HandlerTimeoutError(LifxError):
    """A one-shot message handler was not matched in time."""

    def __init__(self, packet_type: str, sequence: Optional[int] = None):
        self.packet_type = packet_type
        self.sequence = sequence
        super().__init__(f"No LIFX response in time for {packet_type} (sequence {sequence})")


class ConfigurationError(LifxError):
    """Client options are invalid."""
    pass


class SocketError(LifxError):
    """The UDP socket failed at the OS level."""
    pass
