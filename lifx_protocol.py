#!/usr/bin/env python3
"""
LIFX LAN Protocol Library

Frame header codec and packet assembly for LIFX device communication.
Payload layouts live in lifx_packets; this module turns them into whole
datagrams and back.

Header structure (36 bytes, little-endian):
- Frame Header (8 bytes): size, protocol/addressable/tagged/origin, source
- Frame Address (16 bytes): target, reserved, site, res/ack flags, sequence
- Protocol Header (12 bytes): timestamp, type, reserved

Protocol documentation: https://lan.developer.lifx.com/docs/packet-contents
"""

import random
import struct
from dataclasses import dataclass, field, fields, replace
from typing import Optional, Union

from lifx_errors import DecodeError, EncodeError
from lifx_packets import PAYLOADS, PacketType, decode_payload, encode_payload


# =============================================================================
# Protocol Constants
# =============================================================================

LIFX_PORT = 56700
PROTOCOL_NUMBER = 1024
HEADER_SIZE = 36

# Masks for the frame description word
PROTOCOL_BITS = 0x0FFF
ADDRESSABLE_BIT = 0x1000
TAGGED_BIT = 0x2000
ORIGIN_BITS = 0xC000

# Frame address flag byte
RESPONSE_REQUIRED_BIT = 0x01
ACK_REQUIRED_BIT = 0x02

SEQUENCE_MAX = 255
NO_SOURCE = '00000000'
NO_TARGET = '000000000000'
SITE_SIZE = 6

PacketTypeLike = Union[PacketType, int, str]

# Names that resolve to the light-level types. The device-level power
# packets (20-22) carry no duration and are only reachable by id or member.
TYPE_ALIASES = {
    'getlight': PacketType.GET_COLOR,
    'statelight': PacketType.LIGHT_STATE,
    'getpower': PacketType.GET_LIGHT_POWER,
    'setpower': PacketType.SET_LIGHT_POWER,
    'statepower': PacketType.STATE_LIGHT_POWER,
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Header:
    """Decoded LIFX frame header."""
    size: int = HEADER_SIZE
    protocol: int = PROTOCOL_NUMBER
    addressable: bool = True
    tagged: bool = False
    origin: int = 0
    source: str = NO_SOURCE
    target: str = NO_TARGET
    site: bytes = bytes(SITE_SIZE)
    ack_required: bool = False
    res_required: bool = False
    sequence: int = 0
    timestamp: int = 0
    type: int = 0


@dataclass
class Packet:
    """
    A logical packet: header, payload fields and an optional destination.

    Produced by create() and decode(). Header values can still be changed
    before the packet is handed to encode() or Client.send().
    """
    header: Header
    payload: dict = field(default_factory=dict)
    address: Optional[str] = None

    @property
    def type(self) -> Union[PacketType, int]:
        """PacketType member, or the raw id for types this client does not know."""
        try:
            return PacketType(self.header.type)
        except ValueError:
            return self.header.type

    @property
    def name(self) -> str:
        packet_type = self.type
        if isinstance(packet_type, PacketType):
            return packet_type.label
        return f'unknown_{packet_type}'

    @property
    def source(self) -> str:
        return self.header.source

    @property
    def target(self) -> str:
        return self.header.target

    @target.setter
    def target(self, value: str):
        self.header.target = value

    @property
    def sequence(self) -> int:
        return self.header.sequence

    @sequence.setter
    def sequence(self, value: int):
        self.header.sequence = value

    def __getitem__(self, key: str):
        return self.payload[key]

    def get(self, key: str, default=None):
        return self.payload.get(key, default)


_HEADER_FIELDS = frozenset(f.name for f in fields(Header))


# =============================================================================
# Utility Functions
# =============================================================================

def generate_source_id() -> str:
    """Generate random 8 hex char source identifier (avoid 0 and 1 per LIFX docs)."""
    return f'{random.randint(2, 0xFFFFFFFF):08x}'


def packet_type(value: PacketTypeLike) -> PacketType:
    """
    Resolve a packet type given as PacketType, numeric id or name.

    Names match case-insensitively and ignore underscores, so
    'state_service', 'STATE_SERVICE' and 'stateService' are equivalent.
    'getLight'/'stateLight' and 'getPower'/'setPower'/'statePower' name the
    light-level packets (101/107 and 116-118).
    """
    if isinstance(value, PacketType):
        return value
    if isinstance(value, bool):
        raise EncodeError(f'Unknown LIFX packet type: {value!r}')
    if isinstance(value, int):
        try:
            return PacketType(value)
        except ValueError:
            raise EncodeError(f'Unknown LIFX packet type: {value}')
    if isinstance(value, str):
        wanted = value.replace('_', '').lower()
        if wanted in TYPE_ALIASES:
            return TYPE_ALIASES[wanted]
        for member in PacketType:
            if member.name.replace('_', '').lower() == wanted:
                return member
    raise EncodeError(f'Unknown LIFX packet type: {value!r}')


def _hex_field(value: str, size: int, name: str) -> bytes:
    try:
        raw = bytes.fromhex((value or '').replace(':', ''))
    except ValueError:
        raise EncodeError(f'LIFX {name} must be a hex string, got {value!r}')
    if len(raw) != size:
        raise EncodeError(f'LIFX {name} must be given in {size * 2} hex characters')
    return raw


def _check_header_field(value, maximum: int, name: str):
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f'LIFX {name} must be an integer, got {value!r}')
    if not 0 <= value <= maximum:
        raise EncodeError(f'LIFX {name} must be between 0 and {maximum}')


# =============================================================================
# Header Functions
# =============================================================================

def encode_header(header: Header) -> bytes:
    """
    Create a LIFX protocol header.

    Returns:
        36-byte header as bytes
    """
    _check_header_field(header.size, 0xFFFF, 'size')
    _check_header_field(header.protocol, PROTOCOL_BITS, 'protocol')
    _check_header_field(header.origin, 0x03, 'origin')
    _check_header_field(header.sequence, SEQUENCE_MAX, 'sequence')
    _check_header_field(header.timestamp, 0xFFFFFFFFFFFFFFFF, 'timestamp')
    _check_header_field(header.type, 0xFFFF, 'type')
    if len(header.site) != SITE_SIZE:
        raise EncodeError(f'LIFX site must be {SITE_SIZE} bytes')

    # Byte 2-3: protocol (12 bits) | addressable (bit 12) | tagged (bit 13) | origin (bits 14-15)
    frame_description = header.protocol
    if header.addressable:
        frame_description |= ADDRESSABLE_BIT
    if header.tagged:
        frame_description |= TAGGED_BIT
    frame_description |= header.origin << 14

    frame_header = (
        struct.pack('<HH', header.size, frame_description)
        + _hex_field(header.source, 4, 'source')
    )

    flags_byte = 0
    if header.res_required:
        flags_byte |= RESPONSE_REQUIRED_BIT
    if header.ack_required:
        flags_byte |= ACK_REQUIRED_BIT

    # Target is 6 bytes padded to 8, followed by the 6 byte site
    frame_address = (
        _hex_field(header.target, 6, 'target')
        + b'\x00\x00'
        + header.site
        + struct.pack('<BB', flags_byte, header.sequence)
    )

    protocol_header = struct.pack('<QHH', header.timestamp, header.type, 0)

    return frame_header + frame_address + protocol_header


def decode_header(data: bytes) -> Header:
    """
    Parse a LIFX protocol header from received data.

    Raises DecodeError if the buffer is shorter than a header or the size
    field disagrees with the buffer length.
    """
    if len(data) < HEADER_SIZE:
        raise DecodeError('too_short', data)

    size, frame_description = struct.unpack('<HH', data[0:4])
    if size != len(data):
        raise DecodeError('size_mismatch', data)

    flags_byte = data[22]
    timestamp, message_type = struct.unpack('<QH', data[24:34])

    return Header(
        size=size,
        protocol=frame_description & PROTOCOL_BITS,
        addressable=bool(frame_description & ADDRESSABLE_BIT),
        tagged=bool(frame_description & TAGGED_BIT),
        origin=(frame_description & ORIGIN_BITS) >> 14,
        source=data[4:8].hex(),
        target=data[8:14].hex(),
        site=bytes(data[16:22]),
        ack_required=bool(flags_byte & ACK_REQUIRED_BIT),
        res_required=bool(flags_byte & RESPONSE_REQUIRED_BIT),
        sequence=data[23],
        timestamp=timestamp,
        type=message_type,
    )


# =============================================================================
# Packet Functions
# =============================================================================

def decode(data: bytes) -> Packet:
    """
    Decode a whole datagram.

    Types without a registered payload layout come back header-only.
    """
    header = decode_header(data)
    try:
        known = PacketType(header.type)
    except ValueError:
        return Packet(header=header)
    return Packet(header=header, payload=decode_payload(known, bytes(data[HEADER_SIZE:])))


def create(
    type: PacketTypeLike,
    params: Optional[dict] = None,
    source: Optional[str] = None,
    target: Optional[str] = None
) -> Packet:
    """
    Create a packet without serializing it.

    Args:
        type: Packet type as PacketType, id or name
        params: Payload fields; header field names (ack_required, sequence,
                tagged, ...) and 'address' are applied to the header/destination
        source: 8 hex char client source id
        target: 12 hex char device id (omit for untargeted packets)

    Raises:
        EncodeError: if the type is unknown
    """
    resolved = packet_type(type)
    header = Header(
        type=int(resolved),
        size=HEADER_SIZE + PAYLOADS[resolved].size,
        tagged=PAYLOADS[resolved].tagged,
    )
    if source is not None:
        header.source = source
    if target is not None:
        header.target = target

    packet = Packet(header=header)
    for key, value in (params or {}).items():
        if key == 'address':
            packet.address = value
        elif key in _HEADER_FIELDS and key != 'type':
            setattr(header, key, value)
        else:
            packet.payload[key] = value
    return packet


def encode(packet: Union[Packet, PacketTypeLike], params: Optional[dict] = None) -> bytes:
    """
    Serialize a packet.

    Accepts a Packet from create()/decode(), or a packet type plus payload
    fields. The header size is always recomputed from the encoded payload.

    Raises:
        EncodeError: unknown type or invalid payload fields
    """
    if not isinstance(packet, Packet):
        packet = create(packet, params)
    resolved = packet_type(packet.header.type)
    body = encode_payload(resolved, packet.payload)
    header = replace(packet.header, size=HEADER_SIZE + len(body), type=int(resolved))
    return encode_header(header) + body
