"""
LIFX Payload Codecs

Per-type payload layouts for the LIFX LAN protocol. Every known packet type
is a member of PacketType and owns a PayloadCodec in the PAYLOADS table; the
frame header itself is handled by lifx_protocol.

Payload fields are exchanged as plain dicts. Colors are HSBK values in human
units (hue in degrees, saturation and brightness in percent, kelvin as-is).

Protocol documentation: https://lan.developer.lifx.com/docs/packet-contents
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Union

from lifx_errors import DecodeError, EncodeError


# =============================================================================
# Message Types
# =============================================================================

class PacketType(IntEnum):
    """Packet type ids understood by this client."""
    # Discovery
    GET_SERVICE = 2
    STATE_SERVICE = 3

    # Device info
    GET_HOST_INFO = 12
    STATE_HOST_INFO = 13
    GET_HOST_FIRMWARE = 14
    STATE_HOST_FIRMWARE = 15
    GET_WIFI_INFO = 16
    STATE_WIFI_INFO = 17
    GET_WIFI_FIRMWARE = 18
    STATE_WIFI_FIRMWARE = 19

    # Device
    GET_POWER = 20
    SET_POWER = 21
    STATE_POWER = 22
    GET_LABEL = 23
    SET_LABEL = 24
    STATE_LABEL = 25
    GET_VERSION = 32
    STATE_VERSION = 33
    GET_INFO = 34
    STATE_INFO = 35
    ACKNOWLEDGEMENT = 45
    GET_LOCATION = 48
    SET_LOCATION = 49
    STATE_LOCATION = 50
    GET_GROUP = 51
    SET_GROUP = 52
    STATE_GROUP = 53
    GET_OWNER = 54
    STATE_OWNER = 56
    ECHO_REQUEST = 58
    ECHO_RESPONSE = 59

    # Light
    GET_COLOR = 101
    SET_COLOR = 102
    SET_WAVEFORM = 103
    LIGHT_STATE = 107
    GET_TEMPERATURE = 110
    STATE_TEMPERATURE = 111
    GET_LIGHT_POWER = 116
    SET_LIGHT_POWER = 117
    STATE_LIGHT_POWER = 118

    # Light (Infrared)
    GET_INFRARED = 120
    STATE_INFRARED = 121
    SET_INFRARED = 122

    # Sensor
    GET_AMBIENT_LIGHT = 401
    STATE_AMBIENT_LIGHT = 402

    # MultiZone
    SET_COLOR_ZONES = 501
    GET_COLOR_ZONES = 502
    STATE_ZONE = 503
    GET_COUNT_ZONE = 504
    STATE_COUNT_ZONE = 505
    STATE_MULTI_ZONE = 506

    @property
    def label(self) -> str:
        """Lower-case name used in logs and handler errors (e.g. 'state_service')."""
        return self.name.lower()


# =============================================================================
# Service Types
# =============================================================================

SERVICE_UDP = 1
SERVICE_RESERVED1 = 2
SERVICE_RESERVED2 = 3
SERVICE_RESERVED3 = 4
SERVICE_RESERVED4 = 5


# =============================================================================
# Enums
# =============================================================================

class Waveform(IntEnum):
    """Waveform types for SetWaveform commands."""
    SAW = 0
    SINE = 1
    HALF_SINE = 2
    TRIANGLE = 3
    PULSE = 4


class ZoneApply(IntEnum):
    """Apply modes for SetColorZones."""
    NO_APPLY = 0
    APPLY = 1
    APPLY_ONLY = 2


# =============================================================================
# Value Limits
# =============================================================================

HSBK_MAXIMUM_HUE = 360
HSBK_MAXIMUM_SATURATION = 100
HSBK_MAXIMUM_BRIGHTNESS = 100
HSBK_MINIMUM_KELVIN = 2500
HSBK_MAXIMUM_KELVIN = 9000
HSBK_DEFAULT_KELVIN = 3500

IR_MAXIMUM_BRIGHTNESS = 100

POWER_LEVELS = (0, 65535)
LABEL_SIZE = 32
ECHO_PAYLOAD_SIZE = 64
MULTIZONE_MAX_COLORS = 8


# =============================================================================
# Field Helpers
# =============================================================================

def _require(fields: dict, key: str, packet: str):
    if fields.get(key) is None:
        raise EncodeError(f"{key} value must be given for {packet} LIFX packet")
    return fields[key]


def _check_number(value, low, high, name: str, packet: str):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodeError(f"Invalid {name} given for {packet} LIFX packet, must be a number")
    if value < low or value > high:
        raise EncodeError(
            f"Invalid {name} given for {packet} LIFX packet, must be a number between {low} and {high}"
        )
    return value


def to_wire(value: float, maximum: float) -> int:
    """Scale a human value (0..maximum) onto the 16-bit wire range, rounding to nearest."""
    return int(round(value / maximum * 65535))


def from_wire(raw: int, maximum: float) -> int:
    """Scale a 16-bit wire value back to human units, rounding to nearest."""
    return int(round(raw * maximum / 65535))


def _pack_label(label, packet: str) -> bytes:
    if not isinstance(label, str):
        raise EncodeError(f"Invalid label given for {packet} LIFX packet, must be a string")
    raw = label.encode('utf-8')
    if len(raw) > LABEL_SIZE:
        raise EncodeError(f"Label for {packet} LIFX packet exceeds {LABEL_SIZE} bytes")
    return raw.ljust(LABEL_SIZE, b'\x00')


def _unpack_label(data: bytes) -> str:
    return data[0:LABEL_SIZE].rstrip(b'\x00').decode('utf-8', errors='replace')


def _pack_hex(value, size: int, name: str, packet: str) -> bytes:
    try:
        raw = bytes.fromhex(value or '')
    except (TypeError, ValueError):
        raise EncodeError(f"Invalid {name} given for {packet} LIFX packet, must be a hex string")
    if len(raw) > size:
        raise EncodeError(f"{name} for {packet} LIFX packet exceeds {size} bytes")
    return raw.ljust(size, b'\x00')


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class HSBK:
    """HSBK color in human units."""
    hue: float = 0             # 0-360 degrees
    saturation: float = 0      # 0-100 %
    brightness: float = 100    # 0-100 %
    kelvin: int = HSBK_DEFAULT_KELVIN  # 2500-9000

    SIZE = 8

    @classmethod
    def coerce(cls, value: Union['HSBK', dict, tuple, list], packet: str = 'HSBK') -> 'HSBK':
        """Accept an HSBK, a dict with hue/saturation/brightness[/kelvin] or a 3/4-tuple."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            try:
                return cls(
                    hue=value['hue'],
                    saturation=value['saturation'],
                    brightness=value['brightness'],
                    kelvin=value.get('kelvin', HSBK_DEFAULT_KELVIN),
                )
            except KeyError as e:
                raise EncodeError(f"Color for {packet} LIFX packet is missing {e.args[0]}")
        if isinstance(value, (tuple, list)) and len(value) in (3, 4):
            return cls(*value)
        raise EncodeError(f"Invalid object for color given for {packet} LIFX packet")

    @classmethod
    def from_bytes(cls, data: bytes) -> 'HSBK':
        """Unpack 8 wire bytes into human units."""
        hue, saturation, brightness, kelvin = struct.unpack('<HHHH', data[0:8])
        return cls(
            hue=from_wire(hue, HSBK_MAXIMUM_HUE),
            saturation=from_wire(saturation, HSBK_MAXIMUM_SATURATION),
            brightness=from_wire(brightness, HSBK_MAXIMUM_BRIGHTNESS),
            kelvin=kelvin,
        )

    def to_bytes(self, packet: str = 'HSBK') -> bytes:
        """Pack to wire bytes, raising EncodeError for out-of-range values."""
        _check_number(self.hue, 0, HSBK_MAXIMUM_HUE, 'color hue', packet)
        _check_number(self.saturation, 0, HSBK_MAXIMUM_SATURATION, 'color saturation', packet)
        _check_number(self.brightness, 0, HSBK_MAXIMUM_BRIGHTNESS, 'color brightness', packet)
        _check_number(self.kelvin, HSBK_MINIMUM_KELVIN, HSBK_MAXIMUM_KELVIN, 'color kelvin', packet)
        return struct.pack(
            '<HHHH',
            to_wire(self.hue, HSBK_MAXIMUM_HUE),
            to_wire(self.saturation, HSBK_MAXIMUM_SATURATION),
            to_wire(self.brightness, HSBK_MAXIMUM_BRIGHTNESS),
            int(self.kelvin),
        )


@dataclass(frozen=True)
class PayloadCodec:
    """
    Layout of one packet type's payload.

    size is the exact body length, or the minimum length when variable is set.
    Types without a body have neither decode nor encode.
    """
    size: int = 0
    decode: Optional[Callable[[bytes], dict]] = None
    encode: Optional[Callable[[dict], bytes]] = None
    tagged: bool = False
    variable: bool = False


# =============================================================================
# Payload Functions
# =============================================================================

def decode_state_service(payload: bytes) -> dict:
    """Parse StateService (packet 3) payload."""
    service, port = struct.unpack('<BI', payload[0:5])
    if service == SERVICE_UDP:
        name = 'udp'
    elif SERVICE_RESERVED1 <= service <= SERVICE_RESERVED4:
        name = 'reserved'
    else:
        name = 'unknown'
    return {'service': name, 'port': port}


def encode_state_service(fields: dict) -> bytes:
    service = fields.get('service', SERVICE_UDP)
    if service == 'udp':
        service = SERVICE_UDP
    _check_number(service, 0, 255, 'service', 'stateService')
    port = _check_number(_require(fields, 'port', 'stateService'), 0, 0xFFFFFFFF, 'port', 'stateService')
    return struct.pack('<BI', service, port)


def _decode_link_info(payload: bytes) -> dict:
    signal, tx, rx, reserved = struct.unpack('<fIIh', payload[0:14])
    return {'signal': signal, 'tx': tx, 'rx': rx, 'reserved': reserved}


def decode_state_host_info(payload: bytes) -> dict:
    """Parse StateHostInfo (packet 13) payload."""
    info = _decode_link_info(payload)
    info['mcu_temperature'] = info.pop('reserved')
    return info


def decode_state_wifi_info(payload: bytes) -> dict:
    """Parse StateWifiInfo (packet 17) payload."""
    info = _decode_link_info(payload)
    del info['reserved']
    return info


def encode_link_info(fields: dict) -> bytes:
    return struct.pack(
        '<fIIh',
        float(fields.get('signal', 0.0)),
        fields.get('tx', 0),
        fields.get('rx', 0),
        fields.get('mcu_temperature', 0),
    )


def decode_state_firmware(payload: bytes) -> dict:
    """Parse StateHostFirmware (15) / StateWifiFirmware (19) payload."""
    build, _reserved, version_minor, version_major = struct.unpack('<QQHH', payload[0:20])
    return {
        'build': build,
        'version_major': version_major,
        'version_minor': version_minor
    }


def encode_state_firmware(fields: dict) -> bytes:
    return struct.pack(
        '<QQHH',
        fields.get('build', 0),
        0,
        fields.get('version_minor', 0),
        fields.get('version_major', 0),
    )


def decode_power_level(payload: bytes) -> dict:
    """Parse StatePower (22) / StateLightPower (118) payload."""
    return {'level': struct.unpack('<H', payload[0:2])[0]}


def encode_power_level(fields: dict) -> bytes:
    level = _require(fields, 'level', 'setPower')
    if level not in POWER_LEVELS:
        raise EncodeError('Invalid level given for setPower LIFX packet, only 0 and 65535 are supported')
    return struct.pack('<H', level)


def decode_set_light_power(payload: bytes) -> dict:
    """Parse SetLightPower (packet 117) payload."""
    level, duration = struct.unpack('<HI', payload[0:6])
    return {'level': level, 'duration': duration}


def encode_set_light_power(fields: dict) -> bytes:
    level = _require(fields, 'level', 'setPower')
    if level not in POWER_LEVELS:
        raise EncodeError('Invalid level given for setPower LIFX packet, only 0 and 65535 are supported')
    duration = _check_number(fields.get('duration', 0), 0, 0xFFFFFFFF, 'duration', 'setPower')
    return struct.pack('<HI', level, int(duration))


def decode_label(payload: bytes) -> dict:
    """Parse SetLabel (24) / StateLabel (25) payload."""
    return {'label': _unpack_label(payload)}


def encode_label(fields: dict) -> bytes:
    return _pack_label(_require(fields, 'label', 'setLabel'), 'setLabel')


def decode_state_version(payload: bytes) -> dict:
    """Parse StateVersion (packet 33) payload."""
    vendor, product, version = struct.unpack('<III', payload[0:12])
    return {'vendor': vendor, 'product': product, 'version': version}


def encode_state_version(fields: dict) -> bytes:
    return struct.pack('<III', fields.get('vendor', 0), fields.get('product', 0), fields.get('version', 0))


def decode_state_info(payload: bytes) -> dict:
    """Parse StateInfo (packet 35) payload, all values in nanoseconds."""
    time_ns, uptime_ns, downtime_ns = struct.unpack('<QQQ', payload[0:24])
    return {'time': time_ns, 'uptime': uptime_ns, 'downtime': downtime_ns}


def encode_state_info(fields: dict) -> bytes:
    return struct.pack('<QQQ', fields.get('time', 0), fields.get('uptime', 0), fields.get('downtime', 0))


def _collection_codec(key: str) -> tuple:
    """Decoder/encoder pair for location, group and owner payloads (id, label, updated_at)."""

    def decode(payload: bytes) -> dict:
        return {
            key: payload[0:16].hex(),
            'label': _unpack_label(payload[16:48]),
            'updated_at': struct.unpack('<Q', payload[48:56])[0]
        }

    def encode(fields: dict) -> bytes:
        packet = f'set{key.capitalize()}'
        return (
            _pack_hex(fields.get(key, ''), 16, key, packet)
            + _pack_label(fields.get('label', ''), packet)
            + struct.pack('<Q', fields.get('updated_at', 0))
        )

    return decode, encode


def decode_echo(payload: bytes) -> dict:
    """Parse EchoRequest (58) / EchoResponse (59) payload."""
    return {'payload': bytes(payload[0:ECHO_PAYLOAD_SIZE])}


def encode_echo(fields: dict) -> bytes:
    payload = fields.get('payload', b'')
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    if len(payload) > ECHO_PAYLOAD_SIZE:
        raise EncodeError(f"Echo payload exceeds {ECHO_PAYLOAD_SIZE} bytes")
    return bytes(payload).ljust(ECHO_PAYLOAD_SIZE, b'\x00')


def decode_set_color(payload: bytes) -> dict:
    """Parse SetColor (packet 102) payload."""
    color = HSBK.from_bytes(payload[1:9])
    duration = struct.unpack('<I', payload[9:13])[0]
    return {'color': color, 'duration': duration}


def encode_set_color(fields: dict) -> bytes:
    color = HSBK.coerce(_require(fields, 'color', 'setColor'), 'setColor')
    duration = _check_number(fields.get('duration', 0), 0, 0xFFFFFFFF, 'duration', 'setColor')
    # First byte is reserved
    return struct.pack('<B', 0) + color.to_bytes('setColor') + struct.pack('<I', int(duration))


def decode_set_waveform(payload: bytes) -> dict:
    """Parse SetWaveform (packet 103) payload."""
    transient = bool(payload[1])
    color = HSBK.from_bytes(payload[2:10])
    period, cycles, skew_ratio, waveform = struct.unpack('<IfhB', payload[10:21])
    return {
        'transient': transient,
        'color': color,
        'period': period,
        'cycles': cycles,
        'skew_ratio': skew_ratio,
        'waveform': waveform
    }


def encode_set_waveform(fields: dict) -> bytes:
    packet = 'setWaveform'
    transient = _require(fields, 'transient', packet)
    if not isinstance(transient, bool):
        raise EncodeError('Invalid transient value given for setWaveform LIFX packet, must be boolean')
    color = HSBK.coerce(_require(fields, 'color', packet), packet)
    period = _check_number(_require(fields, 'period', packet), 0, 0xFFFFFFFF, 'period', packet)
    cycles = _check_number(_require(fields, 'cycles', packet), 0, float('inf'), 'cycles', packet)
    skew_ratio = _check_number(_require(fields, 'skew_ratio', packet), -32768, 32767, 'skew_ratio', packet)
    waveform = _check_number(_require(fields, 'waveform', packet), 0, max(Waveform), 'waveform', packet)
    return (
        struct.pack('<BB', 0, int(transient))
        + color.to_bytes(packet)
        + struct.pack('<IfhB', int(period), float(cycles), int(skew_ratio), int(waveform))
    )


def decode_light_state(payload: bytes) -> dict:
    """Parse LightState (packet 107) payload."""
    color = HSBK.from_bytes(payload[0:8])
    # Skip reserved (2 bytes)
    power = struct.unpack('<H', payload[10:12])[0]
    label = _unpack_label(payload[12:44])
    return {'color': color, 'power': power, 'label': label}


def encode_light_state(fields: dict) -> bytes:
    color = HSBK.coerce(fields.get('color', HSBK()), 'lightState')
    return (
        color.to_bytes('lightState')
        + struct.pack('<hH', 0, fields.get('power', 0))
        + _pack_label(fields.get('label', ''), 'lightState')
        + struct.pack('<Q', 0)
    )


def decode_state_temperature(payload: bytes) -> dict:
    """Parse StateTemperature (packet 111) payload."""
    return {'temperature': struct.unpack('<H', payload[0:2])[0]}


def encode_state_temperature(fields: dict) -> bytes:
    temperature = _check_number(
        _require(fields, 'temperature', 'stateTemperature'), 0, 0xFFFF, 'temperature', 'stateTemperature'
    )
    return struct.pack('<H', int(temperature))


def decode_infrared(payload: bytes) -> dict:
    """Parse StateInfrared (121) / SetInfrared (122) payload."""
    raw = struct.unpack('<H', payload[0:2])[0]
    return {'brightness': from_wire(raw, IR_MAXIMUM_BRIGHTNESS)}


def encode_infrared(fields: dict) -> bytes:
    brightness = _check_number(
        _require(fields, 'brightness', 'setInfrared'), 0, IR_MAXIMUM_BRIGHTNESS, 'brightness', 'setInfrared'
    )
    return struct.pack('<H', to_wire(brightness, IR_MAXIMUM_BRIGHTNESS))


def decode_state_ambient_light(payload: bytes) -> dict:
    """Parse StateAmbientLight (packet 402) payload."""
    return {'lux': struct.unpack('<f', payload[0:4])[0]}


def encode_state_ambient_light(fields: dict) -> bytes:
    return struct.pack('<f', float(fields.get('lux', 0.0)))


def decode_set_color_zones(payload: bytes) -> dict:
    """Parse SetColorZones (packet 501) payload."""
    start_index, end_index = struct.unpack('<BB', payload[0:2])
    color = HSBK.from_bytes(payload[2:10])
    duration, apply = struct.unpack('<IB', payload[10:15])
    return {
        'start_index': start_index,
        'end_index': end_index,
        'color': color,
        'duration': duration,
        'apply': apply
    }


def encode_set_color_zones(fields: dict) -> bytes:
    packet = 'setColorZones'
    start_index = _check_number(_require(fields, 'start_index', packet), 0, 255, 'startIndex', packet)
    end_index = _check_number(_require(fields, 'end_index', packet), 0, 255, 'endIndex', packet)
    color = HSBK.coerce(_require(fields, 'color', packet), packet)
    duration = _check_number(fields.get('duration', 0), 0, 0xFFFFFFFF, 'duration', packet)
    apply = _check_number(_require(fields, 'apply', packet), 0, max(ZoneApply), 'apply', packet)
    return (
        struct.pack('<BB', start_index, end_index)
        + color.to_bytes(packet)
        + struct.pack('<IB', int(duration), int(apply))
    )


def decode_get_color_zones(payload: bytes) -> dict:
    """Parse GetColorZones (packet 502) payload."""
    start_index, end_index = struct.unpack('<BB', payload[0:2])
    return {'start_index': start_index, 'end_index': end_index}


def encode_get_color_zones(fields: dict) -> bytes:
    packet = 'getColorZones'
    start_index = _check_number(fields.get('start_index', 0), 0, 255, 'startIndex', packet)
    end_index = _check_number(fields.get('end_index', 255), 0, 255, 'endIndex', packet)
    return struct.pack('<BB', start_index, end_index)


def decode_state_zone(payload: bytes) -> dict:
    """Parse StateZone (packet 503) payload - single zone response."""
    count, index = struct.unpack('<BB', payload[0:2])
    return {'count': count, 'index': index, 'color': HSBK.from_bytes(payload[2:10])}


def encode_state_zone(fields: dict) -> bytes:
    color = HSBK.coerce(_require(fields, 'color', 'stateZone'), 'stateZone')
    return struct.pack('<BB', fields.get('count', 0), fields.get('index', 0)) + color.to_bytes('stateZone')


def decode_get_count_zone(payload: bytes) -> dict:
    """Parse GetCountZone (packet 504) payload."""
    return {'scan': bool(payload[0])}


def encode_get_count_zone(fields: dict) -> bytes:
    scan = _require(fields, 'scan', 'getCountZone')
    if not isinstance(scan, bool):
        raise EncodeError('Invalid scan value given for getCountZone LIFX packet, must be boolean')
    return struct.pack('<B', int(scan))


def decode_state_count_zone(payload: bytes) -> dict:
    """Parse StateCountZone (packet 505) payload."""
    time_ns, count = struct.unpack('<QB', payload[0:9])
    return {'time': time_ns, 'count': count}


def encode_state_count_zone(fields: dict) -> bytes:
    packet = 'stateCountZone'
    time_ns = _check_number(fields.get('time', 0), 0, 0xFFFFFFFFFFFFFFFF, 'time', packet)
    count = _check_number(_require(fields, 'count', packet), 0, 255, 'count', packet)
    return struct.pack('<QB', int(time_ns), int(count))


def decode_state_multi_zone(payload: bytes) -> dict:
    """Parse StateMultiZone (packet 506) payload - up to 8 zones per packet."""
    count, index = struct.unpack('<BB', payload[0:2])
    colors = []
    offset = 2
    while len(payload) - offset >= HSBK.SIZE and len(colors) < MULTIZONE_MAX_COLORS:
        colors.append(HSBK.from_bytes(payload[offset:offset + HSBK.SIZE]))
        offset += HSBK.SIZE
    return {'count': count, 'index': index, 'color': colors}


def encode_state_multi_zone(fields: dict) -> bytes:
    packet = 'stateMultiZone'
    count = _check_number(_require(fields, 'count', packet), 0, 255, 'count', packet)
    index = _check_number(_require(fields, 'index', packet), 0, 255, 'index', packet)
    colors = _require(fields, 'color', packet)
    if not isinstance(colors, (list, tuple)) or not 1 <= len(colors) <= MULTIZONE_MAX_COLORS:
        raise EncodeError(
            f"Invalid color value given for {packet} LIFX packet, must be a list of 1 to {MULTIZONE_MAX_COLORS} colors"
        )
    body = struct.pack('<BB', count, index)
    for color in colors:
        body += HSBK.coerce(color, packet).to_bytes(packet)
    return body


_decode_location, _encode_location = _collection_codec('location')
_decode_group, _encode_group = _collection_codec('group')
_decode_owner, _encode_owner = _collection_codec('owner')


# =============================================================================
# Payload Registry
# =============================================================================

_EMPTY = PayloadCodec()

PAYLOADS: dict[PacketType, PayloadCodec] = {
    PacketType.GET_SERVICE: PayloadCodec(tagged=True),
    PacketType.STATE_SERVICE: PayloadCodec(5, decode_state_service, encode_state_service),
    PacketType.GET_HOST_INFO: _EMPTY,
    PacketType.STATE_HOST_INFO: PayloadCodec(14, decode_state_host_info, encode_link_info),
    PacketType.GET_HOST_FIRMWARE: _EMPTY,
    PacketType.STATE_HOST_FIRMWARE: PayloadCodec(20, decode_state_firmware, encode_state_firmware),
    PacketType.GET_WIFI_INFO: _EMPTY,
    PacketType.STATE_WIFI_INFO: PayloadCodec(14, decode_state_wifi_info, encode_link_info),
    PacketType.GET_WIFI_FIRMWARE: _EMPTY,
    PacketType.STATE_WIFI_FIRMWARE: PayloadCodec(20, decode_state_firmware, encode_state_firmware),
    PacketType.GET_POWER: _EMPTY,
    PacketType.SET_POWER: PayloadCodec(2, decode_power_level, encode_power_level),
    PacketType.STATE_POWER: PayloadCodec(2, decode_power_level, encode_power_level),
    PacketType.GET_LABEL: _EMPTY,
    PacketType.SET_LABEL: PayloadCodec(LABEL_SIZE, decode_label, encode_label),
    PacketType.STATE_LABEL: PayloadCodec(LABEL_SIZE, decode_label, encode_label),
    PacketType.GET_VERSION: _EMPTY,
    PacketType.STATE_VERSION: PayloadCodec(12, decode_state_version, encode_state_version),
    PacketType.GET_INFO: _EMPTY,
    PacketType.STATE_INFO: PayloadCodec(24, decode_state_info, encode_state_info),
    PacketType.ACKNOWLEDGEMENT: _EMPTY,
    PacketType.GET_LOCATION: _EMPTY,
    PacketType.SET_LOCATION: PayloadCodec(56, _decode_location, _encode_location),
    PacketType.STATE_LOCATION: PayloadCodec(56, _decode_location, _encode_location),
    PacketType.GET_GROUP: _EMPTY,
    PacketType.SET_GROUP: PayloadCodec(56, _decode_group, _encode_group),
    PacketType.STATE_GROUP: PayloadCodec(56, _decode_group, _encode_group),
    PacketType.GET_OWNER: _EMPTY,
    PacketType.STATE_OWNER: PayloadCodec(56, _decode_owner, _encode_owner),
    PacketType.ECHO_REQUEST: PayloadCodec(ECHO_PAYLOAD_SIZE, decode_echo, encode_echo),
    PacketType.ECHO_RESPONSE: PayloadCodec(ECHO_PAYLOAD_SIZE, decode_echo, encode_echo),
    PacketType.GET_COLOR: _EMPTY,
    PacketType.SET_COLOR: PayloadCodec(13, decode_set_color, encode_set_color),
    PacketType.SET_WAVEFORM: PayloadCodec(21, decode_set_waveform, encode_set_waveform),
    PacketType.LIGHT_STATE: PayloadCodec(52, decode_light_state, encode_light_state),
    PacketType.GET_TEMPERATURE: _EMPTY,
    PacketType.STATE_TEMPERATURE: PayloadCodec(2, decode_state_temperature, encode_state_temperature),
    PacketType.GET_LIGHT_POWER: _EMPTY,
    PacketType.SET_LIGHT_POWER: PayloadCodec(6, decode_set_light_power, encode_set_light_power),
    PacketType.STATE_LIGHT_POWER: PayloadCodec(2, decode_power_level, encode_power_level),
    PacketType.GET_INFRARED: _EMPTY,
    PacketType.STATE_INFRARED: PayloadCodec(2, decode_infrared, encode_infrared),
    PacketType.SET_INFRARED: PayloadCodec(2, decode_infrared, encode_infrared),
    PacketType.GET_AMBIENT_LIGHT: _EMPTY,
    PacketType.STATE_AMBIENT_LIGHT: PayloadCodec(4, decode_state_ambient_light, encode_state_ambient_light),
    PacketType.SET_COLOR_ZONES: PayloadCodec(15, decode_set_color_zones, encode_set_color_zones),
    PacketType.GET_COLOR_ZONES: PayloadCodec(2, decode_get_color_zones, encode_get_color_zones),
    PacketType.STATE_ZONE: PayloadCodec(10, decode_state_zone, encode_state_zone),
    PacketType.GET_COUNT_ZONE: PayloadCodec(1, decode_get_count_zone, encode_get_count_zone),
    PacketType.STATE_COUNT_ZONE: PayloadCodec(9, decode_state_count_zone, encode_state_count_zone),
    PacketType.STATE_MULTI_ZONE: PayloadCodec(10, decode_state_multi_zone, encode_state_multi_zone, variable=True),
}


def decode_payload(packet_type: PacketType, payload: bytes) -> dict:
    """
    Decode a payload body with the codec registered for packet_type.

    Raises DecodeError if the body length does not fit the layout.
    """
    codec = PAYLOADS[packet_type]
    if codec.decode is None:
        return {}
    if codec.variable:
        if len(payload) < codec.size:
            raise DecodeError(f"invalid_length:{packet_type.label}", payload)
    elif len(payload) != codec.size:
        raise DecodeError(f"invalid_length:{packet_type.label}", payload)
    try:
        return codec.decode(payload)
    except struct.error:
        raise DecodeError(f"malformed_payload:{packet_type.label}", payload)


def encode_payload(packet_type: PacketType, fields: dict) -> bytes:
    """Encode payload fields for packet_type; EncodeError on bad or missing values."""
    codec = PAYLOADS[packet_type]
    if codec.encode is None:
        return b''
    try:
        return codec.encode(fields)
    except struct.error as e:
        raise EncodeError(f"Invalid value for {packet_type.label} LIFX packet: {e}")
