"""Unit tests for the packet codec (lifx_protocol and lifx_packets)."""

import struct

import pytest

from lifx_errors import DecodeError, EncodeError
from lifx_packets import HSBK, PacketType, decode_payload, encode_payload, from_wire, to_wire
from lifx_protocol import (
    HEADER_SIZE,
    Header,
    Packet,
    create,
    decode,
    decode_header,
    encode,
    encode_header,
    packet_type,
)


class TestHeader:
    """Tests for the 36 byte frame header."""

    def test_header_round_trip(self):
        header = Header(
            size=HEADER_SIZE,
            tagged=True,
            source='3e805108',
            target='d073d5006d72',
            site=b'LIFXV2',
            ack_required=True,
            res_required=False,
            sequence=200,
            timestamp=123456789,
            type=int(PacketType.GET_SERVICE),
        )

        assert decode_header(encode_header(header)) == header

    def test_get_service_wire_bytes(self):
        data = encode(create('getService', source='3e805108'))

        expected = (
            '2400' '0034' '3e805108'
            + '00' * 8
            + '00' * 6
            + '00' '00'
            + '00' * 8
            + '0200' '0000'
        )
        assert data.hex() == expected

    def test_flag_bits(self):
        data = encode(create(PacketType.GET_LABEL, {'ack_required': True, 'res_required': True},
                             source='3e805108', target='d073d5006d72'))

        frame_description = struct.unpack('<H', data[2:4])[0]
        assert frame_description & 0x0FFF == 1024
        assert frame_description & 0x1000
        assert not frame_description & 0x2000
        assert data[22] == 0x03

    def test_decode_too_short(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_header(b'\x24\x00' + b'\x00' * 10)

        assert exc_info.value.reason == 'too_short'

    def test_decode_size_mismatch(self):
        data = encode(create('getService', source='3e805108'))

        with pytest.raises(DecodeError) as exc_info:
            decode(data + b'\x00')

        assert exc_info.value.reason == 'size_mismatch'
        assert len(exc_info.value.data_preview) == 16

    def test_sequence_out_of_range(self):
        with pytest.raises(EncodeError):
            encode_header(Header(sequence=256))

    @pytest.mark.parametrize('fields', [
        {'timestamp': -1},
        {'timestamp': 2 ** 64},
        {'size': 65536},
        {'type': 70000},
        {'protocol': 5000},
        {'origin': 5},
        {'sequence': -1},
        {'timestamp': 1.5},
    ])
    def test_header_field_out_of_range(self, fields):
        with pytest.raises(EncodeError):
            encode_header(Header(**fields))

    def test_header_timestamp_from_create(self):
        with pytest.raises(EncodeError):
            encode(create('getService', {'timestamp': -1}))

    def test_header_field_limits_round_trip(self):
        header = Header(protocol=4095, origin=3, timestamp=2 ** 64 - 1, type=65535)

        assert decode_header(encode_header(header)) == header


class TestPacket:
    """Tests for create/encode/decode of whole packets."""

    def test_unknown_type_decodes_header_only(self):
        header = Header(size=HEADER_SIZE + 4, source='3e805108', type=9999)
        data = encode_header(header) + b'\x01\x02\x03\x04'

        packet = decode(data)

        assert packet.payload == {}
        assert packet.type == 9999
        assert packet.name == 'unknown_9999'

    def test_create_splits_header_and_payload(self):
        packet = create(
            'setPower',
            {'level': 65535, 'ack_required': True, 'address': '192.168.0.50'},
            source='3e805108',
            target='d073d5006d72',
        )

        assert packet.header.ack_required is True
        assert packet.address == '192.168.0.50'
        assert packet.payload == {'level': 65535}
        assert packet.target == 'd073d5006d72'

    def test_created_packet_can_be_mutated_before_encode(self):
        packet = create(PacketType.GET_LABEL, source='3e805108')
        packet.target = 'd073d5006d72'
        packet.sequence = 42

        decoded = decode(encode(packet))

        assert decoded.target == 'd073d5006d72'
        assert decoded.sequence == 42
        assert decoded.type is PacketType.GET_LABEL

    def test_state_service_decode(self):
        data = encode(create('stateService', {'service': 'udp', 'port': 56700},
                             source='3e805108', target='d073d5006d72'))

        packet = decode(data)

        assert isinstance(packet, Packet)
        assert packet['service'] == 'udp'
        assert packet['port'] == 56700
        assert packet.source == '3e805108'

    def test_state_service_reserved_service(self):
        assert decode_payload(PacketType.STATE_SERVICE, struct.pack('<BI', 3, 56700))['service'] == 'reserved'
        assert decode_payload(PacketType.STATE_SERVICE, struct.pack('<BI', 9, 56700))['service'] == 'unknown'

    def test_payload_length_must_match(self):
        header = Header(size=HEADER_SIZE + 3, type=int(PacketType.STATE_SERVICE))

        with pytest.raises(DecodeError) as exc_info:
            decode(encode_header(header) + b'\x01\x02\x03')

        assert exc_info.value.reason == 'invalid_length:state_service'

    def test_state_multi_zone_is_variable(self):
        colors = [HSBK(0, 100, 100), HSBK(120, 100, 100), HSBK(240, 100, 100)]
        data = encode(create('stateMultiZone', {'count': 16, 'index': 8, 'color': colors}))

        packet = decode(data)

        assert len(data) == HEADER_SIZE + 2 + 3 * HSBK.SIZE
        assert packet['count'] == 16
        assert packet['index'] == 8
        assert [c.hue for c in packet['color']] == [0, 120, 240]

    def test_light_state_label(self):
        data = encode(create('lightState', {'color': HSBK(), 'power': 65535, 'label': 'Kitchen'}))

        packet = decode(data)

        assert packet['label'] == 'Kitchen'
        assert packet['power'] == 65535


class TestPacketType:
    """Tests for packet type resolution."""

    @pytest.mark.parametrize('value', ['stateService', 'state_service', 'STATE_SERVICE', 3, PacketType.STATE_SERVICE])
    def test_resolves_names_and_ids(self, value):
        assert packet_type(value) is PacketType.STATE_SERVICE

    @pytest.mark.parametrize('value', ['bogus', 9999, True, None])
    def test_unknown_type_raises(self, value):
        with pytest.raises(EncodeError):
            packet_type(value)

    def test_encode_unknown_type(self):
        with pytest.raises(EncodeError):
            encode('notAPacket', {})

    @pytest.mark.parametrize('name, expected', [
        ('getLight', PacketType.GET_COLOR),
        ('stateLight', PacketType.LIGHT_STATE),
        ('getPower', PacketType.GET_LIGHT_POWER),
        ('setPower', PacketType.SET_LIGHT_POWER),
        ('statePower', PacketType.STATE_LIGHT_POWER),
        ('set_power', PacketType.SET_LIGHT_POWER),
        ('getTemperature', PacketType.GET_TEMPERATURE),
        ('stateTemperature', PacketType.STATE_TEMPERATURE),
        ('getCountZone', PacketType.GET_COUNT_ZONE),
        ('stateCountZone', PacketType.STATE_COUNT_ZONE),
    ])
    def test_light_level_names(self, name, expected):
        assert packet_type(name) is expected

    def test_device_power_types_by_id_only(self):
        assert packet_type(21) is PacketType.SET_POWER
        assert packet_type(PacketType.STATE_POWER) is PacketType.STATE_POWER

    def test_set_power_carries_duration(self):
        data = encode(create('setPower', {'level': 65535, 'duration': 1000}))

        packet = decode(data)

        assert struct.unpack('<H', data[32:34])[0] == 117
        assert len(data) == HEADER_SIZE + 6
        assert packet.payload == {'level': 65535, 'duration': 1000}


class TestHSBK:
    """Tests for HSBK conversion between human units and the wire."""

    def test_scaling_rounds_to_nearest(self):
        assert to_wire(120, 360) == 21845
        assert to_wire(100, 100) == 65535
        assert from_wire(21845, 360) == 120
        assert from_wire(32768, 100) == 50

    def test_set_color_values(self):
        data = encode(create('setColor', {'color': {'hue': 120, 'saturation': 50, 'brightness': 100,
                                                    'kelvin': 3500}, 'duration': 1000}))
        body = data[HEADER_SIZE:]

        hue, saturation, brightness, kelvin = struct.unpack('<HHHH', body[1:9])
        assert (hue, brightness, kelvin) == (21845, 65535, 3500)
        assert abs(saturation - 32768) <= 1
        assert struct.unpack('<I', body[9:13])[0] == 1000

        color = decode(data)['color']
        assert (color.hue, color.saturation, color.brightness) == (120, 50, 100)

    @pytest.mark.parametrize('color', [
        {'hue': 361, 'saturation': 0, 'brightness': 0},
        {'hue': 0, 'saturation': 101, 'brightness': 0},
        {'hue': 0, 'saturation': 0, 'brightness': -1},
        {'hue': 0, 'saturation': 0, 'brightness': 0, 'kelvin': 1000},
        {'hue': 0, 'saturation': 0},
    ])
    def test_out_of_range_color(self, color):
        with pytest.raises(EncodeError):
            encode('setColor', {'color': color})


class TestPayloadValidation:
    """Tests for payload field checks."""

    def test_set_power_levels(self):
        assert encode_payload(PacketType.SET_POWER, {'level': 0}) == b'\x00\x00'
        with pytest.raises(EncodeError):
            encode_payload(PacketType.SET_POWER, {'level': 5})

    def test_label_too_long(self):
        with pytest.raises(EncodeError):
            encode_payload(PacketType.SET_LABEL, {'label': 'x' * 33})

    def test_label_is_nul_padded(self):
        body = encode_payload(PacketType.SET_LABEL, {'label': 'Desk'})

        assert len(body) == 32
        assert decode_payload(PacketType.SET_LABEL, body) == {'label': 'Desk'}

    def test_waveform_transient_must_be_bool(self):
        with pytest.raises(EncodeError):
            encode_payload(PacketType.SET_WAVEFORM, {
                'transient': 1,
                'color': HSBK(),
                'period': 1000,
                'cycles': 1.0,
                'skew_ratio': 0,
                'waveform': 0,
            })

    def test_state_temperature(self):
        body = encode_payload(PacketType.STATE_TEMPERATURE, {'temperature': 4200})

        assert body == struct.pack('<H', 4200)
        assert decode_payload(PacketType.STATE_TEMPERATURE, body) == {'temperature': 4200}
        with pytest.raises(EncodeError):
            encode_payload(PacketType.STATE_TEMPERATURE, {'temperature': 70000})

    def test_get_count_zone_scan_must_be_bool(self):
        assert encode_payload(PacketType.GET_COUNT_ZONE, {'scan': True}) == b'\x01'
        with pytest.raises(EncodeError):
            encode_payload(PacketType.GET_COUNT_ZONE, {'scan': 1})

    def test_state_count_zone(self):
        data = encode(create('stateCountZone', {'time': 1500000000000000000, 'count': 16}))

        packet = decode(data)

        assert len(data) == HEADER_SIZE + 9
        assert packet['time'] == 1500000000000000000
        assert packet['count'] == 16

    def test_state_count_zone_length(self):
        with pytest.raises(DecodeError):
            decode_payload(PacketType.STATE_COUNT_ZONE, b'\x00' * 8)
