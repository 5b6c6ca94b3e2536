"""Unit tests for the device registry."""

import pytest

from lifx_devices import EVENT_NEW, EVENT_ONLINE, STATUS_OFF, STATUS_ON, Device, DeviceRegistry


@pytest.fixture
def registry():
    return DeviceRegistry()


class TestDevice:
    """Tests for the Device dataclass."""

    def test_serial_and_target_bytes(self):
        device = Device(id='d073d5006d72', address='192.168.0.50')

        assert device.serial == 'd0:73:d5:00:6d:72'
        assert device.target_bytes == bytes.fromhex('d073d5006d720000')

    def test_str_prefers_label(self):
        device = Device(id='d073d5006d72', address='192.168.0.50', label='Kitchen')

        assert str(device) == 'Kitchen (192.168.0.50) - ON'


class TestUpsert:
    """Tests for discovery updates."""

    def test_first_sighting_is_new(self, registry):
        device, event = registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 4)

        assert event == EVENT_NEW
        assert device.status == STATUS_ON
        assert device.seen_on_discovery == 4
        assert 'd073d5006d72' in registry
        assert len(registry) == 1

    def test_repeat_sighting_refreshes_address(self, registry):
        registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 1)

        device, event = registry.upsert_from_discovery('d073d5006d72', '192.168.0.51', 56700, 2)

        assert event is None
        assert device.address == '192.168.0.51'
        assert device.seen_on_discovery == 2
        assert len(registry) == 1

    def test_off_device_comes_back_online(self, registry):
        registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 0)
        registry.mark_stale(3, 3)

        device, event = registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 4)

        assert event == EVENT_ONLINE
        assert device.status == STATUS_ON


class TestMarkStale:
    """Tests for the liveness pass."""

    def test_flips_once(self, registry):
        registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 1)

        assert registry.mark_stale(3, 3) == []
        stale = registry.mark_stale(4, 3)
        assert [d.id for d in stale] == ['d073d5006d72']
        assert stale[0].status == STATUS_OFF
        assert registry.mark_stale(5, 3) == []

    def test_label_survives_going_offline(self, registry):
        registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 0)
        registry.set_label('d073d5006d72', 'Desk')
        registry.mark_stale(10, 3)

        device, _ = registry.upsert_from_discovery('d073d5006d72', '192.168.0.50', 56700, 11)

        assert device.label == 'Desk'


class TestLookup:
    """Tests for find and list."""

    @pytest.fixture
    def populated(self, registry):
        registry.upsert_from_discovery('d073d5000001', '192.168.0.10', 56700, 0)
        registry.upsert_from_discovery('d073d5000002', '192.168.0.11', 56700, 0)
        registry.set_label('d073d5000002', 'd073d5000001')
        registry.mark_stale(0, 0)
        registry.upsert_from_discovery('d073d5000001', '192.168.0.10', 56700, 1)
        return registry

    def test_find_precedence(self, populated):
        assert populated.find('192.168.0.11').id == 'd073d5000002'
        # id wins over a label with the same text
        assert populated.find('d073d5000001').id == 'd073d5000001'

    def test_find_by_label_is_case_sensitive(self, registry):
        registry.upsert_from_discovery('d073d5000001', '192.168.0.10', 56700, 0)
        registry.set_label('d073d5000001', 'Kitchen')

        assert registry.find('Kitchen').id == 'd073d5000001'
        assert registry.find('kitchen') is None

    def test_find_requires_string(self, registry):
        with pytest.raises(TypeError):
            registry.find(42)

    def test_set_label_unknown_is_noop(self, registry):
        registry.set_label('ffffffffffff', 'Ghost')

        assert len(registry) == 0

    def test_list_filters(self, populated):
        assert [d.id for d in populated.list(STATUS_ON)] == ['d073d5000001']
        assert [d.id for d in populated.list(STATUS_OFF)] == ['d073d5000002']
        assert len(populated.list()) == 2
        assert len(populated.list('')) == 2

    def test_list_rejects_unknown_status(self, registry):
        with pytest.raises(ValueError):
            registry.list('maybe')
