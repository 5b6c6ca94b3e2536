"""
LIFX Device Registry

Keeps every device seen by discovery, keyed by its target id, together with
its last known address, label and liveness. Devices are demoted to 'off'
when discovery stops hearing from them but are never forgotten, so a device
that comes back keeps its cached label.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from lifx_protocol import LIFX_PORT


STATUS_ON = 'on'
STATUS_OFF = 'off'

EVENT_NEW = 'new'
EVENT_ONLINE = 'online'


@dataclass
class Device:
    """Represents a discovered LIFX device."""
    id: str
    address: str
    port: int = LIFX_PORT
    label: Optional[str] = None
    status: str = STATUS_ON
    seen_on_discovery: int = 0

    def __str__(self) -> str:
        if self.label:
            return f"{self.label} ({self.address}) - {self.status.upper()}"
        return f"Device: {self.id} @ {self.address}:{self.port} ({self.status.upper()})"

    @property
    def serial(self) -> str:
        """Target id in colon notation (d0:73:d5:00:6d:72)."""
        return ':'.join(self.id[i:i + 2] for i in range(0, len(self.id), 2))

    @property
    def target_bytes(self) -> bytes:
        """Target id as the 8 bytes used on the wire."""
        return bytes.fromhex(self.id) + b'\x00\x00'


class DeviceRegistry:
    """Devices known to one client, keyed by target id. Not thread-safe on its own."""

    def __init__(self):
        self._devices: dict[str, Device] = {}

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices.values()))

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._devices

    def get(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def upsert_from_discovery(self, device_id: str, address: str, port: int,
                              epoch: int) -> tuple[Device, Optional[str]]:
        """
        Record a discovery response.

        Returns the device and EVENT_NEW for a first sighting, EVENT_ONLINE
        when an 'off' device answered again, or None otherwise.
        """
        device = self._devices.get(device_id)
        if device is None:
            device = Device(id=device_id, address=address, port=port, seen_on_discovery=epoch)
            self._devices[device_id] = device
            return device, EVENT_NEW

        event = None
        if device.status == STATUS_OFF:
            device.status = STATUS_ON
            event = EVENT_ONLINE
        # Addresses can change (DHCP)
        device.address = address
        device.port = port
        device.seen_on_discovery = epoch
        return device, event

    def mark_stale(self, epoch: int, tolerance: int) -> list[Device]:
        """Flip devices silent for at least tolerance epochs to 'off' and return them."""
        stale = []
        for device in self._devices.values():
            if device.status == STATUS_OFF:
                continue
            if epoch - device.seen_on_discovery >= tolerance:
                device.status = STATUS_OFF
                stale.append(device)
        return stale

    def set_label(self, device_id: str, label: str) -> None:
        device = self._devices.get(device_id)
        if device is not None:
            device.label = label

    def find(self, identifier: str) -> Optional[Device]:
        """
        Find a device by address, id or label, in that order.

        Matching is exact and case-sensitive.
        """
        if not isinstance(identifier, str):
            raise TypeError('LIFX device identifier must be a string')

        for attribute in ('address', 'id', 'label'):
            for device in self._devices.values():
                if getattr(device, attribute) == identifier:
                    return device
        return None

    def list(self, status: Optional[str] = None) -> list[Device]:
        """All devices, or only those with the given status ('on' or 'off')."""
        if not status:
            return list(self._devices.values())
        if status not in (STATUS_ON, STATUS_OFF):
            raise ValueError("LIFX device status filter must be 'on', 'off' or empty")
        return [device for device in self._devices.values() if device.status == status]
