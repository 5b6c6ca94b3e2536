#!/usr/bin/env python3
"""
LIFX TUI Monitor

A terminal user interface that shows the lights a LIFX client discovers,
with their live on/off status and a log of client events.
Uses the Textual framework for the TUI and lifx_client for device communication.

Usage:
    python3 lifx_tui.py
    python3 lifx_tui.py -l 192.168.1.20 -b 192.168.1.255
"""

import argparse
import time
from threading import Thread
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.reactive import reactive
from textual.widgets import Button, Footer, Header, ListItem, ListView, RichLog, Static

from lifx_client import Client
from lifx_devices import STATUS_ON, Device
from lifx_errors import LifxError
from lifx_packets import PacketType
from lifx_protocol import create


def device_row(device: Device) -> str:
    """One sidebar line for a device."""
    status_icon = "●" if device.status == STATUS_ON else "○"
    return f"{status_icon} {device.label or device.serial}"


def device_details(device: Device) -> str:
    return "\n".join([
        f"Label:    {device.label or '-'}",
        f"Serial:   {device.serial}",
        f"Address:  {device.address}:{device.port}",
        f"Status:   {device.status.upper()}",
        f"Last seen in discovery cycle {device.seen_on_discovery}",
    ])


class DeviceListItem(ListItem):
    """A list item representing a LIFX device."""

    def __init__(self, device: Device) -> None:
        super().__init__()
        self.device = device

    def compose(self) -> ComposeResult:
        yield Static(device_row(self.device))


# =============================================================================
# Main Panels
# =============================================================================

class DeviceSidebar(Container):
    """Sidebar showing discovered devices."""

    DEFAULT_CSS = """
    DeviceSidebar {
        width: 34;
        dock: left;
        border-right: solid $primary;
        padding: 1;
    }
    DeviceSidebar ListView {
        height: 1fr;
    }
    DeviceSidebar .sidebar-title {
        text-style: bold;
        text-align: center;
        padding: 1;
        background: $primary;
        color: $text;
    }
    DeviceSidebar Button {
        width: 100%;
        margin: 1 0;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("LIFX Devices", classes="sidebar-title")
        yield Button("Refresh labels", id="btn-refresh", variant="primary")
        yield ListView(id="device-list")
        yield Static("", id="device-count")

    def update_devices(self, devices: list[Device]):
        """Update the device list."""
        list_view = self.query_one("#device-list", ListView)
        list_view.clear()

        for device in sorted(devices, key=lambda d: d.label or d.serial):
            list_view.append(DeviceListItem(device))

        online = sum(1 for device in devices if device.status == STATUS_ON)
        self.query_one("#device-count", Static).update(f"{online}/{len(devices)} device(s) online")


class DevicePanel(Vertical):
    """Details of the selected device and the client event log."""

    DEFAULT_CSS = """
    DevicePanel {
        padding: 0 1;
    }
    DevicePanel .panel-title {
        text-style: bold;
        text-align: center;
        padding: 1;
    }
    DevicePanel #device-details {
        height: auto;
        padding: 1 2;
        border: solid $primary;
    }
    DevicePanel RichLog {
        height: 1fr;
        border: solid $secondary;
    }
    """

    current_device: reactive[Optional[Device]] = reactive(None, always_update=True)

    def compose(self) -> ComposeResult:
        yield Static("Select a device", classes="panel-title", id="device-title")
        yield Static("← Choose a light from the sidebar", id="device-details")
        yield RichLog(id="event-log", markup=False, wrap=True)

    def watch_current_device(self, device: Optional[Device]) -> None:
        """Update UI when device changes."""
        if device:
            self.query_one("#device-title", Static).update(device.label or device.serial)
            self.query_one("#device-details", Static).update(device_details(device))
        else:
            self.query_one("#device-title", Static).update("Select a device")
            self.query_one("#device-details", Static).update("← Choose a light from the sidebar")

    def log_event(self, text: str) -> None:
        self.query_one("#event-log", RichLog).write(f"{time.strftime('%H:%M:%S')}  {text}")


# =============================================================================
# Main Application
# =============================================================================

class LIFXApp(App):
    """LIFX TUI Monitor Application."""

    CSS = """
    Screen {
        layout: horizontal;
    }

    DevicePanel {
        width: 1fr;
        height: 100%;
    }

    Footer {
        background: $primary;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("e", "echo", "Echo"),
        Binding("d", "toggle_discovery", "Discovery"),
    ]

    TITLE = "LIFX Monitor"

    def __init__(self, client: Optional[Client] = None, **options):
        super().__init__()
        self.client = client or Client()
        self.options = options
        self.selected_device: Optional[Device] = None
        self.discovering = options.get('start_discovery', True)

    def compose(self) -> ComposeResult:
        yield Header()
        yield DeviceSidebar()
        yield DevicePanel()
        yield Footer()

    def on_mount(self) -> None:
        """Called when app is mounted."""
        for event in ('light-new', 'light-online', 'light-offline'):
            self.client.on(event, self._device_listener(event))
        self.client.on('malformed', lambda error, data, rinfo: self._from_client(
            self._log, f"Malformed packet from {rinfo[0]}: {error.reason}"))
        self.client.on('error', lambda error: self._from_client(self._log, f"Socket error: {error}"))

        def start():
            try:
                self.client.init(**self.options)
            except LifxError as e:
                self.call_from_thread(self._log, f"Client failed to start: {e}")
                return
            self.call_from_thread(self._log, f"Listening on port {self.client.port} (source {self.client.source})")

        Thread(target=start, daemon=True).start()

    def on_unmount(self) -> None:
        self.client.destroy()

    def _device_listener(self, event: str):
        def listener(device: Device):
            self._from_client(self._device_changed, event, device)
        return listener

    def _from_client(self, callback, *args) -> None:
        # Client events fire on the receiver and ticker threads
        try:
            self.call_from_thread(callback, *args)
        except RuntimeError:
            callback(*args)

    def _log(self, text: str) -> None:
        self.query_one(DevicePanel).log_event(text)

    def _device_changed(self, event: str, device: Device) -> None:
        self._log(f"{event}: {device}")
        self._update_device_list()

    def _update_device_list(self) -> None:
        self.query_one(DeviceSidebar).update_devices(self.client.lights(''))
        if self.selected_device:
            self.query_one(DevicePanel).current_device = self.selected_device

    def action_refresh(self) -> None:
        """Ask every known light for its label again."""
        devices = self.client.lights()
        for device in devices:
            self.client.send(create(PacketType.GET_LABEL, target=device.id))
        self.notify(f"Requested labels from {len(devices)} device(s)", timeout=1)
        self.set_timer(1.0, self._update_device_list)

    def action_echo(self) -> None:
        """Send an echo request to the selected device and log the round trip."""
        device = self.selected_device
        if device is None:
            self.notify("Select a device first", severity="warning")
            return

        started = time.monotonic()
        future = self.client.request(
            create(PacketType.ECHO_REQUEST, {'payload': b'lifx-tui'}, target=device.id),
            PacketType.ECHO_RESPONSE,
        )

        def done(result):
            error = result.exception()
            if error is not None:
                message = f"Echo to {device.address} failed: {error}"
            else:
                message = f"Echo from {device.address} in {(time.monotonic() - started) * 1000:.0f} ms"
            self._from_client(self._log, message)

        future.add_done_callback(done)

    def action_toggle_discovery(self) -> None:
        if self.discovering:
            self.client.stop_discovery()
            self._log("Discovery stopped")
        else:
            self.client.start_discovery(self.options.get('lights'))
            self._log("Discovery started")
        self.discovering = not self.discovering

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, DeviceListItem):
            self.selected_device = event.item.device
            self.query_one(DevicePanel).current_device = self.selected_device

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-refresh":
            self.action_refresh()


# =============================================================================
# Entry Point
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description='LIFX TUI Monitor - Watch your LIFX lights from the terminal'
    )
    parser.add_argument(
        '-b', '--broadcast',
        default='255.255.255.255',
        help='Broadcast address for discovery (default: 255.255.255.255)'
    )
    parser.add_argument(
        '-l', '--light',
        action='append',
        default=[],
        dest='lights',
        help='IPv4 address of a known light to probe directly (repeatable)'
    )
    args = parser.parse_args()

    app = LIFXApp(broadcast=args.broadcast, lights=args.lights)
    app.run()


if __name__ == "__main__":
    main()
