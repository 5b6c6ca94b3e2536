#!/usr/bin/env python3
"""
LIFX Device Scanner

Runs a LIFX client for a fixed time and prints every device discovery found.
The client broadcasts GetService (packet 2), registers each StateService
(packet 3) responder and asks it for its label.

Protocol documentation: https://lan.developer.lifx.com/docs/packet-contents
"""

import argparse
import ipaddress
import json
import sys
import time
from typing import Optional

from lifx_client import Client
from lifx_devices import Device
from lifx_errors import LifxError
from lifx_log import setup_logging
from lifx_protocol import LIFX_PORT


def broadcast_address(subnet: str) -> str:
    """Calculate broadcast address for subnet."""
    return str(ipaddress.ip_network(subnet, strict=False).broadcast_address)


def scan_network(
    broadcast: str = '255.255.255.255',
    timeout: float = 2.0,
    lights: Optional[list[str]] = None,
    port: int = LIFX_PORT,
    verbose: bool = False,
    client: Optional[Client] = None
) -> list[Device]:
    """
    Scan the network for LIFX devices.

    Args:
        broadcast: Broadcast address for discovery packets
        timeout: Time to listen for responses (seconds)
        lights: Known light addresses to probe directly
        port: LIFX UDP port (default 56700)
        verbose: Print devices as they are found
        client: Client to use (a new one by default)

    Returns:
        List of discovered devices
    """
    client = client or Client()
    if verbose:
        client.on('light-new', lambda device: print(f"  Found: {device}"))
        client.on('light-offline', lambda device: print(f"  Offline: {device}"))
        client.on('malformed', lambda error, data, rinfo: print(f"  Received invalid packet from {rinfo[0]}"))

    client.init(broadcast=broadcast, lights=list(lights or []), send_port=port)
    try:
        if verbose:
            print(f"Broadcast address: {broadcast}")
            print(f"Source ID: {client.source}")
            print(f"Listening on port: {client.port}")
            print()
        time.sleep(timeout)
        return client.lights('')
    finally:
        client.destroy()


def device_summary(device: Device) -> dict:
    return {
        'id': device.id,
        'serial': device.serial,
        'label': device.label,
        'address': device.address,
        'port': device.port,
        'status': device.status,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Scan local network for LIFX devices using the LAN protocol.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Broadcast to 255.255.255.255
  %(prog)s -s 192.168.1.0/24        # Broadcast to a specific subnet
  %(prog)s -l 192.168.1.20 -t 5     # Also probe a known light, 5 second timeout
  %(prog)s -v                       # Verbose output
        """
    )

    parser.add_argument(
        '-s', '--subnet',
        help='Network subnet to scan in CIDR notation (default: limited broadcast)'
    )

    parser.add_argument(
        '-l', '--light',
        action='append',
        default=[],
        dest='lights',
        help='IPv4 address of a known light to probe directly (repeatable)'
    )

    parser.add_argument(
        '-t', '--timeout',
        type=float,
        default=2.0,
        help='Timeout in seconds to wait for responses (default: 2.0)'
    )

    parser.add_argument(
        '-p', '--port',
        type=int,
        default=LIFX_PORT,
        help=f'LIFX UDP port (default: {LIFX_PORT})'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--log-level',
        default='WARNING',
        help='Log level for client diagnostics (default: WARNING)'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Output results in JSON format'
    )

    return parser


def print_devices(devices: list[Device]):
    if devices:
        print(f"Found {len(devices)} LIFX device(s):")
        print("-" * 60)
        for device in sorted(devices, key=lambda d: d.address):
            print(f"  Label:   {device.label or '-'}")
            print(f"  Serial:  {device.serial}")
            print(f"  IP:      {device.address}")
            print(f"  Port:    {device.port}")
            print(f"  Status:  {device.status}")
            print("-" * 60)
    else:
        print("No LIFX devices found.")
        print()
        print("Troubleshooting tips:")
        print("  - Make sure your LIFX devices are powered on")
        print("  - Verify the subnet is correct for your network")
        print("  - Try increasing the timeout (-t) or probing lights directly (-l)")
        print("  - Check that UDP port 56700 is not blocked by firewall")


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        setup_logging(args.log_level)
    except ValueError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    broadcast = '255.255.255.255'
    if args.subnet:
        try:
            broadcast = broadcast_address(args.subnet)
        except ValueError as e:
            print(f"Invalid subnet: {e}", file=sys.stderr)
            sys.exit(1)

    if not args.json:
        print(f"Scanning for LIFX devices via {broadcast}...")
        print()

    try:
        devices = scan_network(
            broadcast=broadcast,
            timeout=args.timeout,
            lights=args.lights,
            port=args.port,
            verbose=args.verbose
        )
    except LifxError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        result = {
            'broadcast': broadcast,
            'devices': [device_summary(d) for d in devices]
        }
        print(json.dumps(result, indent=2))
    else:
        print_devices(devices)


if __name__ == '__main__':
    main()
