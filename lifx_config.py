"""Configuration for the LIFX client."""

import ipaddress
import re
from dataclasses import dataclass, field, fields
from typing import Optional

from lifx_errors import ConfigurationError
from lifx_protocol import LIFX_PORT


SOURCE_PATTERN = re.compile(r'^[0-9a-fA-F]{8}$')


def is_ipv4(address) -> bool:
    """True if address is a dotted IPv4 string."""
    if not isinstance(address, str):
        return False
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ClientConfig:
    """
    Options accepted by Client.init().

    All durations are in milliseconds.
    """

    address: str = '0.0.0.0'
    port: int = 0
    debug: bool = False
    light_offline_tolerance: int = 3
    message_handler_timeout: int = 45000
    source: Optional[str] = None
    start_discovery: bool = True
    lights: list = field(default_factory=list)
    broadcast: str = '255.255.255.255'
    send_port: int = LIFX_PORT
    resend_packet_delay: int = 150
    resend_max_times: int = 3
    message_rate_limit: int = 50
    discovery_interval: int = 5000

    @classmethod
    def from_options(cls, **options) -> 'ClientConfig':
        """
        Build and validate a config from keyword options.

        Raises:
            ConfigurationError: unknown option name or invalid value
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown LIFX Client option(s): {', '.join(unknown)}")
        config = cls(**options)
        config.validate()
        return config

    def validate(self) -> None:
        """Validate client configuration parameters."""
        if not isinstance(self.address, str) or not is_ipv4(self.address):
            raise ConfigurationError('LIFX Client address option must be an IPv4 address')

        if not isinstance(self.port, int) or isinstance(self.port, bool):
            raise ConfigurationError('LIFX Client port option must be a number')
        if self.port < 0 or self.port > 65535:
            raise ConfigurationError('LIFX Client port option must be between 0 and 65535')

        if not isinstance(self.send_port, int) or isinstance(self.send_port, bool):
            raise ConfigurationError('LIFX Client sendPort option must be a number')
        if self.send_port < 1 or self.send_port > 65535:
            raise ConfigurationError('LIFX Client sendPort option must be between 1 and 65535')

        if not isinstance(self.debug, bool):
            raise ConfigurationError('LIFX Client debug option must be a boolean')
        if not isinstance(self.start_discovery, bool):
            raise ConfigurationError('LIFX Client startDiscovery option must be a boolean')

        for name in ('light_offline_tolerance', 'message_handler_timeout', 'resend_packet_delay',
                     'resend_max_times', 'message_rate_limit', 'discovery_interval'):
            value = getattr(self, name)
            if not _is_number(value):
                raise ConfigurationError(f'LIFX Client {name} option must be a number')
            if value < 0:
                raise ConfigurationError(f'LIFX Client {name} option must not be negative')
        if self.message_rate_limit <= 0 or self.discovery_interval <= 0:
            raise ConfigurationError('LIFX Client timer intervals must be greater than 0')

        if not isinstance(self.broadcast, str):
            raise ConfigurationError('LIFX Client broadcast option must be a string')
        if not is_ipv4(self.broadcast):
            raise ConfigurationError('LIFX Client broadcast option does only allow IPv4 address format')

        if not isinstance(self.lights, (list, tuple)):
            raise ConfigurationError('LIFX Client lights option must be a list')
        for light in self.lights:
            if not is_ipv4(light):
                raise ConfigurationError(
                    f"LIFX Client lights option array element '{light}' is not expected IPv4 format"
                )

        if self.source is not None:
            if not isinstance(self.source, str):
                raise ConfigurationError('LIFX Client source option must be given as string')
            if not SOURCE_PATTERN.match(self.source):
                raise ConfigurationError('LIFX Client source option must be 8 hex chars')
