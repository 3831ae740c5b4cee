import logging
import socket
from dataclasses import asdict, dataclass

import psutil

from . import storage
from .config import DEFAULTS, SETTINGS_PATH
from .errors import ConfigurationError, ExternalToolError, WgPanelError
from .interface import run_command

_log = logging.getLogger("wgpanel.settings")


@dataclass
class Settings:
    wireguard_interface: str = DEFAULTS["wireguard_interface"]
    network_interface: str = DEFAULTS["network_interface"]
    address: str = DEFAULTS["address"]
    wireguard_config_path: str = DEFAULTS["wireguard_config_path"]
    data_path: str = DEFAULTS["data_path"]

    @classmethod
    def from_dict(cls, data):
        values = dict(DEFAULTS)
        for key in DEFAULTS:
            if data.get(key) is not None:
                values[key] = str(data[key])
        return cls(**values)

    def to_dict(self):
        return asdict(self)

    def listen_host_port(self):
        host, _, port = self.address.rpartition(":")
        try:
            return host or "0.0.0.0", int(port)
        except ValueError:
            raise WgPanelError(f"Could not parse address: {self.address}")

    def wireguard_interface_address(self):
        """First IPv4 address of the WireGuard interface."""
        return interface_ipv4(self.wireguard_interface)

    def check_wireguard_interface(self):
        available = list_interfaces()
        if self.wireguard_interface not in available:
            raise ConfigurationError(self.wireguard_interface, available)

    def network_interface_name(self):
        if self.network_interface:
            return self.network_interface
        return default_interface()


def list_interfaces():
    return sorted(psutil.net_if_addrs().keys())


def interface_ipv4(name):
    addrs = psutil.net_if_addrs()
    if name not in addrs:
        raise ConfigurationError(name, sorted(addrs.keys()))
    for addr in addrs[name]:
        if addr.family == socket.AF_INET and addr.address:
            return addr.address
    raise ConfigurationError(
        name, sorted(addrs.keys()),
        message=f"WireGuard interface '{name}' has no IPv4 address",
    )


def default_interface():
    try:
        out = run_command(["ip", "-4", "route", "show", "default"])
        parts = out.split()
        if "dev" in parts and parts.index("dev") + 1 < len(parts):
            return parts[parts.index("dev") + 1]
    except ExternalToolError as e:
        _log.warning("default route lookup failed: %s", e.message)
    for name, stats in sorted(psutil.net_if_stats().items()):
        if stats.isup and name != "lo":
            return name
    raise WgPanelError("Could not get the default network interface")


def load_settings(path=None):
    path = path or SETTINGS_PATH
    settings = Settings.from_dict(storage.read_settings_file(path))
    storage.write_settings_file(path, settings.to_dict())
    return settings
