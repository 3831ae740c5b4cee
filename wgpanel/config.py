import os

SETTINGS_PATH = os.environ.get("WGPANEL_CONFIG", "config.yaml")

DEFAULTS = {
    "wireguard_interface": "wg0",
    "network_interface": "",
    "address": "0.0.0.0:6252",
    "wireguard_config_path": "/etc/wireguard/wg0.conf",
    "data_path": "data.json",
}

WG_DEFAULT_PORT = 51820
WG_DEFAULT_CLIENT_ALLOWED_IPS = ["0.0.0.0/0"]

WG_INTERFACE_PLACEHOLDER = "{WIREGUARD_INTERFACE}"
NET_INTERFACE_PLACEHOLDER = "{NETWORK_INTERFACE}"

WG_DEFAULT_POST_UP = (
    "iptables -A FORWARD -i {WIREGUARD_INTERFACE} -j ACCEPT; "
    "iptables -t nat -A POSTROUTING -o {NETWORK_INTERFACE} -j MASQUERADE"
)
WG_DEFAULT_POST_DOWN = (
    "iptables -D FORWARD -i {WIREGUARD_INTERFACE} -j ACCEPT; "
    "iptables -t nat -D POSTROUTING -o {NETWORK_INTERFACE} -j MASQUERADE"
)

WG_QUICK = "wg-quick"
WG = "wg"
SYSTEMCTL = "systemctl"
