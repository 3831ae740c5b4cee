from .config import NET_INTERFACE_PLACEHOLDER, WG_INTERFACE_PLACEHOLDER

HEADER = [
    "# Generated by wgpanel",
    "# Do not edit manually!",
]

_HOOKS = (
    ("PreUp", "pre_up"),
    ("PostUp", "post_up"),
    ("PreDown", "pre_down"),
    ("PostDown", "post_down"),
)


def _join(values):
    return ",".join(values)


def substitute_hook(command, wireguard_interface, network_interface):
    return (command
            .replace(WG_INTERFACE_PLACEHOLDER, wireguard_interface)
            .replace(NET_INTERFACE_PLACEHOLDER, network_interface))


def interface_lines(server, wireguard_interface, network_interface):
    lines = [
        "[Interface]",
        f"Address = {_join(server.address)}",
        f"ListenPort = {server.listen_port}",
        f"PrivateKey = {server.private_key}",
    ]
    if server.dns:
        lines.append(f"DNS = {_join(server.dns)}")
    extra = []
    if server.table is not None:
        extra.append(f"Table = {server.table}")
    if server.mtu is not None:
        extra.append(f"MTU = {server.mtu}")
    for key, attr in _HOOKS:
        command = getattr(server, attr)
        if command is not None:
            extra.append(f"{key} = {substitute_hook(command, wireguard_interface, network_interface)}")
    # table, MTU and hooks form their own paragraph
    if extra:
        lines += [""] + extra
    return lines


def peer_lines(client):
    body = [
        "[Peer]",
        f"PublicKey = {client.public_key}",
    ]
    if client.preshared_key is not None:
        body.append(f"PresharedKey = {client.preshared_key}")
    body.append(f"AllowedIPs = {_join(client.server_allowed_ips)}")
    if client.persistent_keep_alive is not None:
        body.append(f"PersistentKeepalive = {client.persistent_keep_alive}")
    if not client.enabled:
        body = ["# " + line for line in body]
    return [f"# Name: {client.name}", f"# UUID: {client.uuid}"] + body


def render_server_config(server, clients, wireguard_interface, network_interface):
    if server is None:
        return ""
    blocks = [HEADER + [""] + interface_lines(server, wireguard_interface, network_interface)]
    for client in clients:
        blocks.append(peer_lines(client))
    return "\n\n".join("\n".join(b) for b in blocks) + "\n"


def render_client_config(client, server_public_key, endpoint):
    lines = [
        f"# Name: {client.name}",
        "[Interface]",
        f"PrivateKey = {client.private_key}",
        f"Address = {client.address}",
    ]
    if client.dns:
        lines.append(f"DNS = {_join(client.dns)}")
    lines += [
        "",
        "[Peer]",
        f"PublicKey = {server_public_key}",
    ]
    if client.preshared_key is not None:
        lines.append(f"PresharedKey = {client.preshared_key}")
    lines += [
        f"AllowedIPs = {_join(client.client_allowed_ips)}",
        f"Endpoint = {endpoint}",
    ]
    if client.persistent_keep_alive is not None:
        lines.append(f"PersistentKeepalive = {client.persistent_keep_alive}")
    return "\n".join(lines) + "\n"
