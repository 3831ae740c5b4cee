import ipaddress
import logging

from .errors import ValidationError

_log = logging.getLogger("wgpanel.allocator")


def _strip_mask(addr):
    return addr.rsplit("/", 1)[0] if "/" in addr else addr


def next_ipv4(base):
    """Return ``base`` with the last octet incremented.

    255 in the last octet rolls into the third octet. No carry past the
    third octet.
    """
    try:
        ip = ipaddress.IPv4Address(_strip_mask(base).strip())
    except ValueError:
        raise ValidationError(f"Invalid server address: {base}")
    octets = list(ip.packed)
    if octets[3] < 255:
        octets[3] += 1
    elif octets[2] < 255:
        octets[2] += 1
        octets[3] = 0
    else:
        raise ValidationError(f"No address available after {base}")
    return ipaddress.IPv4Address(bytes(octets))


def allocate_address(server, interface_address, existing=()):
    # Always derived from the server's base address; assigned client
    # addresses are not scanned.
    if server is not None and server.address:
        base = server.address[0]
    else:
        base = interface_address()
    candidate = f"{next_ipv4(base)}/32"
    taken = {_strip_mask(a) for a in existing if a}
    if _strip_mask(candidate) in taken:
        _log.warning("allocated address %s is already assigned to another client", candidate)
    return candidate
