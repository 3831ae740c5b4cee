import logging
from datetime import datetime, timezone

from . import keys
from .errors import RuntimeQueryError
from .models import LivePeer, RuntimePeerView

_log = logging.getLogger("wgpanel.peers")


def _none(value):
    return None if value in ("", "(none)") else value


def parse_dump(text):
    """Parse ``wg show <iface> dump`` into {public_key: LivePeer}.

    The first line describes the interface itself and is skipped. The dump
    carries no protocol version, so ``protocol_version`` is always None.
    """
    result = {}
    for line in text.splitlines()[1:]:
        parts = line.split("\t")
        if len(parts) < 8:
            continue
        pubkey = parts[0]
        handshake = int(parts[4]) if parts[4].isdigit() else 0
        allowed = _none(parts[3])
        result[pubkey] = LivePeer(
            public_key=pubkey,
            endpoint=_none(parts[2]),
            allowed_ips=allowed.split(",") if allowed else [],
            last_handshake=(datetime.fromtimestamp(handshake, tz=timezone.utc)
                            if handshake else None),
            received_bytes=int(parts[5]) if parts[5].isdigit() else 0,
            transmitted_bytes=int(parts[6]) if parts[6].isdigit() else 0,
        )
    return result


def reconcile(snapshot, clients):
    """Join stored clients with live counters.

    Clients missing from the snapshot are left out. A stored public key
    that does not parse aborts the whole call.
    """
    peers = []
    for client in clients:
        try:
            keys.parse_key(client.public_key)
        except ValueError as e:
            _log.error("client %s has a malformed public key", client.name)
            raise RuntimeQueryError(client.name, client.public_key, str(e))
        live = snapshot.get(client.public_key)
        if live is None:
            continue
        peers.append(RuntimePeerView(
            name=client.name,
            uuid=client.uuid,
            address=client.address,
            dns=list(client.dns),
            server_allowed_ips=list(live.allowed_ips),
            endpoint=live.endpoint,
            protocol_version=live.protocol_version,
            transmitted_bytes=live.transmitted_bytes,
            received_bytes=live.received_bytes,
            last_handshake=live.last_handshake,
        ))
    return peers
