import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID

from . import keys
from .config import (
    WG_DEFAULT_CLIENT_ALLOWED_IPS,
    WG_DEFAULT_PORT,
    WG_DEFAULT_POST_DOWN,
    WG_DEFAULT_POST_UP,
)
from .errors import MissingFieldError, ValidationError


def _require(data, name):
    if data.get(name) is None:
        raise MissingFieldError(name)
    return data[name]


def _str_list(value, name):
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"Field '{name}' must be a list of strings")
    return list(value)


def _opt_int(value, name):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Field '{name}' must be an integer")
    return value


def _opt_u16(value, name, minimum=0):
    value = _opt_int(value, name)
    if value is not None and not minimum <= value <= 65535:
        raise ValidationError(f"Field '{name}' must be between {minimum} and 65535")
    return value


def _opt_str(value, name):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Field '{name}' must be a string")
    return value


def _opt_bool(value, name):
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(f"Field '{name}' must be a boolean")
    return value


def parse_uuid(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid uuid: '{value}'")


def _derive_public_key(private_key):
    try:
        return keys.public_key(private_key)
    except ValueError:
        raise ValidationError(f"Invalid base64 private key: '{private_key}'")


@dataclass
class ServerRecord:
    endpoint: str
    address: List[str]
    dns: List[str]
    listen_port: int
    private_key: str
    public_key: str
    pre_up: Optional[str] = None
    post_up: Optional[str] = None
    pre_down: Optional[str] = None
    post_down: Optional[str] = None
    table: Optional[str] = None
    mtu: Optional[int] = None

    def to_dict(self):
        return {
            "endpoint": self.endpoint,
            "address": list(self.address),
            "dns": list(self.dns),
            "listen_port": self.listen_port,
            "private_key": self.private_key,
            "public_key": self.public_key,
            "pre_up": self.pre_up,
            "post_up": self.post_up,
            "pre_down": self.pre_down,
            "post_down": self.post_down,
            "table": self.table,
            "mtu": self.mtu,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("server must be an object")
        address = _str_list(_require(data, "address"), "address")
        if not address:
            raise ValidationError("Field 'address' must not be empty")
        return cls(
            endpoint=_opt_str(_require(data, "endpoint"), "endpoint"),
            address=address,
            dns=_str_list(data.get("dns"), "dns") or [],
            listen_port=_opt_u16(_require(data, "listen_port"), "listen_port", 1),
            private_key=_opt_str(_require(data, "private_key"), "private_key"),
            public_key=_opt_str(_require(data, "public_key"), "public_key"),
            pre_up=_opt_str(data.get("pre_up"), "pre_up"),
            post_up=_opt_str(data.get("post_up"), "post_up"),
            pre_down=_opt_str(data.get("pre_down"), "pre_down"),
            post_down=_opt_str(data.get("post_down"), "post_down"),
            table=_opt_str(data.get("table"), "table"),
            mtu=_opt_u16(data.get("mtu"), "mtu"),
        )


@dataclass
class ClientRecord:
    name: str
    uuid: UUID
    enabled: bool
    public_key: str
    private_key: str
    address: str
    server_allowed_ips: List[str] = field(default_factory=list)
    client_allowed_ips: List[str] = field(default_factory=list)
    dns: List[str] = field(default_factory=list)
    preshared_key: Optional[str] = None
    persistent_keep_alive: Optional[int] = None

    def to_dict(self):
        return {
            "name": self.name,
            "uuid": self.uuid.hex,
            "enabled": self.enabled,
            "preshared_key": self.preshared_key,
            "public_key": self.public_key,
            "server_allowed_ips": list(self.server_allowed_ips),
            "persistent_keep_alive": self.persistent_keep_alive,
            "private_key": self.private_key,
            "address": self.address,
            "client_allowed_ips": list(self.client_allowed_ips),
            "dns": list(self.dns),
        }

    @classmethod
    def from_dict(cls, data, default_uuid=None):
        if not isinstance(data, dict):
            raise ValidationError("client must be an object")
        raw_uuid = data.get("uuid")
        if raw_uuid is None:
            if default_uuid is None:
                raise MissingFieldError("uuid")
            raw_uuid = default_uuid
        return cls(
            name=_opt_str(_require(data, "name"), "name"),
            uuid=parse_uuid(raw_uuid),
            enabled=_opt_bool(_require(data, "enabled"), "enabled"),
            public_key=_opt_str(_require(data, "public_key"), "public_key"),
            private_key=_opt_str(_require(data, "private_key"), "private_key"),
            address=_opt_str(_require(data, "address"), "address"),
            server_allowed_ips=_str_list(
                _require(data, "server_allowed_ips"), "server_allowed_ips"),
            client_allowed_ips=_str_list(
                _require(data, "client_allowed_ips"), "client_allowed_ips"),
            dns=_str_list(data.get("dns"), "dns") or [],
            preshared_key=_opt_str(data.get("preshared_key"), "preshared_key"),
            persistent_keep_alive=_opt_u16(
                data.get("persistent_keep_alive"), "persistent_keep_alive"),
        )


@dataclass
class Dataset:
    server: Optional[ServerRecord] = None
    clients: List[ClientRecord] = field(default_factory=list)

    def to_dict(self):
        return {
            "server": self.server.to_dict() if self.server else None,
            "clients": [c.to_dict() for c in self.clients],
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("dataset must be an object")
        server = data.get("server")
        clients = data.get("clients") or []
        if not isinstance(clients, list):
            raise ValidationError("Field 'clients' must be a list")
        return cls(
            server=ServerRecord.from_dict(server) if server is not None else None,
            clients=[ClientRecord.from_dict(c) for c in clients],
        )

    def find_client(self, client_uuid):
        for i, c in enumerate(self.clients):
            if c.uuid == client_uuid:
                return i
        return None


@dataclass
class ServerPatch:
    endpoint: Optional[str] = None
    address: Optional[List[str]] = None
    dns: Optional[List[str]] = None
    listen_port: Optional[int] = None
    private_key: Optional[str] = None
    pre_up: Optional[str] = None
    post_up: Optional[str] = None
    pre_down: Optional[str] = None
    post_down: Optional[str] = None
    table: Optional[str] = None
    mtu: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("server must be an object")
        return cls(
            endpoint=_opt_str(data.get("endpoint"), "endpoint"),
            address=_str_list(data.get("address"), "address"),
            dns=_str_list(data.get("dns"), "dns"),
            listen_port=_opt_u16(data.get("listen_port"), "listen_port", 1),
            private_key=_opt_str(data.get("private_key"), "private_key"),
            pre_up=_opt_str(data.get("pre_up"), "pre_up"),
            post_up=_opt_str(data.get("post_up"), "post_up"),
            pre_down=_opt_str(data.get("pre_down"), "pre_down"),
            post_down=_opt_str(data.get("post_down"), "post_down"),
            table=_opt_str(data.get("table"), "table"),
            mtu=_opt_u16(data.get("mtu"), "mtu"),
        )

    def to_server(self, default_endpoint: Optional[str],
                  interface_address: Callable[[], str]) -> ServerRecord:
        """Fill every unset field with its default.

        ``interface_address`` is only called when no address was given.
        """
        endpoint = self.endpoint if self.endpoint is not None else default_endpoint
        if endpoint is None:
            raise MissingFieldError("endpoint")
        private_key = (self.private_key if self.private_key is not None
                       else keys.generate_private_key())
        public_key = _derive_public_key(private_key)
        if self.address is None:
            address = [interface_address()]
        elif not self.address:
            raise ValidationError("Field 'address' must not be empty")
        else:
            address = list(self.address)
        return ServerRecord(
            endpoint=endpoint,
            address=address,
            dns=list(self.dns or []),
            listen_port=(_opt_u16(self.listen_port, "listen_port", 1)
                         if self.listen_port is not None else WG_DEFAULT_PORT),
            private_key=private_key,
            public_key=public_key,
            pre_up=self.pre_up,
            post_up=self.post_up if self.post_up is not None else WG_DEFAULT_POST_UP,
            pre_down=self.pre_down,
            post_down=self.post_down if self.post_down is not None else WG_DEFAULT_POST_DOWN,
            table=self.table,
            mtu=_opt_u16(self.mtu, "mtu"),
        )


@dataclass
class ClientPatch:
    name: Optional[str] = None
    uuid: Optional[UUID] = None
    enabled: Optional[bool] = None
    generate_preshared_key: Optional[bool] = None
    preshared_key: Optional[str] = None
    server_allowed_ips: Optional[List[str]] = None
    persistent_keep_alive: Optional[int] = None
    private_key: Optional[str] = None
    address: Optional[str] = None
    client_allowed_ips: Optional[List[str]] = None
    dns: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("client must be an object")
        raw_uuid = data.get("uuid")
        return cls(
            name=_opt_str(data.get("name"), "name"),
            uuid=parse_uuid(raw_uuid) if raw_uuid is not None else None,
            enabled=_opt_bool(data.get("enabled"), "enabled"),
            generate_preshared_key=_opt_bool(
                data.get("generate_preshared_key"), "generate_preshared_key"),
            preshared_key=_opt_str(data.get("preshared_key"), "preshared_key"),
            server_allowed_ips=_str_list(data.get("server_allowed_ips"), "server_allowed_ips"),
            persistent_keep_alive=_opt_u16(
                data.get("persistent_keep_alive"), "persistent_keep_alive"),
            private_key=_opt_str(data.get("private_key"), "private_key"),
            address=_opt_str(data.get("address"), "address"),
            client_allowed_ips=_str_list(data.get("client_allowed_ips"), "client_allowed_ips"),
            dns=_str_list(data.get("dns"), "dns"),
        )

    def to_client(self, allocate: Callable[[], str]) -> ClientRecord:
        """Fill every unset field with its default.

        ``allocate`` is only called when the address or the server-side
        allowed IPs were left unset.
        """
        if not self.name:
            raise MissingFieldError("name")
        private_key = (self.private_key if self.private_key is not None
                       else keys.generate_private_key())
        public_key = _derive_public_key(private_key)
        keep_alive = _opt_u16(self.persistent_keep_alive, "persistent_keep_alive")

        ip = None
        if self.address is None or self.server_allowed_ips is None:
            ip = allocate()

        preshared_key = self.preshared_key
        if preshared_key is None and self.generate_preshared_key is not False:
            preshared_key = keys.generate_preshared_key()

        return ClientRecord(
            name=self.name,
            uuid=self.uuid or uuid.uuid4(),
            enabled=bool(self.enabled),
            public_key=public_key,
            private_key=private_key,
            address=self.address if self.address is not None else ip,
            server_allowed_ips=(list(self.server_allowed_ips)
                                if self.server_allowed_ips is not None else [ip]),
            client_allowed_ips=(list(self.client_allowed_ips)
                                if self.client_allowed_ips is not None
                                else list(WG_DEFAULT_CLIENT_ALLOWED_IPS)),
            dns=list(self.dns or []),
            preshared_key=preshared_key,
            persistent_keep_alive=keep_alive,
        )


@dataclass
class LivePeer:
    public_key: str
    endpoint: Optional[str] = None
    allowed_ips: List[str] = field(default_factory=list)
    last_handshake: Optional[datetime] = None
    received_bytes: int = 0
    transmitted_bytes: int = 0
    protocol_version: Optional[int] = None


@dataclass
class RuntimePeerView:
    name: str
    uuid: UUID
    address: str
    dns: List[str]
    server_allowed_ips: List[str]
    endpoint: Optional[str]
    protocol_version: Optional[int]
    transmitted_bytes: int
    received_bytes: int
    last_handshake: Optional[datetime]

    def to_dict(self):
        handshake = None
        if self.last_handshake is not None:
            ts = self.last_handshake
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            handshake = int(ts.timestamp() * 1000)
        return {
            "name": self.name,
            "uuid": self.uuid.hex,
            "server_allowed_ips": list(self.server_allowed_ips),
            "address": self.address,
            "protocol_version": self.protocol_version,
            "endpoint": self.endpoint,
            "dns": list(self.dns),
            "transmitted_bytes": self.transmitted_bytes,
            "received_bytes": self.received_bytes,
            "last_handshake": handshake,
        }

