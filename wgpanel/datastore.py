import copy
import logging
import threading
from functools import partial

from . import storage
from .allocator import allocate_address
from .errors import ConflictError, NotFoundError, PersistenceError, ValidationError

_log = logging.getLogger("wgpanel.store")


class DataStore:
    """Sole owner of the in-memory dataset.

    Every mutation writes the full dataset before returning. When that write
    fails the change stays in memory, ``dirty`` is set and the
    PersistenceError propagates; the next successful write (any mutation or
    ``flush()``) clears the flag.

    ``lock`` is re-entrant so callers can hold it across several calls
    (render + restart) while the individual methods take it too.
    """

    def __init__(self, dataset, interface_address, save):
        self.lock = threading.RLock()
        self.dirty = False
        self._data = dataset
        self._interface_address = interface_address
        self._save = save

    @classmethod
    def open(cls, settings):
        path = settings.data_path
        dataset = storage.load_dataset(path)
        store = cls(dataset, settings.wireguard_interface_address,
                    partial(storage.save_dataset, path))
        store.flush()
        _log.info("loaded %s: server=%s clients=%d", path,
                  "yes" if dataset.server else "no", len(dataset.clients))
        return store

    def _commit(self):
        try:
            self._save(self._data)
        except PersistenceError as e:
            self.dirty = True
            _log.error("dataset not persisted, memory and disk diverge: %s", e.message)
            raise
        self.dirty = False

    def flush(self):
        with self.lock:
            self._commit()

    def dataset(self):
        with self.lock:
            return copy.deepcopy(self._data)

    # server

    def get_server(self):
        with self.lock:
            return copy.deepcopy(self._data.server)

    def upsert_server(self, patch):
        with self.lock:
            if patch is None:
                server = None
            else:
                current = self._data.server
                server = patch.to_server(
                    current.endpoint if current else None,
                    self._interface_address,
                )
            self._data.server = server
            _log.info("server %s", "cleared" if server is None else f"set ({server.endpoint})")
            self._commit()
            return copy.deepcopy(server)

    def delete_server(self):
        with self.lock:
            self._data.server = None
            _log.info("server deleted")
            self._commit()

    # clients

    def list_clients(self):
        with self.lock:
            return copy.deepcopy(self._data.clients)

    def get_client(self, client_uuid):
        with self.lock:
            idx = self._data.find_client(client_uuid)
            if idx is None:
                raise NotFoundError(f"Client config for uuid {client_uuid.hex} not found")
            return copy.deepcopy(self._data.clients[idx])

    def replace_clients(self, clients):
        with self.lock:
            seen = set()
            for c in clients:
                if c.uuid in seen:
                    raise ConflictError(f"Duplicate client uuid {c.uuid.hex}")
                seen.add(c.uuid)
            self._data.clients = copy.deepcopy(list(clients))
            _log.info("client list replaced (%d clients)", len(clients))
            self._commit()

    def create_client(self, patch):
        with self.lock:
            if patch.uuid is not None and self._data.find_client(patch.uuid) is not None:
                raise ConflictError(f"Client with uuid {patch.uuid.hex} already exists")
            allocate = partial(
                allocate_address,
                self._data.server,
                self._interface_address,
                [c.address for c in self._data.clients],
            )
            client = patch.to_client(allocate)
            if self._data.find_client(client.uuid) is not None:
                raise ConflictError(f"Client with uuid {client.uuid.hex} already exists")
            self._data.clients.append(client)
            _log.info("client %s (%s) created at %s", client.name, client.uuid.hex, client.address)
            self._commit()
            return copy.deepcopy(client)

    def update_client(self, client_uuid, client):
        if client.uuid != client_uuid:
            raise ValidationError(
                f"uuid in body ({client.uuid.hex}) does not match {client_uuid.hex}")
        with self.lock:
            idx = self._data.find_client(client_uuid)
            if idx is None:
                raise NotFoundError(f"Client config for uuid {client_uuid.hex} not found")
            self._data.clients[idx] = copy.deepcopy(client)
            _log.info("client %s (%s) updated", client.name, client.uuid.hex)
            self._commit()

    def delete_client(self, client_uuid):
        with self.lock:
            idx = self._data.find_client(client_uuid)
            if idx is None:
                raise NotFoundError(f"Client config for uuid {client_uuid.hex} not found")
            removed = self._data.clients.pop(idx)
            _log.info("client %s (%s) deleted", removed.name, removed.uuid.hex)
            self._commit()
