import uuid

import pytest

from wgpanel import keys
from wgpanel.models import ClientRecord, Dataset, ServerRecord


def _server(**overrides):
    priv, pub = keys.generate_keypair()
    values = dict(
        endpoint="vpn.example.com:51820",
        address=["10.8.0.1/24"],
        dns=["1.1.1.1"],
        listen_port=51820,
        private_key=priv,
        public_key=pub,
    )
    values.update(overrides)
    return ServerRecord(**values)


def _client(name="alice", **overrides):
    priv, pub = keys.generate_keypair()
    values = dict(
        name=name,
        uuid=uuid.uuid4(),
        enabled=True,
        public_key=pub,
        private_key=priv,
        address="10.8.0.2/32",
        server_allowed_ips=["10.8.0.2/32"],
        client_allowed_ips=["0.0.0.0/0"],
        dns=[],
        preshared_key=keys.generate_preshared_key(),
    )
    values.update(overrides)
    return ClientRecord(**values)


@pytest.fixture
def make_server():
    return _server


@pytest.fixture
def make_client():
    return _client


class MemorySaver:
    def __init__(self):
        self.saved = []
        self.fail_with = None

    def __call__(self, dataset):
        if self.fail_with is not None:
            raise self.fail_with
        self.saved.append(dataset.to_dict())


@pytest.fixture
def saver():
    return MemorySaver()


@pytest.fixture
def empty_dataset():
    return Dataset()
