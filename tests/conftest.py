"""Shared test fixtures and utilities."""

import base64
from typing import Callable, Dict, List, Tuple, Union

import pytest

from dysk_client.client import DyskClient
from dysk_client.codec import RESPONSE_SCHEMA, encode
from dysk_client.models import Dysk
from dysk_client.storage.fs import FilesystemPageBlobStore
from dysk_client.transport import Command, bufferize
from dysk_client.validator import DyskValidator

ACCOUNT_NAME = "testaccount"
ACCOUNT_KEY = base64.b64encode(b"k" * 64).decode()
RESOLVED_IP = "10.0.0.4"

Reply = Union[str, Callable[[str], str]]


def descriptor_reply(dysk: Dysk, major: int, minor: int) -> str:
    """Driver success reply describing a disk."""
    return "OK\n" + encode(dysk.model_copy(update={"major": major, "minor": minor}), RESPONSE_SCHEMA)


class FakeDriver:
    """Stands in for the kernel driver behind the control channel.

    Records every command and answers from per-command replies. Mounted
    disks registered with ``add_disk`` answer GET automatically.
    """

    def __init__(self):
        self.calls: List[Tuple[Command, str]] = []
        self.replies: Dict[Command, Reply] = {}
        self.disks: Dict[str, Tuple[Dysk, int, int]] = {}
        self.opened = 0
        self.closed = 0

    def add_disk(self, dysk: Dysk, major: int, minor: int) -> None:
        self.disks[dysk.name] = (dysk, major, minor)

    def handle(self, command: Command, payload: str) -> str:
        self.calls.append((command, payload))
        if command in self.replies:
            reply = self.replies[command]
            return reply(payload) if callable(reply) else reply
        if command == Command.GET:
            name = payload.split("\n", 1)[0]
            if name not in self.disks:
                return f"ERR\nDisk {name} not found\n"
            return descriptor_reply(*self.disks[name])
        if command == Command.LIST:
            return "OK\n" + "".join(f"{n}\n" for n in self.disks)
        return "OK\n"

    def transport(self) -> "FakeTransport":
        return FakeTransport(self)

    def names_for(self, command: Command) -> List[str]:
        return [p.split("\n", 1)[0] for c, p in self.calls if c == command]


class FakeTransport:
    """Transport that hands commands to a FakeDriver."""

    def __init__(self, driver: FakeDriver):
        self.driver = driver
        self.is_open = False

    def __enter__(self) -> "FakeTransport":
        self.driver.opened += 1
        self.is_open = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.is_open = False
        self.driver.closed += 1

    def execute(self, command: int, payload: str) -> bytes:
        assert self.is_open, "command issued on a closed transport"
        reply = self.driver.handle(Command(command), payload)
        return bytes(bufferize(reply))


@pytest.fixture
def store(tmp_path):
    """Filesystem page blob store rooted in tmp_path."""
    return FilesystemPageBlobStore(tmp_path / "blobs")


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def validator(store):
    """Validator with DNS stubbed out."""
    return DyskValidator(store, resolver=lambda host: RESOLVED_IP)


@pytest.fixture
def client(store, driver, validator):
    return DyskClient(
        ACCOUNT_NAME,
        ACCOUNT_KEY,
        store=store,
        transport_factory=driver.transport,
        validator=validator,
    )


@pytest.fixture
def make_dysk():
    """Factory for valid descriptors; override any field by keyword."""
    def _make(**overrides) -> Dysk:
        fields = dict(
            type="RW",
            name="disk0",
            account_name=ACCOUNT_NAME,
            account_key=ACCOUNT_KEY,
            path="/disks/disk0.vhd",
            lease_id="1f3a9c2e-7b4d-4e0a-9c1b-2d3e4f5a6b7c",
        )
        fields.update(overrides)
        return Dysk(**fields)
    return _make
