"""Client facade for the dysk driver.

Each operation opens its own control channel, performs its exchange(s), and
closes the channel before returning, whether it succeeds or fails. A client
instance holds no open handle between operations, but it assumes callers
serialize operations: the driver offers no isolation between the list
command and the per-disk gets that follow it.
"""

import logging
from typing import Callable, List, Optional

from .codec import decode, encode
from .config import ClientConfig, load_client_config
from .constants import GIB, LIST_PAYLOAD, SECTOR_SIZE
from .models import Dysk
from .provisioner import create_page_blob
from .response import ModuleResponse, parse_response
from .storage import PageBlobStore, make_page_blob_store
from .transport import Command, DeviceTransport, Transport
from .validator import DyskValidator, validate_name
from .vhd import VHD_HEADER_SIZE

logger = logging.getLogger(__name__)


def _name_payload(name: str) -> str:
    return f"{name}\n\0"


class DyskClient:
    """Mount, unmount, inspect and provision dysk disks."""

    def __init__(
        self,
        account_name: str,
        account_key: str,
        store: Optional[PageBlobStore] = None,
        transport_factory: Optional[Callable[[], Transport]] = None,
        validator: Optional[DyskValidator] = None,
        config: Optional[ClientConfig] = None,
    ):
        """Initialize client.

        Args:
            account_name: Storage account stamped on every mounted disk
            account_key: Storage account key
            store: Page blob store (built from config on first use if omitted)
            transport_factory: Returns a fresh, unopened transport per operation
            validator: Descriptor validator (built around ``store`` if omitted)
            config: Remaining settings (device path, timeout, endpoint suffix)
        """
        self.account_name = account_name
        self.account_key = account_key
        self.config = config or ClientConfig(account_name=account_name, account_key=account_key)
        self._store = store
        self._validator = validator
        self._transport_factory = transport_factory or self._device_transport

    @classmethod
    def from_config(cls, config: Optional[ClientConfig] = None, **kwargs) -> "DyskClient":
        """Build a client from configuration (loaded from disk when omitted)."""
        config = config or load_client_config()
        return cls(config.account_name, config.account_key, config=config, **kwargs)

    @property
    def store(self) -> PageBlobStore:
        if self._store is None:
            self._store = make_page_blob_store(self.config)
        return self._store

    @property
    def validator(self) -> DyskValidator:
        if self._validator is None:
            self._validator = DyskValidator(self.store, endpoint_suffix=self.config.endpoint_suffix)
        return self._validator

    def _device_transport(self) -> DeviceTransport:
        return DeviceTransport(
            device_path=self.config.device_path,
            timeout=self.config.command_timeout,
            lock_path=self.config.lock_path,
            lock_timeout=self.config.lock_timeout,
        )

    def _exchange(self, transport: Transport, command: Command, payload: str) -> ModuleResponse:
        buffer = transport.execute(command, payload)
        res = parse_response(buffer)
        if res.is_error:
            logger.debug("Driver rejected %s: %s", command.name, res.response.rstrip("\n"))
        res.raise_for_error()
        return res

    # ---- Operations ----------------------------------------------------

    def mount(self, dysk: Dysk) -> Dysk:
        """Mount a disk, filling in derived fields and device numbers in place.

        Args:
            dysk: Descriptor with at least type, name, path and lease_id set

        Returns:
            The same descriptor, with ``major``/``minor`` assigned

        Raises:
            ValidationError: If a field is invalid (before any I/O)
            StorageError: If the blob or lease does not check out
            DriverError: If the driver refuses the mount
            OSError: If the control channel fails
        """
        dysk.account_name = self.account_name
        dysk.account_key = self.account_key
        self.validator.check_fields(dysk, require_sectors=False)

        with self._transport_factory() as transport:
            self.pre_mount(dysk)
            res = self._exchange(transport, Command.MOUNT, encode(dysk))
            mounted = decode(res.response)

        dysk.major = mounted.major
        dysk.minor = mounted.minor
        logger.info("Mounted %s as %d:%d", dysk.name, dysk.major, dysk.minor)
        return dysk

    def unmount(self, name: str) -> None:
        """Unmount a disk by name."""
        validate_name(name)
        with self._transport_factory() as transport:
            self._exchange(transport, Command.UNMOUNT, _name_payload(name))
        logger.info("Unmounted %s", name)

    def get(self, name: str) -> Dysk:
        """Fetch a mounted disk's descriptor from the driver."""
        validate_name(name)
        with self._transport_factory() as transport:
            dysk = self._get(transport, name)
        return self.post_get(dysk)

    def list(self) -> List[Dysk]:
        """Fetch descriptors for every mounted disk.

        The first failing get aborts the whole listing.
        """
        with self._transport_factory() as transport:
            res = self._exchange(transport, Command.LIST, LIST_PAYLOAD)
            # Names are newline terminated; the final segment is never a name.
            # Empty names carry no disk and are not queried.
            names = [n for n in res.response.split("\n")[:-1] if n]

            dysks = []
            for name in names:
                dysks.append(self.post_get(self._get(transport, name)))
        return dysks

    def create_page_blob(self, size_gb: int, container: str, name: str, vhd: bool = False) -> str:
        """Provision a leased page blob; returns the lease id."""
        return create_page_blob(self.store, size_gb, container, name, vhd)

    # ---- Size reconciliation -------------------------------------------

    def pre_mount(self, dysk: Dysk) -> Dysk:
        """Size the descriptor from its blob, then run full validation."""
        container, blob = self.validator.check_exists(dysk)
        props = self.store.get_properties(container, blob, lease_id=dysk.lease_id)

        byte_size = props.size
        dysk.size_gb = byte_size // GIB
        if dysk.vhd:
            byte_size -= VHD_HEADER_SIZE
        dysk.sector_count = max(byte_size, 0) // SECTOR_SIZE
        logger.debug("Sized %s at %d sectors (%d bytes)", dysk.name, dysk.sector_count, props.size)

        self.validator.validate(dysk)
        return dysk

    @staticmethod
    def post_get(dysk: Dysk) -> Dysk:
        """Recompute ``size_gb`` from the driver's sector count."""
        byte_size = dysk.sector_count * SECTOR_SIZE
        if dysk.vhd:
            byte_size += VHD_HEADER_SIZE
        dysk.size_gb = byte_size // GIB
        return dysk

    def _get(self, transport: Transport, name: str) -> Dysk:
        res = self._exchange(transport, Command.GET, _name_payload(name))
        return decode(res.response)
