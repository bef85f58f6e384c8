"""Lifecycle validation for dysk descriptors.

Validation runs before every mount and short-circuits on the first
violation. Field checks are local; the last two steps resolve the storage
host and confirm against the page blob store that the blob exists, is a page
blob, and that the lease grants the requested access.
"""

import base64
import binascii
import logging
import posixpath
import socket
from typing import Callable, Tuple

from azure.core.exceptions import HttpResponseError

from .constants import (
    DEFAULT_ENDPOINT_SUFFIX,
    LEASE_CHECK_METADATA,
    MAX_ACCOUNT_KEY_LEN,
    MAX_ACCOUNT_NAME_LEN,
    MAX_HOST_LEN,
    MAX_LEASE_ID_LEN,
    MAX_NAME_LEN,
    MAX_PATH_LEN,
    PAGE_BLOB_TYPE,
)
from .errors import (
    BlobNotFoundError,
    ContainerNotFoundError,
    HostResolutionError,
    InvalidAccountKeyError,
    InvalidAccountNameError,
    InvalidHostError,
    InvalidLeaseError,
    InvalidNameError,
    InvalidPathError,
    InvalidSectorCountError,
    InvalidTypeError,
    LeaseError,
    NotPageBlobError,
    StorageError,
)
from .models import Dysk, DyskType, PageBlobProperties
from .storage.base import PageBlobStore

logger = logging.getLogger(__name__)

FORBIDDEN_NAME_CHARS = ("/", "\\", ".", "\n", "\0")


def validate_name(name: str) -> None:
    """Check a device name's shape.

    Raises:
        InvalidNameError: If the name is empty, too long, or has a forbidden character
    """
    if not name or len(name) > MAX_NAME_LEN:
        raise InvalidNameError(f"Invalid name. Must be 1-{MAX_NAME_LEN} characters")
    if any(c in name for c in FORBIDDEN_NAME_CHARS):
        raise InvalidNameError("Invalid name. Must not contain \\ / .")


def validate_account_key(key: str) -> None:
    if not key or len(key) > MAX_ACCOUNT_KEY_LEN:
        raise InvalidAccountKeyError(
            f"Invalid account key. Must be 1-{MAX_ACCOUNT_KEY_LEN} characters"
        )
    try:
        base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAccountKeyError(
            f"Invalid account key. Must be a base64 encoded string. Error: {e}"
        ) from e


def split_blob_path(path: str) -> Tuple[str, str]:
    """Split ``/container/blob`` into container and blob names.

    Raises:
        InvalidPathError: If either part is missing
    """
    container = posixpath.dirname(path).lstrip("/")
    blob = posixpath.basename(path)
    if not path.startswith("/") or not container or not blob:
        raise InvalidPathError(f"Invalid path '{path}'. Must be /container/blob")
    return container, blob


def resolve_host(host: str) -> str:
    """Resolve a host name to its first address.

    Raises:
        HostResolutionError: If the lookup fails
    """
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, UnicodeError) as e:
        raise HostResolutionError(host) from e
    if not infos:
        raise HostResolutionError(host)
    return infos[0][4][0]


class DyskValidator:
    """Validates descriptors and reconciles them with the page blob store."""

    def __init__(
        self,
        store: PageBlobStore,
        endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX,
        resolver: Callable[[str], str] = resolve_host,
    ):
        """Initialize validator.

        Args:
            store: Page blob store used for lease validation
            endpoint_suffix: DNS suffix used to derive the storage host
            resolver: Host name to address lookup
        """
        self.store = store
        self.endpoint_suffix = endpoint_suffix
        self.resolver = resolver

    def check_fields(self, dysk: Dysk, require_sectors: bool = True) -> None:
        """Run the local field checks, deriving ``host`` when absent.

        Args:
            dysk: Descriptor to check (host may be filled in)
            require_sectors: Whether a zero sector count is a violation

        Raises:
            ValidationError: On the first violated field
        """
        if dysk.type not in (DyskType.READ_ONLY.value, DyskType.READ_WRITE.value):
            raise InvalidTypeError(dysk.type)

        validate_name(dysk.name)

        if require_sectors and dysk.sector_count <= 0:
            raise InvalidSectorCountError()

        if not dysk.account_name or len(dysk.account_name) > MAX_ACCOUNT_NAME_LEN:
            raise InvalidAccountNameError(
                f"Invalid account name. Must be 1-{MAX_ACCOUNT_NAME_LEN} characters"
            )

        validate_account_key(dysk.account_key)

        if not dysk.path or len(dysk.path) > MAX_PATH_LEN:
            raise InvalidPathError(f"Invalid path. Must be 1-{MAX_PATH_LEN} characters")
        split_blob_path(dysk.path)

        if dysk.host:
            if len(dysk.host) > MAX_HOST_LEN:
                raise InvalidHostError(f"Invalid host. Must be <= {MAX_HOST_LEN} characters")
        else:
            dysk.host = f"{dysk.account_name}.blob.{self.endpoint_suffix}"

        if not dysk.lease_id or len(dysk.lease_id) > MAX_LEASE_ID_LEN:
            raise InvalidLeaseError(
                f"Invalid lease id. Must be 1-{MAX_LEASE_ID_LEN} characters"
            )

    def validate(self, dysk: Dysk) -> None:
        """Full pre-mount validation: fields, host resolution, then lease.

        Fills in ``host`` and ``ip`` on the descriptor.
        """
        self.check_fields(dysk)
        dysk.ip = self.resolver(dysk.host)
        logger.debug("Resolved %s to %s", dysk.host, dysk.ip)
        self.validate_lease(dysk)

    def check_exists(self, dysk: Dysk) -> Tuple[str, str]:
        """Confirm the container and blob named by ``path`` exist.

        Returns:
            The (container, blob) names

        Raises:
            ContainerNotFoundError: If the container is missing
            BlobNotFoundError: If the blob is missing
        """
        container, blob = split_blob_path(dysk.path)
        if not self.store.container_exists(container):
            raise ContainerNotFoundError(dysk.path)
        if not self.store.blob_exists(container, blob):
            raise BlobNotFoundError(dysk.path)
        return container, blob

    def validate_lease(self, dysk: Dysk) -> PageBlobProperties:
        """Confirm the blob exists, is a page blob, and the lease grants access.

        Read-write disks additionally check write access with a metadata
        write under the lease.

        Raises:
            ContainerNotFoundError: If the container is missing
            BlobNotFoundError: If the blob is missing
            NotPageBlobError: If the blob is not a page blob
            LeaseError: If the lease does not grant write access
        """
        container, blob = self.check_exists(dysk)
        props = self.store.get_properties(container, blob, lease_id=dysk.lease_id)
        if props.blob_type != PAGE_BLOB_TYPE:
            raise NotPageBlobError(dysk.path, props.blob_type)

        if dysk.is_read_only:
            return props

        metadata = dict(props.metadata)
        metadata.update(LEASE_CHECK_METADATA)
        try:
            self.store.set_metadata(container, blob, metadata, lease_id=dysk.lease_id)
        except (HttpResponseError, StorageError) as e:
            raise LeaseError(
                f"Lease {dysk.lease_id} does not grant write access to {dysk.path}: {e}"
            ) from e
        return props
