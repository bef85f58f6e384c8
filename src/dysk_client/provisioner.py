"""Page blob provisioning ahead of a first mount."""

import logging

from .constants import GIB
from .storage.base import PageBlobStore
from .vhd import VHD_HEADER_SIZE, create_fixed_header

logger = logging.getLogger(__name__)


def create_page_blob(
    store: PageBlobStore,
    size_gb: int,
    container: str,
    name: str,
    vhd: bool = False,
) -> str:
    """Create a page blob for a new disk and lease it.

    Steps: ensure the container exists, create the blob at exactly
    ``size_gb`` GiB, stamp a fixed VHD footer over its last 512 bytes when
    ``vhd`` is set, then acquire an infinite lease.

    Any store error aborts the sequence and propagates. Nothing is rolled
    back, so a failure after creation leaves the blob in place.

    Args:
        store: Page blob store
        size_gb: Blob size in GiB
        container: Container name (created if absent)
        name: Blob name
        vhd: Whether to write a VHD footer at the tail

    Returns:
        Lease id identifying this client as the blob's owner
    """
    if size_gb < 1:
        raise ValueError(f"Page blob size must be at least 1 GiB, got {size_gb}")

    size_bytes = size_gb * GIB

    if store.create_container_if_absent(container):
        logger.info("Created container %s", container)

    store.create_page_blob(container, name, size_bytes)
    logger.info("Created page blob %s/%s (%dGiB)", container, name, size_gb)

    if vhd:
        header = create_fixed_header(size_bytes - VHD_HEADER_SIZE)
        store.write_range(container, name, size_bytes - VHD_HEADER_SIZE, header)
        logger.info("Wrote VHD footer for page blob %s/%s", container, name)

    lease_id = store.acquire_lease(container, name)
    logger.debug("Acquired lease on %s/%s", container, name)
    return lease_id
