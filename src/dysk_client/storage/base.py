"""Base protocol for page blob store implementations."""

from typing import Dict, Optional, Protocol

from ..models import PageBlobProperties


class PageBlobStore(Protocol):
    """
    Protocol for the object store backing dysk disks.

    Covers exactly the operations the client needs: existence checks,
    provisioning, the tail range write, leasing, and lease-scoped property
    reads and metadata writes. Errors from the underlying service propagate
    to the caller unmodified.
    """

    def container_exists(self, container: str) -> bool:
        ...

    def create_container_if_absent(self, container: str) -> bool:
        """
        Create a container unless it already exists.

        Returns:
            True if the container was created
        """
        ...

    def blob_exists(self, container: str, blob: str) -> bool:
        ...

    def create_page_blob(self, container: str, blob: str, size: int) -> None:
        """
        Create a page blob of a fixed size.

        Args:
            container: Container name
            blob: Blob name
            size: Size in bytes (multiple of 512)
        """
        ...

    def write_range(self, container: str, blob: str, offset: int, data: bytes) -> None:
        """
        Write bytes at an offset of an existing page blob.

        Offset and length must be 512 byte aligned.
        """
        ...

    def acquire_lease(self, container: str, blob: str) -> str:
        """
        Acquire an infinite lease on a blob.

        Returns:
            The lease id
        """
        ...

    def get_properties(
        self, container: str, blob: str, lease_id: Optional[str] = None
    ) -> PageBlobProperties:
        """
        Read blob properties, presenting ``lease_id`` when given.

        A lease id that does not match the blob's active lease is rejected.
        """
        ...

    def set_metadata(
        self, container: str, blob: str, metadata: Dict[str, str], lease_id: Optional[str] = None
    ) -> None:
        """
        Replace blob metadata under ``lease_id``.

        Used to check that the lease grants write access.
        """
        ...
