"""Azure page blob store implementation."""

import logging
from typing import Dict, Optional

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import BlobServiceClient

from ..constants import DEFAULT_ENDPOINT_SUFFIX
from ..models import PageBlobProperties

logger = logging.getLogger(__name__)


def account_url(account_name: str, endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX) -> str:
    """Blob service URL for a storage account."""
    return f"https://{account_name}.blob.{endpoint_suffix}"


class AzurePageBlobStore:
    """
    Azure Blob Storage implementation using shared key authentication.
    """

    def __init__(
        self,
        account_name: str,
        account_key: str,
        endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX,
        client: Optional[BlobServiceClient] = None,
    ):
        """
        Initialize Azure page blob store.

        Args:
            account_name: Storage account name
            account_key: Storage account key (base64)
            endpoint_suffix: DNS suffix of the storage cloud
            client: Pre-built service client (mainly for tests)
        """
        self.account_name = account_name
        if client is None:
            client = BlobServiceClient(
                account_url=account_url(account_name, endpoint_suffix),
                credential={"account_name": account_name, "account_key": account_key},
            )
        self.client = client

    def _blob(self, container: str, blob: str):
        return self.client.get_blob_client(container=container, blob=blob)

    def container_exists(self, container: str) -> bool:
        return self.client.get_container_client(container).exists()

    def create_container_if_absent(self, container: str) -> bool:
        container_client = self.client.get_container_client(container)
        if container_client.exists():
            return False
        try:
            container_client.create_container()
        except ResourceExistsError:
            # Created concurrently between the check and the create
            return False
        logger.debug("Created container %s in account %s", container, self.account_name)
        return True

    def blob_exists(self, container: str, blob: str) -> bool:
        return self._blob(container, blob).exists()

    def create_page_blob(self, container: str, blob: str, size: int) -> None:
        self._blob(container, blob).create_page_blob(size=size)

    def write_range(self, container: str, blob: str, offset: int, data: bytes) -> None:
        self._blob(container, blob).upload_page(data, offset=offset, length=len(data))

    def acquire_lease(self, container: str, blob: str) -> str:
        lease = self._blob(container, blob).acquire_lease(lease_duration=-1)
        return lease.id

    def get_properties(
        self, container: str, blob: str, lease_id: Optional[str] = None
    ) -> PageBlobProperties:
        props = self._blob(container, blob).get_blob_properties(lease=lease_id)
        blob_type = getattr(props.blob_type, "value", props.blob_type)
        lease = getattr(props, "lease", None)
        lease_state = getattr(lease, "state", None) if lease is not None else None
        return PageBlobProperties(
            size=props.size,
            blob_type=str(blob_type),
            metadata=dict(props.metadata or {}),
            lease_state=str(lease_state) if lease_state is not None else None,
        )

    def set_metadata(
        self, container: str, blob: str, metadata: Dict[str, str], lease_id: Optional[str] = None
    ) -> None:
        self._blob(container, blob).set_blob_metadata(metadata=metadata, lease=lease_id)
