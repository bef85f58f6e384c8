"""Filesystem page blob store for tests and offline use."""

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import PAGE_BLOB_TYPE, SECTOR_SIZE
from ..errors import BlobNotFoundError, ContainerNotFoundError, LeaseError
from ..models import PageBlobProperties


class FilesystemPageBlobStore:
    """
    Local filesystem emulation of a page blob account (avoids Azurite dependency).

    Containers are directories under base_dir and blobs are sparse files.
    Blob type, metadata and lease live in a JSON sidecar under
    base_dir/.meta/<container>/<blob>.json. Lease checks follow the service:
    a leased blob rejects writes without its lease id, and any mismatched
    lease id is refused.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize filesystem store.

        Args:
            base_dir: Base directory for containers
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _data_path(self, container: str, blob: str) -> Path:
        return self.base_dir / container / blob

    def _meta_path(self, container: str, blob: str) -> Path:
        return self.base_dir / ".meta" / container / f"{blob}.json"

    def _load_meta(self, container: str, blob: str) -> Dict[str, Any]:
        if not self.blob_exists(container, blob):
            raise BlobNotFoundError(f"/{container}/{blob}")
        return json.loads(self._meta_path(container, blob).read_text())

    def _save_meta(self, container: str, blob: str, meta: Dict[str, Any]) -> None:
        path = self._meta_path(container, blob)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(meta, sort_keys=True))

    @staticmethod
    def _check_lease(meta: Dict[str, Any], lease_id: Optional[str], write: bool) -> None:
        active = meta.get("lease_id")
        if active is None:
            if lease_id:
                raise LeaseError("There is currently no lease on the blob")
            return
        if lease_id is None:
            if write:
                raise LeaseError("There is currently a lease on the blob and no lease ID was specified")
            return
        if lease_id != active:
            raise LeaseError("The lease ID specified did not match the lease ID for the blob")

    def container_exists(self, container: str) -> bool:
        return (self.base_dir / container).is_dir()

    def create_container_if_absent(self, container: str) -> bool:
        if self.container_exists(container):
            return False
        (self.base_dir / container).mkdir(parents=True)
        return True

    def blob_exists(self, container: str, blob: str) -> bool:
        return self._data_path(container, blob).is_file()

    def create_page_blob(self, container: str, blob: str, size: int) -> None:
        if not self.container_exists(container):
            raise ContainerNotFoundError(f"/{container}")
        if size % SECTOR_SIZE:
            raise ValueError(f"Page blob size must be a multiple of {SECTOR_SIZE}, got {size}")

        if self.blob_exists(container, blob):
            self._check_lease(self._load_meta(container, blob), None, write=True)

        with open(self._data_path(container, blob), "wb") as f:
            f.truncate(size)
        self._save_meta(container, blob, {
            "blob_type": PAGE_BLOB_TYPE,
            "metadata": {},
            "lease_id": None,
        })

    def write_range(self, container: str, blob: str, offset: int, data: bytes) -> None:
        meta = self._load_meta(container, blob)
        self._check_lease(meta, None, write=True)

        path = self._data_path(container, blob)
        size = path.stat().st_size
        if offset % SECTOR_SIZE or len(data) % SECTOR_SIZE:
            raise ValueError("Page writes must be 512 byte aligned")
        if offset + len(data) > size:
            raise ValueError(f"Range {offset}-{offset + len(data) - 1} is beyond blob size {size}")

        with open(path, "r+b") as f:
            f.seek(offset)
            f.write(data)

    def acquire_lease(self, container: str, blob: str) -> str:
        meta = self._load_meta(container, blob)
        if meta.get("lease_id"):
            raise LeaseError("There is already a lease present")
        meta["lease_id"] = str(uuid.uuid4())
        self._save_meta(container, blob, meta)
        return meta["lease_id"]

    def get_properties(
        self, container: str, blob: str, lease_id: Optional[str] = None
    ) -> PageBlobProperties:
        meta = self._load_meta(container, blob)
        self._check_lease(meta, lease_id, write=False)
        return PageBlobProperties(
            size=self._data_path(container, blob).stat().st_size,
            blob_type=meta["blob_type"],
            metadata=meta.get("metadata", {}),
            lease_state="leased" if meta.get("lease_id") else "available",
        )

    def set_metadata(
        self, container: str, blob: str, metadata: Dict[str, str], lease_id: Optional[str] = None
    ) -> None:
        meta = self._load_meta(container, blob)
        self._check_lease(meta, lease_id, write=True)
        meta["metadata"] = dict(metadata)
        self._save_meta(container, blob, meta)
