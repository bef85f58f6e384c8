"""Data models for dysk-client.

A ``Dysk`` is the unit of work for every client operation. Callers build one
with a subset of fields for mount; the client fills in the derived fields
(sector count, host, ip) before the descriptor is sent to the driver, and the
driver assigns the device numbers.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class DyskType(str, Enum):
    """Access mode of a mounted disk."""
    READ_ONLY = "R"
    READ_WRITE = "RW"


class Dysk(BaseModel):
    """Disk descriptor exchanged with the driver."""

    # Kept as a plain string so invalid modes reach the validator
    type: str
    name: str = ""
    sector_count: int = 0
    size_gb: int = 0
    account_name: str = ""
    account_key: str = Field(default="", repr=False)
    path: str = ""                 # /container/blobName
    host: str = ""
    ip: str = ""
    lease_id: str = ""
    vhd: bool = False
    major: Optional[int] = None    # Assigned by the driver on mount
    minor: Optional[int] = None

    @property
    def is_read_only(self) -> bool:
        return self.type == DyskType.READ_ONLY.value


class PageBlobProperties(BaseModel):
    """Subset of blob properties the client reconciles against."""

    size: int                                          # Content length in bytes
    blob_type: str                                     # "PageBlob", "BlockBlob", ...
    metadata: Dict[str, str] = Field(default_factory=dict)
    lease_state: Optional[str] = None
