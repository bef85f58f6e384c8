"""Storage package for the page blobs backing dysk disks."""

from .azure import AzurePageBlobStore
from .base import PageBlobStore
from .factory import make_page_blob_store
from .fs import FilesystemPageBlobStore

__all__ = [
    "AzurePageBlobStore",
    "FilesystemPageBlobStore",
    "PageBlobStore",
    "make_page_blob_store",
]
