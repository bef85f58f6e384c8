"""Factory for creating page blob store instances."""

from pathlib import Path

from ..config import ClientConfig
from ..errors import ConfigError
from .azure import AzurePageBlobStore
from .base import PageBlobStore
from .fs import FilesystemPageBlobStore


def make_page_blob_store(config: ClientConfig) -> PageBlobStore:
    """
    Create page blob store instance based on configuration.

    Args:
        config: Client configuration

    Returns:
        PageBlobStore instance

    Raises:
        ConfigError: If configuration is invalid
        NotImplementedError: If provider is not supported
    """
    if config.storage_provider == "azure":
        config.require_credentials()
        return AzurePageBlobStore(
            config.account_name, config.account_key, config.endpoint_suffix
        )

    elif config.storage_provider == "fs":
        if not config.storage_root:
            raise ConfigError("storage_root (directory path) required for filesystem storage")
        return FilesystemPageBlobStore(Path(config.storage_root))

    else:
        raise NotImplementedError(f"Provider {config.storage_provider} not supported")
