"""Control-plane client for dysk, the page blob backed block device."""

from .client import DyskClient
from .config import ClientConfig, load_client_config
from .errors import DriverError, DyskError, StorageError, ValidationError
from .models import Dysk, DyskType
from .transport import Command, DeviceTransport

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "Command",
    "DeviceTransport",
    "DriverError",
    "Dysk",
    "DyskClient",
    "DyskError",
    "DyskType",
    "StorageError",
    "ValidationError",
    "load_client_config",
]
