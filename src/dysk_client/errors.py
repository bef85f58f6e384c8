"""Custom exceptions for dysk-client.

Low-level control channel failures are not represented here: the ``OSError``
raised by the device open or the ioctl reaches the caller unmodified.
"""


class DyskError(RuntimeError):
    """Base class for all dysk-client errors."""
    pass


# Validation Errors
class ValidationError(DyskError):
    """Descriptor field failed validation."""

    field = ""


class InvalidTypeError(ValidationError):
    field = "type"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid type '{value}'. Must be R or RW")


class InvalidNameError(ValidationError):
    field = "name"


class InvalidSectorCountError(ValidationError):
    field = "sector_count"

    def __init__(self):
        super().__init__("Invalid sector count. Size must be resolved before mount")


class InvalidAccountNameError(ValidationError):
    field = "account_name"


class InvalidAccountKeyError(ValidationError):
    field = "account_key"


class InvalidPathError(ValidationError):
    field = "path"


class InvalidHostError(ValidationError):
    field = "host"


class InvalidLeaseError(ValidationError):
    field = "lease_id"


class HostResolutionError(ValidationError):
    """Storage host could not be resolved to an address."""

    field = "host"

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"Cannot resolve host: {host}")


# Transport Errors
class TransportError(DyskError):
    """Base class for control channel errors raised by this package."""
    pass


class ChannelClosedError(TransportError):
    """Command issued on a transport that is not open."""

    def __init__(self):
        super().__init__("Device file is not open")


class ChannelTimeoutError(TransportError):
    """Driver did not answer a command in time."""

    def __init__(self, command: int, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command {command} did not complete within {timeout:g}s")


class PayloadTooLargeError(TransportError):
    """Payload does not fit in a command buffer."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Payload of {size} bytes exceeds the {limit} byte command buffer")


class UnknownCommandError(TransportError):
    """Command code outside the control channel's command set."""

    def __init__(self, code: int):
        self.code = code
        super().__init__(f"Unknown command code: {code}")


# Driver Errors
class DriverError(DyskError):
    """Driver answered with an ERR status; message is its payload."""
    pass


class WireFormatError(DyskError):
    """Descriptor could not be encoded to or decoded from the wire format."""
    pass


# Storage Errors
class StorageError(DyskError):
    """Base class for page blob store errors."""
    pass


class ContainerNotFoundError(StorageError):

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Container at {path} does not exist")


class BlobNotFoundError(StorageError):

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Blob at {path} does not exist")


class NotPageBlobError(StorageError):

    def __init__(self, path: str, blob_type: str):
        self.path = path
        self.blob_type = blob_type
        super().__init__(f"Blob at {path} is not a page blob (type: {blob_type})")


class LeaseError(StorageError):
    """Lease does not grant the requested access to the blob."""
    pass


# Configuration Errors
class ConfigError(DyskError):
    """Invalid or incomplete client configuration."""
    pass
