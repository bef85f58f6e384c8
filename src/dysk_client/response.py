"""Driver response parsing."""

from dataclasses import dataclass
from typing import Union

from .constants import ERROR_STATUS
from .errors import DriverError


@dataclass
class ModuleResponse:
    """Status and payload of one driver exchange."""
    is_error: bool
    response: str

    def raise_for_error(self) -> None:
        """Raise ``DriverError`` carrying the driver's message on failure."""
        if self.is_error:
            raise DriverError(self.response.rstrip("\n"))


def parse_response(buffer: Union[bytes, bytearray, str]) -> ModuleResponse:
    """Split a response buffer into status and payload.

    The buffer is read as text up to its zero padding. Everything before the
    first newline is the status token; ``ERR`` marks a failure. The rest is
    the payload.
    """
    if isinstance(buffer, (bytes, bytearray)):
        text = bytes(buffer).split(b"\0", 1)[0].decode("utf-8", errors="replace")
    else:
        text = buffer.split("\0", 1)[0]

    status, _, payload = text.partition("\n")
    return ModuleResponse(is_error=status == ERROR_STATUS, response=payload)
