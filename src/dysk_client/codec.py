"""Wire codec between ``Dysk`` descriptors and the driver's text format.

The driver speaks a positional protocol: one field per line, in a fixed
order, each terminated by a newline. Both layouts live here and are shared
by the encoder and the decoder; changing either requires a new format tag.

Requests carry ten descriptor fields::

    type, name, sector_count, account_name, account_key,
    path, host, ip, lease_id, vhd(0|1)

Responses describing a disk place the driver-assigned device numbers ahead
of the vhd flag::

    type, name, sector_count, account_name, account_key,
    path, host, ip, lease_id, major, minor, vhd(0|1)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .errors import WireFormatError
from .models import Dysk

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\n"


@dataclass(frozen=True)
class WireField:
    """One positional field of the wire format."""
    name: str
    kind: type
    lenient: bool = False   # Parse failures fall back to the default


@dataclass(frozen=True)
class WireSchema:
    """Ordered set of typed fields identified by a format tag."""
    tag: str
    fields: Tuple[WireField, ...]


_DESCRIPTOR_FIELDS = (
    WireField("type", str),
    WireField("name", str),
    WireField("sector_count", int, lenient=True),
    WireField("account_name", str),
    WireField("account_key", str),
    WireField("path", str),
    WireField("host", str),
    WireField("ip", str),
    WireField("lease_id", str),
)

DYSK_SCHEMA = WireSchema(
    tag="dysk/v1",
    fields=_DESCRIPTOR_FIELDS + (WireField("vhd", bool),),
)

RESPONSE_SCHEMA = WireSchema(
    tag="dysk/v1",
    fields=_DESCRIPTOR_FIELDS + (
        WireField("major", int),
        WireField("minor", int),
        WireField("vhd", bool),
    ),
)


def _format_field(field: WireField, value: Any) -> str:
    if value is None:
        raise WireFormatError(f"Field '{field.name}' is required")
    if field.kind is bool:
        return "1" if value else "0"
    text = str(int(value)) if field.kind is int else str(value)
    if FIELD_SEPARATOR in text:
        raise WireFormatError(f"Field '{field.name}' must not contain a newline")
    return text


def _parse_field(field: WireField, raw: str) -> Any:
    if field.kind is str:
        return raw

    if field.kind is bool:
        if raw not in ("0", "1"):
            raise WireFormatError(f"Field '{field.name}' must be 0 or 1, got {raw!r}")
        return raw == "1"

    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is not None and field.lenient and value < 0:
        value = None

    if value is None:
        if field.lenient:
            logger.warning("Ignoring unparseable %s %r, defaulting to 0", field.name, raw)
            return 0
        raise WireFormatError(f"Field '{field.name}' is not an integer: {raw!r}")
    return value


def encode(dysk: Dysk, schema: WireSchema = DYSK_SCHEMA) -> str:
    """Serialize a descriptor, one field per line, with a trailing newline.

    Args:
        dysk: Descriptor to serialize
        schema: Field layout (requests use ``DYSK_SCHEMA``)

    Returns:
        Newline-delimited text ready to be placed in a command buffer

    Raises:
        WireFormatError: If a field value contains a newline
    """
    parts = [_format_field(f, getattr(dysk, f.name)) for f in schema.fields]
    return "".join(p + FIELD_SEPARATOR for p in parts)


def decode(payload: str, schema: WireSchema = RESPONSE_SCHEMA) -> Dysk:
    """Parse a driver payload back into a descriptor.

    A malformed sector count is tolerated (defaults to 0); malformed device
    numbers or vhd flag are fatal.

    Args:
        payload: Text following the status line of a driver response
        schema: Field layout (responses use ``RESPONSE_SCHEMA``)

    Returns:
        Decoded descriptor

    Raises:
        WireFormatError: If required fields are missing or malformed
    """
    segments = payload.split(FIELD_SEPARATOR)
    if len(segments) < len(schema.fields):
        raise WireFormatError(
            f"Expected at least {len(schema.fields)} fields for {schema.tag}, "
            f"got {len(segments)}"
        )

    values: Dict[str, Any] = {}
    for idx, field in enumerate(schema.fields):
        values[field.name] = _parse_field(field, segments[idx])

    return Dysk(**values)
