"""Fixed-disk VHD footer.

A fixed VHD is raw disk data followed by a 512 byte footer describing its
geometry. Page blobs marked as VHD carry this footer in their last 512 bytes,
so the usable disk is the blob minus ``VHD_HEADER_SIZE``.
"""

import struct
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

VHD_HEADER_SIZE = 512

VHD_COOKIE = b"conectix"
VHD_FEATURES = 0x00000002
VHD_FILE_FORMAT_VERSION = 0x00010000
VHD_FIXED_DATA_OFFSET = 0xFFFFFFFFFFFFFFFF
VHD_DISK_TYPE_FIXED = 2
VHD_CREATOR_APPLICATION = b"dysk"
VHD_CREATOR_VERSION = 0x00010000
VHD_CREATOR_HOST_OS = b"Wi2k"

# Seconds between the Unix epoch and 2000-01-01 00:00:00 UTC
VHD_EPOCH = int(datetime(2000, 1, 1, tzinfo=timezone.utc).timestamp())

_FOOTER = struct.Struct(">8sIIQI4sI4sQQHBBII16sB427x")
_CHECKSUM_OFFSET = 64

@dataclass
class VhdFooter:
    """Decoded VHD footer fields."""
    current_size: int
    original_size: int
    cylinders: int
    heads: int
    sectors_per_track: int
    disk_type: int
    timestamp: int
    unique_id: bytes
    checksum: int


def chs_geometry(capacity: int) -> Tuple[int, int, int]:
    """Compute (cylinders, heads, sectors per track) for a capacity in bytes.

    Follows the algorithm from the VHD format specification.
    """
    total_sectors = capacity // 512
    if total_sectors > 65535 * 16 * 255:
        total_sectors = 65535 * 16 * 255

    if total_sectors >= 65535 * 16 * 63:
        sectors_per_track = 255
        heads = 16
        cylinder_times_heads = total_sectors // sectors_per_track
    else:
        sectors_per_track = 17
        cylinder_times_heads = total_sectors // sectors_per_track
        heads = max((cylinder_times_heads + 1023) // 1024, 4)

        if cylinder_times_heads >= heads * 1024 or heads > 16:
            sectors_per_track = 31
            heads = 16
            cylinder_times_heads = total_sectors // sectors_per_track

        if cylinder_times_heads >= heads * 1024:
            sectors_per_track = 63
            heads = 16
            cylinder_times_heads = total_sectors // sectors_per_track

    return cylinder_times_heads // heads, heads, sectors_per_track


def footer_checksum(footer: bytes) -> int:
    """Ones' complement of the byte sum, with the checksum field taken as zero."""
    data = bytearray(footer)
    data[_CHECKSUM_OFFSET:_CHECKSUM_OFFSET + 4] = b"\0\0\0\0"
    return ~sum(data) & 0xFFFFFFFF


def create_fixed_header(
    capacity: int,
    timestamp: Optional[float] = None,
    unique_id: Optional[bytes] = None,
) -> bytes:
    """Build the footer for a fixed VHD exposing ``capacity`` bytes.

    Args:
        capacity: Size of the disk data in bytes (excluding the footer)
        timestamp: Creation time as a Unix timestamp (defaults to now)
        unique_id: 16 byte identifier (random by default)

    Returns:
        The 512 byte footer
    """
    if capacity <= 0 or capacity % 512:
        raise ValueError(f"VHD capacity must be a positive multiple of 512, got {capacity}")

    created = int(time.time() if timestamp is None else timestamp) - VHD_EPOCH
    cylinders, heads, sectors_per_track = chs_geometry(capacity)
    fields = [
        VHD_COOKIE,
        VHD_FEATURES,
        VHD_FILE_FORMAT_VERSION,
        VHD_FIXED_DATA_OFFSET,
        max(created, 0) & 0xFFFFFFFF,
        VHD_CREATOR_APPLICATION,
        VHD_CREATOR_VERSION,
        VHD_CREATOR_HOST_OS,
        capacity,
        capacity,
        cylinders,
        heads,
        sectors_per_track,
        VHD_DISK_TYPE_FIXED,
        0,
        unique_id or uuid.uuid4().bytes,
        0,
    ]
    footer = _FOOTER.pack(*fields)
    fields[14] = footer_checksum(footer)
    return _FOOTER.pack(*fields)


def parse_footer(data: bytes) -> VhdFooter:
    """Decode and verify a VHD footer.

    Raises:
        ValueError: If the cookie or checksum is wrong
    """
    if len(data) != VHD_HEADER_SIZE:
        raise ValueError(f"VHD footer must be {VHD_HEADER_SIZE} bytes, got {len(data)}")

    (cookie, _features, _version, _offset, stamp, _app, _app_version, _host_os,
     original_size, current_size, cylinders, heads, sectors_per_track,
     disk_type, checksum, unique_id, _saved_state) = _FOOTER.unpack(data)

    if cookie != VHD_COOKIE:
        raise ValueError(f"Not a VHD footer (cookie {cookie!r})")
    if checksum != footer_checksum(data):
        raise ValueError("VHD footer checksum mismatch")

    return VhdFooter(
        current_size=current_size,
        original_size=original_size,
        cylinders=cylinders,
        heads=heads,
        sectors_per_track=sectors_per_track,
        disk_type=disk_type,
        timestamp=stamp,
        unique_id=unique_id,
        checksum=checksum,
    )
