"""Encoding and decoding of CSI volume and snapshot identifiers.

Version 1 of the encoding is::

    [version:4 hex] - [len(clusterID):4 hex] - [clusterID] - [locationID:16 hex] - [uuid:36]

The fixed parts, separators included, add up to 64 bytes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_ENCODING_VERSION = 1
MAX_VOL_ID_LEN = 128
KNOWN_FIELD_SIZE = 64
UUID_SIZE = 36

_HEX = re.compile(rb"[0-9a-fA-F]*")
_UNDERFLOW = "failed to decode CSI identifier, string underflow"


def _decode_hex(field: bytes) -> int:
    if len(field) % 2 or not _HEX.fullmatch(field):
        raise ValueError(f"invalid hex field {field!r} in CSI identifier")
    return int.from_bytes(bytes.fromhex(field.decode("ascii")), "big")


@dataclass(frozen=True)
class CSIIdentifier:
    """The parts of a CSI ID: location (pool or fs ID), cluster and object UUID."""

    location_id: int
    cluster_id: str
    object_uuid: str
    encoding_version: int = 0

    def compose(self) -> str:
        """Return the encoded CSI ID string."""
        cluster = self.cluster_id.encode()
        if KNOWN_FIELD_SIZE + len(cluster) > MAX_VOL_ID_LEN:
            raise ValueError("CSI ID encoding length overflow")
        if len(self.object_uuid.encode()) != UUID_SIZE:
            raise ValueError("CSI ID invalid object uuid")

        version = self.encoding_version or DEFAULT_ENCODING_VERSION
        return "-".join(
            [
                f"{version & 0xFFFF:04x}",
                f"{len(cluster) & 0xFFFF:04x}",
                self.cluster_id,
                f"{self.location_id & 0xFFFFFFFFFFFFFFFF:016x}",
                self.object_uuid,
            ]
        )

    @classmethod
    def decompose(cls, composed: str) -> CSIIdentifier:
        """Parse an encoded CSI ID string; raise ValueError if it is malformed."""
        data = composed.encode()
        remaining = len(data)
        if remaining < KNOWN_FIELD_SIZE:
            raise ValueError(_UNDERFLOW)

        version = _decode_hex(data[0:4])
        remaining -= 5

        cluster_len = _decode_hex(data[5:9])
        remaining -= 5

        if remaining < cluster_len + 1:
            raise ValueError(_UNDERFLOW)
        cluster_id = data[10 : 10 + cluster_len].decode()
        remaining -= cluster_len + 1
        start = 10 + cluster_len + 1

        if remaining < 17:
            raise ValueError(_UNDERFLOW)
        location = _decode_hex(data[start : start + 16])
        if location >= 1 << 63:
            location -= 1 << 64
        remaining -= 17
        start += 17

        if remaining != UUID_SIZE:
            raise ValueError("failed to decode CSI identifier, string size mismatch")
        object_uuid = data[start : start + UUID_SIZE].decode()

        return cls(
            location_id=location,
            cluster_id=cluster_id,
            object_uuid=object_uuid,
            encoding_version=version,
        )