"""Helpers for RBD image specs, snapshots and changed-block regions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from .errors import CephError, KeyNotFoundError

_INVALID_SPEC = (
    "invalid imageSpec format, expected 'pool/imageName' or 'pool/radosNS/imageName'"
)

SnapshotListing = Union[Mapping[str, int], Iterable[Any]]


@dataclass(frozen=True)
class ChangeBlock:
    """A changed region of an image: byte offset and length."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class ImageSpec:
    """The location of an RBD image: pool, optional RADOS namespace, name."""

    pool_name: str
    image_name: str
    pool_namespace: str = ""

    @classmethod
    def from_string(cls, image_spec: str) -> ImageSpec:
        """Parse "pool/image" or "pool/namespace/image"."""
        parts = image_spec.split("/")
        if len(parts) not in (2, 3):
            raise ValueError(_INVALID_SPEC)
        namespace = parts[1] if len(parts) == 3 else ""
        return cls(pool_name=parts[0], image_name=parts[-1], pool_namespace=namespace)

    def to_string(self) -> str:
        """Return the "pool/[namespace/]image" form."""
        return rbd_image_spec(self.pool_name, self.pool_namespace, self.image_name)

    def __str__(self) -> str:
        return self.to_string()


def rbd_image_spec(pool: str, rados_ns: str, image_name: str) -> str:
    """Build a "pool/[ns/]image" string."""
    if rados_ns:
        return f"{pool}/{rados_ns}/{image_name}"
    return f"{pool}/{image_name}"


def parse_image_spec(image_spec: str) -> ImageSpec:
    """Parse an image spec string; raise ValueError if it is malformed."""
    return ImageSpec.from_string(image_spec)


def pool_name_by_id(conn: Any, pool_id: int) -> str:
    """Resolve a Ceph pool ID to its name through a cluster connection."""
    try:
        return conn.get_pool_by_id(pool_id)
    except Exception as exc:
        raise CephError(f"failed to resolve pool ID {pool_id}: {exc}") from exc


def _snapshot_pairs(snapshots: SnapshotListing) -> Iterable[tuple[str, int]]:
    if isinstance(snapshots, Mapping):
        yield from snapshots.items()
        return
    for snap in snapshots:
        if isinstance(snap, Mapping):
            yield snap["name"], snap["id"]
        elif isinstance(snap, tuple):
            name, snap_id = snap
            yield name, snap_id
        else:
            yield snap.name, snap.id


def snapshot_id_by_name(snapshots: SnapshotListing, snap_name: str) -> int:
    """Find the ID of the named snapshot among an image's snapshots.

    ``snapshots`` is a mapping of name to ID, or an iterable of
    ``(name, id)`` pairs, mappings with "name" and "id" keys, or objects
    with ``name`` and ``id`` attributes.
    """
    for name, snap_id in _snapshot_pairs(snapshots):
        if name == snap_name:
            return snap_id
    raise KeyNotFoundError(f"snapshot {snap_name!r} not found")