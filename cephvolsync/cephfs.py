"""Path and filesystem lookups used for CephFS snapshot diffs."""

from __future__ import annotations

from typing import Any, Iterable

from .errors import KeyNotFoundError


def _clean(path: str) -> str:
    """Lexically clean a slash separated path."""
    if not path:
        return "."
    rooted = path.startswith("/")
    parts: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not rooted:
                parts.append(part)
            continue
        parts.append(part)
    cleaned = "/".join(parts)
    if rooted:
        return "/" + cleaned
    return cleaned or "."


def _dirname(path: str) -> str:
    return _clean(path[: path.rfind("/") + 1])


def _basename(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped[stripped.rfind("/") + 1 :]


def _join(*elements: str) -> str:
    joined = "/".join(e for e in elements if e)
    return _clean(joined) if joined else ""


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry[name]
    return getattr(entry, name)


def get_fs_name(volumes: Iterable[Any], location_id: int) -> str:
    """Return the name of the filesystem whose ID is location_id.

    ``volumes`` holds mappings with "name" and "id" keys or objects with
    ``name`` and ``id`` attributes. Raises KeyNotFoundError if none matches.
    """
    for volume in volumes:
        if _field(volume, "id") == location_id:
            return _field(volume, "name")
    raise KeyNotFoundError()


def split_subvolume_path(subvolume_path: str) -> tuple[str, str]:
    """Split a subvolume path into the mount root and its UUID directory."""
    return _dirname(subvolume_path), _basename(subvolume_path)


def substitute_rel_path(uuid_dir: str, entry_path: str, local_rel_path: str) -> str:
    """Replace the UUID directory prefix of entry_path with local_rel_path."""
    relative = entry_path[len(uuid_dir):] if entry_path.startswith(uuid_dir) else entry_path
    if relative.startswith("/"):
        relative = relative[1:]
    return _join(local_rel_path, relative)