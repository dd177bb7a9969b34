"""Writing of a minimal ceph.conf and keyring for the Ceph client tools."""

from __future__ import annotations

import os
from pathlib import Path

CEPH_CONFIG_ROOT = "/etc/ceph"
CEPH_CONFIG_NAME = "ceph.conf"
KEYRING_NAME = "keyring"
CEPH_CONFIG_PATH = f"{CEPH_CONFIG_ROOT}/{CEPH_CONFIG_NAME}"

CEPH_CONFIG = """[global]
auth_cluster_required = cephx
auth_service_required = cephx
auth_client_required = cephx

# Prevent indefinite hangs on OSD/MDS operations
rados_osd_op_timeout = 30
rados_mon_op_timeout = 30
client_mount_timeout = 30
"""


def _write_if_missing(path: Path, content: bytes) -> None:
    if path.exists():
        return
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(content)


def write_ceph_config(config_root: str | os.PathLike = CEPH_CONFIG_ROOT) -> Path:
    """Create ceph.conf and an empty keyring under config_root unless present.

    Existing files are left untouched. Returns the path of ceph.conf.
    """
    root = Path(config_root)
    root.mkdir(mode=0o755, parents=True, exist_ok=True)

    config_path = root / CEPH_CONFIG_NAME
    _write_if_missing(config_path, CEPH_CONFIG.encode())
    _write_if_missing(root / KEYRING_NAME, b"")
    return config_path