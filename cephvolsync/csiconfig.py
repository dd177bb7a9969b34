"""Lookup of per-cluster settings in the ceph-csi JSON configuration.

The configuration is a JSON list of cluster entries::

    [{
        "clusterID": "<cluster-id>",
        "monitors": ["<monitor>", "<monitor>"],
        "rbd": {"radosNamespace": "<namespace>"},
        "cephFS": {"subvolumeGroup": "<subvolumegroup>"}
    }]
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

DEFAULT_CSI_SUBVOLUME_GROUP = "csi"
DEFAULT_CSI_CEPHFS_RADOS_NAMESPACE = "csi"
CSI_CONFIG_FILE = "/etc/ceph-csi-config/config.json"
CLUSTER_ID_KEY = "clusterID"


class ConfigNotFoundError(LookupError):
    """No configuration entry exists for the requested cluster ID."""

    def __init__(self, cluster_id: str):
        super().__init__(f"missing configuration for cluster ID: {cluster_id!r}")
        self.cluster_id = cluster_id


class ClusterIDNotSetError(LookupError):
    """The options carry no cluster ID."""

    def __init__(self, message: str = "clusterID must be set"):
        super().__init__(message)


_JSON_TYPES = {
    dict: "object",
    list: "array",
    str: "string",
    bool: "bool",
    int: "number",
    float: "number",
}


def _json_type(value: Any) -> str:
    return _JSON_TYPES.get(type(value), type(value).__name__)


def _member(obj: Mapping[str, Any], key: str) -> Any:
    """Return obj[key], falling back to a case-insensitive match of the key."""
    if key in obj:
        return obj[key]
    folded = key.casefold()
    for name, value in obj.items():
        if name.casefold() == folded:
            return value
    return None


def _object(value: Any, where: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"cannot unmarshal {_json_type(value)} into {where}")
    return value


def _string(obj: Mapping[str, Any], key: str, where: str) -> str:
    value = _member(obj, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"cannot unmarshal {_json_type(value)} into {where}.{key}")
    return value


def _strings(obj: Mapping[str, Any], key: str, where: str) -> tuple[str, ...]:
    value = _member(obj, key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValueError(f"cannot unmarshal {_json_type(value)} into {where}.{key}")
    for item in value:
        if not isinstance(item, str):
            raise ValueError(
                f"cannot unmarshal {_json_type(item)} into {where}.{key} element"
            )
    return tuple(value)


@dataclass(frozen=True)
class SecretRef:
    """Name and namespace of a Kubernetes secret."""

    name: str = ""
    namespace: str = ""


def _secret_ref(obj: Mapping[str, Any], where: str) -> SecretRef:
    ref = _object(_member(obj, "controllerPublishSecretRef"), where)
    return SecretRef(
        name=_string(ref, "name", where),
        namespace=_string(ref, "namespace", where),
    )


@dataclass(frozen=True)
class ClusterInfo:
    """Settings of one cluster entry in the ceph-csi configuration."""

    cluster_id: str = ""
    monitors: tuple[str, ...] = ()
    rbd_rados_namespace: str = ""
    rbd_controller_publish_secret_ref: SecretRef = field(default_factory=SecretRef)
    cephfs_subvolume_group: str = ""
    cephfs_rados_namespace: str = ""
    cephfs_controller_publish_secret_ref: SecretRef = field(default_factory=SecretRef)

    @classmethod
    def from_dict(cls, data: Any) -> ClusterInfo:
        """Build from one decoded JSON entry; raise ValueError on wrong types."""
        entry = _object(data, "ClusterInfo")
        rbd = _object(_member(entry, "rbd"), "ClusterInfo.rbd")
        cephfs = _object(_member(entry, "cephFS"), "ClusterInfo.cephFS")
        return cls(
            cluster_id=_string(entry, "clusterID", "ClusterInfo"),
            monitors=_strings(entry, "monitors", "ClusterInfo"),
            rbd_rados_namespace=_string(rbd, "radosNamespace", "ClusterInfo.rbd"),
            rbd_controller_publish_secret_ref=_secret_ref(
                rbd, "ClusterInfo.rbd.controllerPublishSecretRef"
            ),
            cephfs_subvolume_group=_string(cephfs, "subvolumeGroup", "ClusterInfo.cephFS"),
            cephfs_rados_namespace=_string(cephfs, "radosNamespace", "ClusterInfo.cephFS"),
            cephfs_controller_publish_secret_ref=_secret_ref(
                cephfs, "ClusterInfo.cephFS.controllerPublishSecretRef"
            ),
        )


def read_cluster_info_from_data(data: bytes | str, cluster_id: str) -> ClusterInfo:
    """Parse raw JSON configuration and return the entry for cluster_id.

    Raises ValueError for malformed data and ConfigNotFoundError when no
    entry carries the cluster ID.
    """
    text = data.decode() if isinstance(data, (bytes, bytearray)) else data
    try:
        raw = json.loads(text)
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ValueError(f"cannot unmarshal {_json_type(raw)} into []ClusterInfo")
        clusters = [ClusterInfo.from_dict(entry) for entry in raw]
    except ValueError as exc:
        raise ValueError(f"unmarshal failed ({exc}), raw buffer response: {text}") from exc

    for cluster in clusters:
        if cluster.cluster_id == cluster_id:
            return cluster
    raise ConfigNotFoundError(cluster_id)


def _read_cluster_info(path_to_config: str | os.PathLike, cluster_id: str) -> ClusterInfo:
    content = Path(path_to_config).read_bytes()
    return read_cluster_info_from_data(content, cluster_id)


def mons(path_to_config: str | os.PathLike, cluster_id: str) -> str:
    """Return the comma separated monitor list of the cluster."""
    cluster = _read_cluster_info(path_to_config, cluster_id)
    if not cluster.monitors:
        raise ValueError(f"empty monitor list for cluster ID ({cluster_id}) in config")
    return ",".join(cluster.monitors)


def get_rbd_rados_namespace(path_to_config: str | os.PathLike, cluster_id: str) -> str:
    """Return the RADOS namespace used for RBD volumes of the cluster."""
    return _read_cluster_info(path_to_config, cluster_id).rbd_rados_namespace


def get_cephfs_rados_namespace(path_to_config: str | os.PathLike, cluster_id: str) -> str:
    """Return the RADOS namespace for CephFS volumes, "csi" when unset."""
    cluster = _read_cluster_info(path_to_config, cluster_id)
    return cluster.cephfs_rados_namespace or DEFAULT_CSI_CEPHFS_RADOS_NAMESPACE


def cephfs_subvolume_group(path_to_config: str | os.PathLike, cluster_id: str) -> str:
    """Return the subvolume group for CephFS volumes, "csi" when unset."""
    cluster = _read_cluster_info(path_to_config, cluster_id)
    return cluster.cephfs_subvolume_group or DEFAULT_CSI_SUBVOLUME_GROUP


def get_cluster_id(options: Mapping[str, str]) -> str:
    """Return the cluster ID held in options under "clusterID"."""
    try:
        return options[CLUSTER_ID_KEY]
    except KeyError:
        raise ClusterIDNotSetError() from None


def get_rbd_controller_publish_secret_ref(
    path_to_config: str | os.PathLike, cluster_id: str
) -> tuple[str, str]:
    """Return (name, namespace) of the RBD controller publish secret."""
    ref = _read_cluster_info(path_to_config, cluster_id).rbd_controller_publish_secret_ref
    return ref.name, ref.namespace


def get_cephfs_controller_publish_secret_ref(
    path_to_config: str | os.PathLike, cluster_id: str
) -> tuple[str, str]:
    """Return (name, namespace) of the CephFS controller publish secret."""
    ref = _read_cluster_info(path_to_config, cluster_id).cephfs_controller_publish_secret_ref
    return ref.name, ref.namespace


def get_rbd_controller_publish_secret_ref_from_data(
    data: bytes | str, cluster_id: str
) -> tuple[str, str]:
    """Return (name, namespace) of the RBD controller publish secret from raw JSON."""
    ref = read_cluster_info_from_data(data, cluster_id).rbd_controller_publish_secret_ref
    return ref.name, ref.namespace


def get_cephfs_controller_publish_secret_ref_from_data(
    data: bytes | str, cluster_id: str
) -> tuple[str, str]:
    """Return (name, namespace) of the CephFS controller publish secret from raw JSON."""
    ref = read_cluster_info_from_data(data, cluster_id).cephfs_controller_publish_secret_ref
    return ref.name, ref.namespace