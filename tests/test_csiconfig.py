import json

import pytest

from cephvolsync.csiconfig import (
    ClusterIDNotSetError,
    ClusterInfo,
    ConfigNotFoundError,
    SecretRef,
    cephfs_subvolume_group,
    get_cephfs_controller_publish_secret_ref,
    get_cephfs_controller_publish_secret_ref_from_data,
    get_cephfs_rados_namespace,
    get_cluster_id,
    get_rbd_controller_publish_secret_ref,
    get_rbd_controller_publish_secret_ref_from_data,
    get_rbd_rados_namespace,
    mons,
    read_cluster_info_from_data,
)

CLUSTER_ID1 = "test1"
CLUSTER_ID2 = "test2"


@pytest.fixture
def config_path(tmp_path):
    base = tmp_path / "test_artifacts"
    base.mkdir()
    return base / "csi-clusters.json"


def test_mons_missing_file(config_path):
    with pytest.raises(OSError):
        mons(config_path, CLUSTER_ID1)


def test_mons_empty_file(config_path):
    config_path.write_text("")
    with pytest.raises(ValueError):
        mons(config_path, CLUSTER_ID1)


def test_mons_malformed_cluster_id_key(config_path):
    config_path.write_text(
        '[{"clusterIDBad":"' + CLUSTER_ID2 + '","monitors":["mon1","mon2","mon3"]}]'
    )
    with pytest.raises(ConfigNotFoundError):
        mons(config_path, CLUSTER_ID2)


def test_mons_missing_monitors_key(config_path):
    config_path.write_text(
        '[{"clusterID":"' + CLUSTER_ID2 + '","monitorsBad":["mon1","mon2","mon3"]}]'
    )
    with pytest.raises(ValueError, match="empty monitor list"):
        mons(config_path, CLUSTER_ID2)


def test_mons_malformed_monitor_data(config_path):
    config_path.write_text(
        '[{"clusterID":"' + CLUSTER_ID2 + '","monitors":["mon1",2,"mon3"]}]'
    )
    with pytest.raises(ValueError, match="unmarshal failed"):
        mons(config_path, CLUSTER_ID2)


def test_mons_cluster_lookup(config_path):
    config_path.write_text(
        '[{"clusterID":"' + CLUSTER_ID2 + '","monitors":["mon1","mon2","mon3"]}]'
    )
    with pytest.raises(ConfigNotFoundError):
        mons(config_path, CLUSTER_ID1)
    assert mons(config_path, CLUSTER_ID2) == "mon1,mon2,mon3"


def test_mons_multiple_clusters(config_path):
    config_path.write_text(
        '[{"clusterID":"' + CLUSTER_ID2 + '","monitors":["mon1","mon2","mon3"]},'
        '{"clusterID":"' + CLUSTER_ID1 + '","monitors":["mon4","mon5","mon6"]}]'
    )
    assert mons(config_path, CLUSTER_ID1) == "mon4,mon5,mon6"
    assert mons(config_path, CLUSTER_ID2) == "mon1,mon2,mon3"


def test_read_cluster_info_from_data():
    data = b'[{"clusterID":"c1","monitors":["mon1","mon2"]},{"clusterID":"c2","monitors":["mon3"]}]'
    info = read_cluster_info_from_data(data, "c1")
    assert info.cluster_id == "c1"
    assert len(info.monitors) == 2

    with pytest.raises(ConfigNotFoundError):
        read_cluster_info_from_data(data, "missing")

    with pytest.raises(ValueError):
        read_cluster_info_from_data(b"invalid", "c1")


def test_read_cluster_info_accepts_text():
    info = read_cluster_info_from_data('[{"clusterID":"c2","monitors":["mon3"]}]', "c2")
    assert info.monitors == ("mon3",)


def test_read_cluster_info_rejects_non_list():
    with pytest.raises(ValueError):
        read_cluster_info_from_data('{"clusterID":"c1"}', "c1")


def _entry(cluster_id, rbd=None, cephfs=None):
    return {"clusterID": cluster_id, "monitors": None, "rbd": rbd or {}, "cephFS": cephfs or {}}


def _secret(name, namespace):
    return {"controllerPublishSecretRef": {"name": name, "namespace": namespace}}


def test_get_rbd_controller_publish_secret_ref_from_data():
    data = json.dumps([_entry("cluster-1", rbd=_secret("rbd-secret-1", "ceph-csi"))])
    assert get_rbd_controller_publish_secret_ref_from_data(data, "cluster-1") == (
        "rbd-secret-1",
        "ceph-csi",
    )
    with pytest.raises(ConfigNotFoundError):
        get_rbd_controller_publish_secret_ref_from_data(data, "missing")


def test_get_cephfs_controller_publish_secret_ref_from_data():
    data = json.dumps([_entry("cluster-1", cephfs=_secret("cephfs-secret-1", "ceph-csi"))])
    assert get_cephfs_controller_publish_secret_ref_from_data(data, "cluster-1") == (
        "cephfs-secret-1",
        "ceph-csi",
    )
    with pytest.raises(ConfigNotFoundError):
        get_cephfs_controller_publish_secret_ref_from_data(data, "missing")


@pytest.fixture
def rbd_config(tmp_path):
    path = tmp_path / "ceph-csi.json"
    path.write_text(
        json.dumps(
            [
                _entry("cluster-1", rbd=_secret("rbd-secret-1", "ceph-csi")),
                _entry("cluster-2", rbd=_secret("rbd-secret-2", "ceph-csi")),
                _entry("cluster-3", rbd=_secret("", "ceph-csi")),
                _entry("cluster-4", rbd=_secret("rbd-secret-4", "")),
                _entry("cluster-5"),
            ]
        )
    )
    return path


@pytest.mark.parametrize(
    "cluster_id, expected",
    [
        ("cluster-1", ("rbd-secret-1", "ceph-csi")),
        ("cluster-2", ("rbd-secret-2", "ceph-csi")),
        ("cluster-5", ("", "")),
    ],
)
def test_get_rbd_controller_publish_secret_ref(rbd_config, cluster_id, expected):
    assert get_rbd_controller_publish_secret_ref(rbd_config, cluster_id) == expected


@pytest.fixture
def cephfs_config(tmp_path):
    path = tmp_path / "ceph-csi.json"
    path.write_text(
        json.dumps(
            [
                _entry("cluster-1", cephfs=_secret("cephfs-secret-1", "ceph-csi")),
                _entry("cluster-2", cephfs=_secret("cephfs-secret-2", "ceph-csi")),
                _entry("cluster-3", cephfs=_secret("", "ceph-csi")),
                _entry("cluster-4", cephfs=_secret("cephfs-secret-4", "")),
                _entry("cluster-5"),
            ]
        )
    )
    return path


@pytest.mark.parametrize(
    "cluster_id, expected",
    [
        ("cluster-1", ("cephfs-secret-1", "ceph-csi")),
        ("cluster-2", ("cephfs-secret-2", "ceph-csi")),
        ("cluster-5", ("", "")),
    ],
)
def test_get_cephfs_controller_publish_secret_ref(cephfs_config, cluster_id, expected):
    assert get_cephfs_controller_publish_secret_ref(cephfs_config, cluster_id) == expected


def test_namespace_and_subvolume_group_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps([_entry("plain")]))
    assert get_cephfs_rados_namespace(path, "plain") == "csi"
    assert cephfs_subvolume_group(path, "plain") == "csi"
    assert get_rbd_rados_namespace(path, "plain") == ""


def test_namespace_and_subvolume_group_configured(tmp_path):
    path = tmp_path / "config.json"
    entry = _entry(
        "custom",
        rbd={"radosNamespace": "rbd-ns"},
        cephfs={"radosNamespace": "fs-ns", "subvolumeGroup": "group-a"},
    )
    path.write_text(json.dumps([entry]))
    assert get_rbd_rados_namespace(path, "custom") == "rbd-ns"
    assert get_cephfs_rados_namespace(path, "custom") == "fs-ns"
    assert cephfs_subvolume_group(path, "custom") == "group-a"


def test_get_cluster_id():
    assert get_cluster_id({"clusterID": "abc"}) == "abc"
    with pytest.raises(ClusterIDNotSetError):
        get_cluster_id({"pool": "abc"})


def test_cluster_info_from_dict():
    info = ClusterInfo.from_dict(
        {"clusterID": "c9", "monitors": ["m1"], "rbd": _secret("n", "ns")}
    )
    assert info.cluster_id == "c9"
    assert info.monitors == ("m1",)
    assert info.rbd_controller_publish_secret_ref == SecretRef("n", "ns")
    assert info.cephfs_controller_publish_secret_ref == SecretRef()


def test_cluster_info_from_dict_rejects_wrong_types():
    with pytest.raises(ValueError):
        ClusterInfo.from_dict({"clusterID": 5})
    with pytest.raises(ValueError):
        ClusterInfo.from_dict({"clusterID": "c", "rbd": []})