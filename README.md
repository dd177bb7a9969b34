# cephvolsync

Building blocks for replicating Ceph-backed volumes: encoding and decoding
of CSI volume identifiers, lookups in the ceph-csi cluster configuration,
a reference-counted connection pool, RBD and CephFS path helpers, and the
bookkeeping a replication state machine needs for sources and
destinations.

The package has no third-party dependencies.

## Installation

```
pip install cephvolsync
```

To run the test suite:

```
pip install "cephvolsync[test]"
pytest
```

## Modules

### `cephvolsync.errors`

`CephError` is the base class. `KeyNotFoundError` and `PoolNotFoundError`
derive from both `CephError` and `LookupError`.

### `cephvolsync.volid`

`CSIIdentifier(location_id, cluster_id, object_uuid, encoding_version=0)`
is a frozen dataclass.

- `compose()` returns the encoded ID: the version and the cluster ID
  length as 4 hex digits each, then the cluster ID, the location ID as
  16 hex digits and the 36-character object UUID, joined by `-`. An
  `encoding_version` of 0 is written as version 1. It raises `ValueError`
  when the cluster ID is too long (the ID would exceed 128 bytes) or the
  UUID is not 36 bytes.
- `CSIIdentifier.decompose(composed)` parses such a string and raises
  `ValueError` when it is too short, has the wrong length or holds bad hex.

```python
from cephvolsync.volid import CSIIdentifier

ident = CSIIdentifier(
    location_id=0xFFFF,
    cluster_id="01616094-9d93-4178-bf45-c7eac19e8b15",
    object_uuid="00000000-1111-2222-bbbb-cacacacacaca",
)
volume_id = ident.compose()
assert CSIIdentifier.decompose(volume_id).location_id == 0xFFFF
```

### `cephvolsync.cephconf`

`write_ceph_config(config_root="/etc/ceph")` creates the directory, a
minimal `ceph.conf` (cephx authentication and 30-second operation
timeouts) and an empty `keyring`, each with mode 0600, unless they already
exist. It returns the path of `ceph.conf`.

### `cephvolsync.csiconfig`

Reads the ceph-csi JSON configuration, a list of cluster entries.

- `read_cluster_info_from_data(data, cluster_id)` returns a `ClusterInfo`
  from raw JSON; `ClusterInfo.from_dict(data)` builds one entry.
- `mons(path, cluster_id)` returns the monitors joined by commas.
- `get_rbd_rados_namespace`, `get_cephfs_rados_namespace` and
  `cephfs_subvolume_group` take `(path, cluster_id)`; the CephFS ones
  return `"csi"` when the value is unset.
- `get_rbd_controller_publish_secret_ref` and
  `get_cephfs_controller_publish_secret_ref` take `(path, cluster_id)`;
  the `..._from_data` variants take raw JSON. All return
  `(name, namespace)`.
- `get_cluster_id(options)` returns `options["clusterID"]`.

Malformed JSON raises `ValueError`, an unknown cluster ID raises
`ConfigNotFoundError`, and a missing `clusterID` option raises
`ClusterIDNotSetError`.

```python
from cephvolsync.csiconfig import mons

print(mons("/etc/ceph-csi-config/config.json", "my-cluster"))
```

### `cephvolsync.connection`

`ConnPool(interval, expiry, connector, config_root, clock)` shares
connections keyed by monitors, user and key file content. `get(monitors,
user, keyfile)` writes the Ceph config with `write_ceph_config`, then
returns a pooled connection or creates one. `copy(conn)` and `put(conn)`
add and drop references. `collect_garbage()` shuts down idle connections
older than `expiry` seconds, and a background timer calls it every
`interval` seconds. `destroy()` stops the timer and shuts everything
down. It raises `RuntimeError` if a connection is still in use. The pool
is a context manager.

By default a connection drives the `ceph` command-line tool, which must
be installed. Pass another `connector` callable, taking `(monitors, user,
keyfile, config_path)`, to use something else.

`ClusterConnection(pool=None)` takes a connection from a pool, or from a
shared default pool when none is given. `connect(monitors, user_id_path,
key_file_path)` reads the user ID from a file. `open_ioctx(pool)` and
`get_pool_by_id(pool_id)` act on the connection. `destroy()` returns the
connection to the pool; the class is also a context manager.

### `cephvolsync.rbd`

- `ImageSpec(pool_name, image_name, pool_namespace="")`, with
  `ImageSpec.from_string(spec)` and `to_string()`.
- `parse_image_spec(spec)` accepts `pool/image` or `pool/ns/image` and
  raises `ValueError` otherwise.
- `rbd_image_spec(pool, rados_ns, image_name)` builds the string form.
- `ChangeBlock(offset, length)` is a changed region, with an `end`
  property.
- `pool_name_by_id(conn, pool_id)` resolves a pool ID and wraps failures
  in `CephError`.
- `snapshot_id_by_name(snapshots, name)` looks up a snapshot ID. It takes
  a name-to-ID mapping or an iterable of pairs, dicts or objects, and
  raises `KeyNotFoundError` when there is no match.

### `cephvolsync.cephfs`

- `get_fs_name(volumes, location_id)` returns the name of the filesystem
  with that ID and raises `KeyNotFoundError` when none matches.
- `split_subvolume_path(path)` returns `(mount root, UUID directory)`.
- `substitute_rel_path(uuid_dir, entry_path, local_rel_path)` swaps the
  UUID directory prefix of a diff entry for a local path.

### `cephvolsync.controller`

`Replication`, `ReplicationSpec`, `ReplicationStatus` and `Trigger` are
dataclasses that describe a replication source or destination.

- `rs_has_mover` and `rd_has_mover` say whether a built-in mover (rclone,
  restic, rsync, rsync-tls) is set.
- `source_pvc_index(obj)` gives the source-PVC index values.
- `copy_trigger_pvc_predicate(kind)` is true for `create`, `update` and
  `generic` events and false for `delete`.

`ReplicationMachine(replication, mover, destination=False,
snapshot_cleanup=None)` exposes:

- `cronspec()` and `manual_tag()`;
- the status fields as properties;
- counters for out-of-sync state, missed intervals and sync durations;
- `synchronize()` and `cleanup()`, which call the mover.

On a destination, a completed result that carries an `image` becomes the
new latest image. `snapshot_cleanup(old, new)` is called first.

## What this package does not do

- It does not run a Kubernetes controller or watch cluster objects.
- It does not create mover jobs and does not ship a command-line program.
- It does not iterate over RBD or CephFS snapshot diffs on a live
  cluster.

The replication types and `ReplicationMachine` hold state and call a mover
object that you supply.