"""Helpers for replicating Ceph RBD and CephFS volumes."""

__version__ = "0.1.0"

__all__ = [
    "cephconf",
    "cephfs",
    "connection",
    "controller",
    "csiconfig",
    "errors",
    "rbd",
    "volid",
]