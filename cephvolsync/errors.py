"""Errors shared by the Ceph helpers."""


class CephError(Exception):
    """Base class for errors raised while talking to a Ceph cluster."""

    default_message = "ceph error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class KeyNotFoundError(CephError, LookupError):
    """A requested key, such as a filesystem ID, was not found."""

    default_message = "key not found"


class PoolNotFoundError(CephError, LookupError):
    """A requested RADOS pool does not exist."""

    default_message = "pool not found"