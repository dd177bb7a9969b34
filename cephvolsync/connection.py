"""Pooled, reference-counted connections to a Ceph cluster."""

from __future__ import annotations

import json
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .cephconf import CEPH_CONFIG_ROOT, write_ceph_config
from .errors import CephError, PoolNotFoundError

POOL_GC_INTERVAL = 15 * 60.0
POOL_EXPIRY = 10 * 60.0


@dataclass
class _IoContext:
    pool: str
    namespace: str = ""


class _CliConnection:
    """A cluster connection driven through the ceph command line tool."""

    def __init__(self, monitors: str, user: str, keyfile: str, config_path: Path):
        self._base = [
            "ceph",
            "--conf",
            str(config_path),
            "-m",
            monitors,
            "--id",
            user,
            f"--keyfile={keyfile}",
        ]
        self._run("fsid")

    def _run(self, *args: str) -> Any:
        command = [*self._base, *args, "--format", "json"]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=True)
        except FileNotFoundError as exc:
            raise CephError("ceph command not found") from exc
        except subprocess.CalledProcessError as exc:
            raise CephError(f"ceph {' '.join(args)} failed: {exc.stderr.strip()}") from exc
        return json.loads(result.stdout) if result.stdout.strip() else None

    def open_ioctx(self, pool: str) -> _IoContext:
        if pool not in (self._run("osd", "pool", "ls") or []):
            raise PoolNotFoundError(f"pool not found: {pool}")
        return _IoContext(pool)

    def get_pool_by_id(self, pool_id: int) -> str:
        for entry in self._run("osd", "pool", "ls", "detail") or []:
            if entry.get("pool_id") == pool_id:
                return entry["pool_name"]
        raise PoolNotFoundError(f"pool ID {pool_id} not found")

    def shutdown(self) -> None:
        self._base = []


@dataclass
class _ConnEntry:
    conn: Any
    last_used: float
    users: int

    def acquire(self, now: float) -> Any:
        self.last_used = now
        self.users += 1
        return self.conn

    def release(self) -> None:
        self.users -= 1

    def destroy(self) -> None:
        if self.conn is not None:
            self.conn.shutdown()
            self.conn = None


class ConnPool:
    """Shares connections between users of the same monitors, user and key.

    Idle connections older than ``expiry`` seconds are shut down by a
    collector that runs every ``interval`` seconds.
    """

    def __init__(
        self,
        interval: float = POOL_GC_INTERVAL,
        expiry: float = POOL_EXPIRY,
        connector: Callable[..., Any] = _CliConnection,
        config_root: str | os.PathLike = CEPH_CONFIG_ROOT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._interval = interval
        self._expiry = expiry
        self._connector = connector
        self._config_root = config_root
        self._clock = clock
        self._lock = threading.Lock()
        self._conns: dict[tuple[str, str, bytes], _ConnEntry] = {}
        self._closed = False
        self._timer: threading.Timer | None = None
        self._schedule()

    def __enter__(self) -> ConnPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    def _schedule(self) -> None:
        timer = threading.Timer(self._interval, self._collect_and_reschedule)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _collect_and_reschedule(self) -> None:
        self.collect_garbage()
        with self._lock:
            if not self._closed:
                self._schedule()

    def _acquire(self, unique: tuple[str, str, bytes]) -> Any:
        entry = self._conns.get(unique)
        return entry.acquire(self._clock()) if entry is not None else None

    def get(self, monitors: str, user: str, keyfile: str | os.PathLike) -> Any:
        """Return a connection for the arguments, creating one if needed."""
        config_path = write_ceph_config(self._config_root)
        unique = (monitors, user, Path(keyfile).read_bytes())

        with self._lock:
            conn = self._acquire(unique)
        if conn is not None:
            return conn

        conn = self._connector(monitors, user, str(keyfile), config_path)
        entry = _ConnEntry(conn=conn, last_used=self._clock(), users=1)

        with self._lock:
            existing = self._acquire(unique)
            if existing is not None:
                entry.destroy()
                return existing
            self._conns[unique] = entry
        return conn

    def copy(self, conn: Any) -> Any:
        """Add a reference to a pooled connection; None if it is not pooled."""
        with self._lock:
            for entry in self._conns.values():
                if entry.conn is conn:
                    return entry.acquire(self._clock())
        return None

    def put(self, conn: Any) -> None:
        """Drop a reference to a pooled connection."""
        with self._lock:
            for entry in self._conns.values():
                if entry.conn is conn:
                    entry.release()
                    return

    def collect_garbage(self) -> None:
        """Shut down connections that have no users and have expired."""
        with self._lock:
            now = self._clock()
            for key, entry in list(self._conns.items()):
                if entry.users == 0 and now - entry.last_used > self._expiry:
                    entry.destroy()
                    del self._conns[key]

    def destroy(self) -> None:
        """Stop the collector and shut down every connection.

        Raises RuntimeError if a connection still has users.
        """
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
            for key, entry in list(self._conns.items()):
                if entry.users != 0:
                    raise RuntimeError(
                        "this connEntry still has users, operations might still be in-flight"
                    )
                entry.destroy()
                del self._conns[key]


_shared_pool: ConnPool | None = None
_shared_pool_lock = threading.Lock()


def _default_pool() -> ConnPool:
    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = ConnPool(POOL_GC_INTERVAL, POOL_EXPIRY)
        return _shared_pool


class ClusterConnection:
    """A connection to a Ceph cluster taken from a connection pool."""

    def __init__(self, pool: ConnPool | None = None):
        self._pool = pool
        self._conn: Any = None

    def __enter__(self) -> ClusterConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    @property
    def pool(self) -> ConnPool:
        if self._pool is None:
            self._pool = _default_pool()
        return self._pool

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(
        self,
        monitors: str,
        user_id_path: str | os.PathLike,
        key_file_path: str | os.PathLike,
    ) -> None:
        """Connect with the user ID and key stored in the given files."""
        if self._conn is not None:
            return
        user_id = Path(user_id_path).read_text().strip()
        self._conn = self.pool.get(monitors, user_id, key_file_path)

    def destroy(self) -> None:
        """Release the connection back to the pool."""
        if self._conn is not None:
            self.pool.put(self._conn)
            self._conn = None

    def _require_conn(self) -> Any:
        if self._conn is None:
            raise CephError("cluster is not connected yet")
        return self._conn

    def open_ioctx(self, pool: str) -> Any:
        """Open an I/O context on the named pool."""
        conn = self._require_conn()
        try:
            return conn.open_ioctx(pool)
        except LookupError as exc:
            raise PoolNotFoundError(f"pool not found: {pool}") from exc
        except Exception as exc:
            raise CephError(f"failed to open IOContext for pool {pool}: {exc}") from exc

    def get_pool_by_id(self, pool_id: int) -> str:
        """Resolve a pool ID to its name."""
        return self._require_conn().get_pool_by_id(pool_id)