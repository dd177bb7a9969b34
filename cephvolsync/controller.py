"""Replication source and destination bookkeeping for the sync state machine.

A ``Replication`` describes a ReplicationSource or ReplicationDestination:
its spec says when to sync and with which mover, and its status records
what happened. ``ReplicationMachine`` exposes the view that the scheduling
state machine needs and hands the work to a data mover.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

REPLICATION_SOURCE_TO_SOURCE_PVC_INDEX = "replicationsource.spec.sourcePVC"

_PREDICATE = {
    "create": True,
    "update": True,
    "generic": True,
    "delete": False,
}


class _Mover(Protocol):
    def synchronize(self) -> Any: ...

    def cleanup(self) -> Any: ...


@dataclass
class Trigger:
    """When a sync runs: on a cron schedule or when the manual tag changes."""

    schedule: Optional[str] = None
    manual: str = ""


@dataclass
class ReplicationSpec:
    """Desired state of a replication.

    The ``rclone``, ``restic``, ``rsync`` and ``rsync_tls`` fields hold the
    settings of a built-in mover; when any is set the replication is handled
    elsewhere and not by this plugin.
    """

    trigger: Optional[Trigger] = None
    source_pvc: str = ""
    rclone: Any = None
    restic: Any = None
    rsync: Any = None
    rsync_tls: Any = None
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass
class ReplicationStatus:
    """Observed state of a replication."""

    last_manual_sync: str = ""
    next_sync_time: Optional[_dt.datetime] = None
    last_sync_start_time: Optional[_dt.datetime] = None
    last_sync_time: Optional[_dt.datetime] = None
    last_sync_duration: Optional[_dt.timedelta] = None
    conditions: list[Any] = field(default_factory=list)
    latest_image: Any = None


@dataclass
class Replication:
    """A ReplicationSource or ReplicationDestination object."""

    name: str
    namespace: str
    spec: ReplicationSpec = field(default_factory=ReplicationSpec)
    status: Optional[ReplicationStatus] = None


def _has_mover(replication: Replication) -> bool:
    spec = replication.spec
    return any(
        mover is not None
        for mover in (spec.rclone, spec.restic, spec.rsync, spec.rsync_tls)
    )


def rs_has_mover(rs: Replication) -> bool:
    """Return True if the ReplicationSource already names a built-in mover."""
    return _has_mover(rs)


def rd_has_mover(rd: Replication) -> bool:
    """Return True if the ReplicationDestination already names a built-in mover."""
    return _has_mover(rd)


def source_pvc_index(obj: Any) -> list[str]:
    """Index values of a ReplicationSource by the name of its source PVC."""
    if not isinstance(obj, Replication):
        return []
    source_pvc = obj.spec.source_pvc
    return [source_pvc] if source_pvc else []


def copy_trigger_pvc_predicate(event_kind: str) -> bool:
    """Whether a PVC event should requeue ReplicationSources; deletes do not."""
    try:
        return _PREDICATE[event_kind.lower()]
    except KeyError:
        raise ValueError(f"unknown event kind: {event_kind!r}") from None


class ReplicationMachine:
    """The state machine's view of one replication and its data mover.

    For a destination, ``snapshot_cleanup`` is called with the previous and
    the new latest image before the status is updated, so that an old
    snapshot can be marked for removal.
    """

    def __init__(
        self,
        replication: Replication,
        mover: _Mover,
        *,
        destination: bool = False,
        snapshot_cleanup: Optional[Callable[[Any, Any], None]] = None,
    ):
        if replication.status is None:
            replication.status = ReplicationStatus()
        self.replication = replication
        self.mover = mover
        self.destination = destination
        self._snapshot_cleanup = snapshot_cleanup
        self.out_of_sync = False
        self.missed_intervals = 0
        self.sync_durations: list[_dt.timedelta] = []

    @property
    def status(self) -> ReplicationStatus:
        assert self.replication.status is not None
        return self.replication.status

    def cronspec(self) -> str:
        """Return the cron schedule, or "" if there is none."""
        trigger = self.replication.spec.trigger
        if trigger is not None and trigger.schedule is not None:
            return trigger.schedule
        return ""

    def manual_tag(self) -> str:
        """Return the manual trigger tag, or "" if there is none."""
        trigger = self.replication.spec.trigger
        return trigger.manual if trigger is not None else ""

    @property
    def last_manual_tag(self) -> str:
        return self.status.last_manual_sync

    @last_manual_tag.setter
    def last_manual_tag(self, tag: str) -> None:
        self.status.last_manual_sync = tag

    @property
    def next_sync_time(self) -> Optional[_dt.datetime]:
        return self.status.next_sync_time

    @next_sync_time.setter
    def next_sync_time(self, value: Optional[_dt.datetime]) -> None:
        self.status.next_sync_time = value

    @property
    def last_sync_start_time(self) -> Optional[_dt.datetime]:
        return self.status.last_sync_start_time

    @last_sync_start_time.setter
    def last_sync_start_time(self, value: Optional[_dt.datetime]) -> None:
        self.status.last_sync_start_time = value

    @property
    def last_sync_time(self) -> Optional[_dt.datetime]:
        return self.status.last_sync_time

    @last_sync_time.setter
    def last_sync_time(self, value: Optional[_dt.datetime]) -> None:
        self.status.last_sync_time = value

    @property
    def last_sync_duration(self) -> Optional[_dt.timedelta]:
        return self.status.last_sync_duration

    @last_sync_duration.setter
    def last_sync_duration(self, value: Optional[_dt.timedelta]) -> None:
        self.status.last_sync_duration = value

    @property
    def conditions(self) -> list[Any]:
        return self.status.conditions

    def set_out_of_sync(self, is_out_of_sync: bool) -> None:
        self.out_of_sync = is_out_of_sync

    def inc_missed_intervals(self) -> None:
        self.missed_intervals += 1

    def observe_sync_duration(self, duration: _dt.timedelta) -> None:
        self.sync_durations.append(duration)

    def synchronize(self) -> Any:
        """Run one step of the mover's synchronization and return its result.

        On a destination, a completed sync that produced an image becomes
        the new latest image.
        """
        result = self.mover.synchronize()
        if not self.destination:
            return result

        image = getattr(result, "image", None)
        if getattr(result, "completed", False) and image is not None:
            if self._snapshot_cleanup is not None:
                self._snapshot_cleanup(self.status.latest_image, image)
            self.status.latest_image = image
        return result

    def cleanup(self) -> Any:
        """Run one step of the mover's cleanup and return its result."""
        return self.mover.cleanup()