"""In-memory DRBD resource state, updated from the event stream.

All records live behind one lock. Writers are the event consumer thread;
the console only reads through :meth:`ResourceCollection.snapshot_walk`, which
holds the lock for the duration of a single walk.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from .events import Event


@dataclass
class Volume:
    minor: str = ""
    disk_state: str = ""
    size_kib: int = 0
    updated: float = 0.0


@dataclass
class Connection:
    status: str = ""
    role: str = ""
    updated: float = 0.0


@dataclass
class PeerVolume:
    disk_state: str = ""
    out_of_sync_kib: int = 0
    updated: float = 0.0


@dataclass
class PeerDevice:
    volumes: dict[str, PeerVolume] = field(default_factory=dict)
    updated: float = 0.0


@dataclass
class Resource:
    name: str
    role: str = ""
    volumes: dict[str, Volume] = field(default_factory=dict)
    connections: dict[str, Connection] = field(default_factory=dict)
    peer_devices: dict[str, PeerDevice] = field(default_factory=dict)
    updated: float = 0.0


def _peer_key(fields: dict[str, str]) -> str:
    return fields.get("conn-name") or fields.get("peer-node-id") or ""


def _as_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _stale(records: dict, cutoff: float) -> list[str]:
    return [key for key, record in records.items() if record.updated < cutoff]


class ResourceCollection:
    """Tracked DRBD resources keyed by name, plus a name-sorted list view.

    ``update`` and ``prune`` change the records; the sorted list that readers
    walk is only rebuilt by ``refresh`` so one render sees a consistent set.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resources: dict[str, Resource] = {}
        self._list: list[Resource] = []

    def update(self, event: Event) -> None:
        fields = event.fields
        name = fields.get("name", "")
        if not name:
            return
        with self._lock:
            if event.action == "destroy":
                self._destroy(event)
                return

            resource = self._resources.get(name)
            if resource is None:
                resource = self._resources[name] = Resource(name=name)
            resource.updated = event.timestamp

            if event.target == "resource":
                resource.role = fields.get("role", resource.role)
            elif event.target == "connection":
                conn = resource.connections.setdefault(_peer_key(fields), Connection())
                conn.status = fields.get("connection", conn.status)
                conn.role = fields.get("role", conn.role)
                conn.updated = event.timestamp
            elif event.target == "device":
                volume = resource.volumes.setdefault(fields.get("volume", "0"), Volume())
                volume.minor = fields.get("minor", volume.minor)
                volume.disk_state = fields.get("disk", volume.disk_state)
                volume.size_kib = _as_int(fields.get("size"), volume.size_kib)
                volume.updated = event.timestamp
            elif event.target == "peer-device":
                peer = resource.peer_devices.setdefault(_peer_key(fields), PeerDevice())
                peer.updated = event.timestamp
                peer_volume = peer.volumes.setdefault(fields.get("volume", "0"), PeerVolume())
                peer_volume.disk_state = fields.get("peer-disk", peer_volume.disk_state)
                peer_volume.out_of_sync_kib = _as_int(fields.get("out-of-sync"), peer_volume.out_of_sync_kib)
                peer_volume.updated = event.timestamp

    def _destroy(self, event: Event) -> None:
        fields = event.fields
        resource = self._resources.get(fields.get("name", ""))
        if resource is None:
            return
        if event.target == "resource":
            del self._resources[resource.name]
        elif event.target == "connection":
            resource.connections.pop(_peer_key(fields), None)
            resource.peer_devices.pop(_peer_key(fields), None)
        elif event.target == "device":
            resource.volumes.pop(fields.get("volume", "0"), None)
        elif event.target == "peer-device":
            peer = resource.peer_devices.get(_peer_key(fields))
            if peer is not None:
                peer.volumes.pop(fields.get("volume", "0"), None)

    def prune(self, event: Event) -> None:
        """Forget every record not refreshed at or after ``event.timestamp``."""
        cutoff = event.timestamp
        with self._lock:
            for name in _stale(self._resources, cutoff):
                del self._resources[name]
            for resource in self._resources.values():
                for key in _stale(resource.volumes, cutoff):
                    del resource.volumes[key]
                for key in _stale(resource.connections, cutoff):
                    del resource.connections[key]
                for key in _stale(resource.peer_devices, cutoff):
                    del resource.peer_devices[key]
                for peer in resource.peer_devices.values():
                    for key in _stale(peer.volumes, cutoff):
                        del peer.volumes[key]

    def refresh(self) -> None:
        """Rebuild the name-sorted list view from the current records."""
        with self._lock:
            self._list = [self._resources[name] for name in sorted(self._resources)]

    @contextlib.contextmanager
    def snapshot_walk(self) -> Iterator[tuple[Resource, ...]]:
        """Yield the listed resources while holding the store lock."""
        with self._lock:
            yield tuple(self._list)
