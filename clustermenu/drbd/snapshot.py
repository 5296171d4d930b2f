"""Flat per-volume view of the resource-state store for one render cycle."""

from __future__ import annotations

from dataclasses import dataclass

from .store import ResourceCollection

TRANSITION_CONNECTION = "Transition"
UNKNOWN_ROLE = "Unknown"
UNKNOWN_DISK = "DUnknown"


@dataclass(frozen=True)
class VolumeState:
    minor: str
    resource_name: str
    local_role: str
    local_disk: str
    connection_status: str = ""
    remote_role: str = ""
    remote_disk: str = ""
    out_of_sync_kib: int = 0
    volume_size_kib: int = 0

    def display_key(self) -> tuple[str, str, str, str, str, int]:
        """Fields that must agree for volumes to be summarized as one row."""
        return (
            self.local_role,
            self.local_disk,
            self.connection_status,
            self.remote_role,
            self.remote_disk,
            self.out_of_sync_kib,
        )


def out_of_sync_percent(state: VolumeState) -> int | None:
    """Integer out-of-sync share of the volume, or ``None`` when the size is unknown."""
    if state.volume_size_kib <= 0:
        return None
    return state.out_of_sync_kib * 100 // state.volume_size_kib


def _volume_sort_key(volume: str) -> tuple[int, int, str]:
    if volume.isdigit():
        return (0, int(volume), volume)
    return (1, 0, volume)


def extract_volume_states(store: ResourceCollection) -> list[VolumeState]:
    """Walk the store once and return one record per volume.

    Records come out ordered by resource name, then volume number. Remote
    fields come from the resource's connection and the peer device that
    carries the same volume. More than one connection means events that have
    not been pruned yet; such a resource reports the transition sentinels
    instead of guessing which connection is current.
    """
    states: list[VolumeState] = []
    with store.snapshot_walk() as resources:
        for resource in resources:
            ambiguous = len(resource.connections) > 1
            connection_status = remote_role = ""
            for conn in resource.connections.values():
                connection_status = conn.status
                remote_role = conn.role

            for key in sorted(resource.volumes, key=_volume_sort_key):
                volume = resource.volumes[key]
                remote_disk = ""
                out_of_sync = 0
                for peer in resource.peer_devices.values():
                    peer_volume = peer.volumes.get(key)
                    if peer_volume is not None:
                        remote_disk = peer_volume.disk_state
                        out_of_sync = peer_volume.out_of_sync_kib

                status, role, disk = connection_status, remote_role, remote_disk
                if ambiguous:
                    status, role, disk = TRANSITION_CONNECTION, UNKNOWN_ROLE, UNKNOWN_DISK
                states.append(
                    VolumeState(
                        minor=volume.minor,
                        resource_name=resource.name,
                        local_role=resource.role,
                        local_disk=volume.disk_state,
                        connection_status=status,
                        remote_role=role,
                        remote_disk=disk,
                        out_of_sync_kib=out_of_sync,
                        volume_size_kib=volume.size_kib,
                    )
                )
    return states
