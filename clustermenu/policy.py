"""Replication-safety gate for systemd role transitions.

Enabling a role promotes this node's DRBD resources to primary. That is only
safe while both sides of every gated resource are Secondary and UpToDate, so
the gate fails closed on anything else, including missing telemetry.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from .drbd.snapshot import VolumeState

SAFE_ROLE = "Secondary"
SAFE_DISK = "UpToDate"


def volume_is_safe(state: VolumeState) -> bool:
    return (
        state.local_role == SAFE_ROLE
        and state.local_disk == SAFE_DISK
        and state.remote_role == SAFE_ROLE
        and state.remote_disk == SAFE_DISK
    )


def allowed_to_enable(
    target: str,
    snapshot: Iterable[VolumeState],
    *,
    replication_enabled: bool,
    target_resources: Mapping[str, Sequence[str]],
) -> bool:
    """Return whether ``target`` may be activated given ``snapshot``.

    Without replication on this host every target is allowed. Otherwise the
    target must be known, every resource it gates must appear in the snapshot
    at least once, and every volume of those resources must be safe.
    """
    if not replication_enabled:
        return True
    gated = target_resources.get(target)
    if gated is None:
        return False

    wanted = set(gated)
    seen: set[str] = set()
    for state in snapshot:
        if state.resource_name not in wanted:
            continue
        if not volume_is_safe(state):
            return False
        seen.add(state.resource_name)
    return seen == wanted


class SafetyPolicy:
    """:func:`allowed_to_enable` bound to this host's replication setup."""

    def __init__(self, replication_enabled: bool, target_resources: Mapping[str, Sequence[str]]) -> None:
        self.replication_enabled = replication_enabled
        self.target_resources = target_resources

    def allowed_to_enable(self, target: str, snapshot: Iterable[VolumeState]) -> bool:
        return allowed_to_enable(
            target,
            snapshot,
            replication_enabled=self.replication_enabled,
            target_resources=self.target_resources,
        )
