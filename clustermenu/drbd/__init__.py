"""DRBD replication state: event stream, store, and per-volume snapshots."""

from .snapshot import VolumeState, extract_volume_states
from .store import ResourceCollection

__all__ = ["ResourceCollection", "VolumeState", "extract_volume_states"]
