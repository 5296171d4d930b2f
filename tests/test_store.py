"""Tests for the resource-state store and snapshot extraction."""

from __future__ import annotations

import unittest

from clustermenu.drbd.events import PRUNE_EVENT, UPDATE_EVENT, Event
from clustermenu.drbd.snapshot import (
    TRANSITION_CONNECTION,
    UNKNOWN_DISK,
    UNKNOWN_ROLE,
    VolumeState,
    extract_volume_states,
    out_of_sync_percent,
)
from clustermenu.drbd.store import ResourceCollection


def _update(target: str, timestamp: float = 1.0, action: str = "exists", **fields: str) -> Event:
    return Event(
        kind=UPDATE_EVENT,
        timestamp=timestamp,
        action=action,
        target=target,
        fields={key.replace("_", "-"): value for key, value in fields.items()},
    )


def _load_resource(store: ResourceCollection, name: str, timestamp: float = 1.0, volumes: int = 1) -> None:
    store.update(_update("resource", timestamp, name=name, role="Secondary"))
    store.update(_update("connection", timestamp, name=name, conn_name="peer", connection="Connected", role="Secondary"))
    for volume in range(volumes):
        store.update(
            _update("device", timestamp, name=name, volume=str(volume), minor=str(volume), disk="UpToDate", size="2048")
        )
        store.update(
            _update(
                "peer-device",
                timestamp,
                name=name,
                conn_name="peer",
                volume=str(volume),
                peer_disk="UpToDate",
                out_of_sync="512",
            )
        )


class ResourceCollectionTests(unittest.TestCase):
    def test_refresh_publishes_sorted_resources(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r1")
        _load_resource(store, "r0")

        with store.snapshot_walk() as before:
            self.assertEqual(before, ())
        store.refresh()
        with store.snapshot_walk() as resources:
            self.assertEqual([resource.name for resource in resources], ["r0", "r1"])

    def test_prune_forgets_records_older_than_the_poll(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "old", timestamp=1.0)
        _load_resource(store, "new", timestamp=2.0)

        store.prune(Event(kind=PRUNE_EVENT, timestamp=2.0))
        store.refresh()

        with store.snapshot_walk() as resources:
            self.assertEqual([resource.name for resource in resources], ["new"])

    def test_prune_drops_stale_connection_of_a_live_resource(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r0", timestamp=1.0)
        store.update(_update("connection", 1.0, name="r0", conn_name="ghost", connection="Connecting"))
        _load_resource(store, "r0", timestamp=2.0)

        store.prune(Event(kind=PRUNE_EVENT, timestamp=2.0))
        store.refresh()

        with store.snapshot_walk() as resources:
            self.assertEqual(list(resources[0].connections), ["peer"])

    def test_destroy_removes_the_object(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r0")
        store.update(_update("connection", 1.0, action="destroy", name="r0", conn_name="peer"))
        store.update(_update("resource", 1.0, action="destroy", name="r0"))
        store.refresh()

        with store.snapshot_walk() as resources:
            self.assertEqual(resources, ())

    def test_non_numeric_size_keeps_previous_value(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r0")
        store.update(_update("device", 1.0, name="r0", volume="0", size="garbage"))
        store.refresh()

        with store.snapshot_walk() as resources:
            self.assertEqual(resources[0].volumes["0"].size_kib, 2048)


class ExtractVolumeStatesTests(unittest.TestCase):
    def test_one_record_per_volume_with_remote_fields(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r0", volumes=2)
        store.refresh()

        states = extract_volume_states(store)

        self.assertEqual(
            states[0],
            VolumeState(
                minor="0",
                resource_name="r0",
                local_role="Secondary",
                local_disk="UpToDate",
                connection_status="Connected",
                remote_role="Secondary",
                remote_disk="UpToDate",
                out_of_sync_kib=512,
                volume_size_kib=2048,
            ),
        )
        self.assertEqual([state.minor for state in states], ["0", "1"])

    def test_volumes_sort_numerically(self) -> None:
        store = ResourceCollection()
        store.update(_update("resource", name="r0", role="Secondary"))
        for volume in ("10", "2", "1"):
            store.update(_update("device", name="r0", volume=volume, minor=volume, disk="UpToDate"))
        store.refresh()

        self.assertEqual([state.minor for state in extract_volume_states(store)], ["1", "2", "10"])

    def test_multiple_connections_force_transition_sentinels(self) -> None:
        store = ResourceCollection()
        _load_resource(store, "r0")
        store.update(_update("connection", name="r0", conn_name="stale", connection="Connected", role="Secondary"))
        store.refresh()

        (state,) = extract_volume_states(store)

        self.assertEqual(state.connection_status, TRANSITION_CONNECTION)
        self.assertEqual(state.remote_role, UNKNOWN_ROLE)
        self.assertEqual(state.remote_disk, UNKNOWN_DISK)
        self.assertEqual(state.local_role, "Secondary")

    def test_resource_without_connection_has_blank_remote_fields(self) -> None:
        store = ResourceCollection()
        store.update(_update("resource", name="r0", role="Primary"))
        store.update(_update("device", name="r0", volume="0", minor="5", disk="UpToDate"))
        store.refresh()

        (state,) = extract_volume_states(store)

        self.assertEqual((state.connection_status, state.remote_role, state.remote_disk), ("", "", ""))

    def test_out_of_sync_percent_guards_unknown_size(self) -> None:
        state = VolumeState(minor="0", resource_name="r0", local_role="", local_disk="", out_of_sync_kib=5)

        self.assertIsNone(out_of_sync_percent(state))
        self.assertEqual(out_of_sync_percent(VolumeState("0", "r0", "", "", out_of_sync_kib=512, volume_size_kib=2048)), 25)


if __name__ == "__main__":
    unittest.main()
