"""Tests for systemd queries against canned ``systemctl`` output."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from clustermenu.systemd import queries
from clustermenu.systemd.queries import (
    APP_TARGET,
    CLUSTER_TARGET,
    DB_TARGET,
    DISABLED_TARGET,
    SYSTEMCTL,
)

SPLIT_LISTING = "\n".join(
    [
        "cluster-active.target",
        "├─app-active.target",
        "│ ├─drbd-become-primary@app.service",
        "│ └─httpd.service",
        "├─db-active.target",
        "│ └─drbd-become-primary@db.service",
        "└─multi-user.target",
        "  ├─sshd.service",
        "  └─cron.service",
        "",
    ]
)

COMBINED_LISTING = "\n".join(
    [
        "cluster-active.target",
        "├─drbd-become-primary@r0.service",
        "├─httpd.service",
        "├─postgresql.service",
        "├─app-active.target",
        "├─db-active.target",
        "└─multi-user.target",
        "  └─sshd.service",
    ]
)


class _FakeExecutor:
    def __init__(self, outputs: dict[tuple[str, ...], str]) -> None:
        self.outputs = outputs
        self.calls: list[tuple[str, ...]] = []

    def run(self, *argv: str) -> str:
        self.calls.append(argv)
        return self.outputs.get(argv, "")


class ActiveTargetsTests(unittest.TestCase):
    LIST_UNITS = (SYSTEMCTL, "list-units", "--type", "target", "--state", "active")

    def test_reports_active_role_targets_in_listing_order(self) -> None:
        listing = (
            "  UNIT                  LOAD   ACTIVE SUB    DESCRIPTION\n"
            "  db-active.target      loaded active active DB\n"
            "  app-active.target     loaded active active App\n"
            "  basic.target          loaded active active Basic\n"
        )
        executor = _FakeExecutor({self.LIST_UNITS: listing})

        self.assertEqual(queries.active_targets(executor), (DB_TARGET, APP_TARGET))

    def test_no_role_target_means_disabled(self) -> None:
        executor = _FakeExecutor({self.LIST_UNITS: "  multi-user.target loaded active active\n"})

        self.assertEqual(queries.active_targets(executor), (DISABLED_TARGET,))

    def test_failed_listing_means_disabled(self) -> None:
        self.assertEqual(queries.active_targets(_FakeExecutor({})), (DISABLED_TARGET,))


class JobsTests(unittest.TestCase):
    def test_only_explicit_idle_message_counts_as_no_jobs(self) -> None:
        self.assertFalse(queries.has_running_jobs("No jobs running.\n"))
        self.assertTrue(queries.has_running_jobs(""))
        self.assertTrue(queries.has_running_jobs("JOB UNIT\n1 a.service start running\n"))

    def test_job_summary_splits_running_and_waiting(self) -> None:
        listing = (
            "JOB UNIT            TYPE  STATE\n"
            "101 app.service     start running\n"
            "102 db.service      start waiting\n"
            "103 web.service     start waiting\n"
            "\n3 jobs listed.\n"
        )

        running, waiting = queries.job_summary(listing)

        self.assertEqual(running, ["101 app.service     start running"])
        self.assertEqual(waiting, 2)


class DependencyQueryTests(unittest.TestCase):
    def test_cluster_dependency_lines_drop_disabled_role_subtree(self) -> None:
        executor = _FakeExecutor({(SYSTEMCTL, "list-dependencies", CLUSTER_TARGET): SPLIT_LISTING})

        lines = queries.cluster_dependency_lines(executor)

        self.assertIn("└─multi-user.target", lines)
        self.assertNotIn("  ├─sshd.service", lines)
        self.assertIn("│ └─httpd.service", lines)

    def test_split_cluster_detected_when_only_role_targets_remain(self) -> None:
        executor = _FakeExecutor({(SYSTEMCTL, "list-dependencies", CLUSTER_TARGET): SPLIT_LISTING})

        self.assertTrue(queries.is_split_cluster(executor))

    def test_combined_cluster_has_units_of_its_own(self) -> None:
        executor = _FakeExecutor({(SYSTEMCTL, "list-dependencies", CLUSTER_TARGET): COMBINED_LISTING})

        self.assertFalse(queries.is_split_cluster(executor))

    def test_parse_gated_resources_dedupes_in_order(self) -> None:
        lines = [
            "app-active.target",
            "drbd-become-primary@app-data.service",
            "drbd-become-primary@app-logs.service",
            "drbd-become-primary@app-data.service",
            "httpd.service",
        ]

        self.assertEqual(queries.parse_gated_resources(lines), ("app-data", "app-logs"))

    def test_target_resource_map_queries_each_target_once(self) -> None:
        executor = _FakeExecutor(
            {
                (SYSTEMCTL, "list-dependencies", APP_TARGET, "--all", "--plain"): "drbd-become-primary@app.service\n",
                (SYSTEMCTL, "list-dependencies", DB_TARGET, "--all", "--plain"): "drbd-become-primary@db.service\n",
                (SYSTEMCTL, "list-dependencies", CLUSTER_TARGET, "--all", "--plain"): (
                    "drbd-become-primary@app.service\ndrbd-become-primary@db.service\n"
                ),
            }
        )

        mapping = queries.build_target_resource_map(executor)

        self.assertEqual(
            dict(mapping),
            {APP_TARGET: ("app",), DB_TARGET: ("db",), CLUSTER_TARGET: ("app", "db")},
        )
        self.assertEqual(len(executor.calls), 3)
        with self.assertRaises(TypeError):
            mapping[APP_TARGET] = ()  # type: ignore[index]

    def test_isolate_command_uses_no_block(self) -> None:
        self.assertEqual(
            queries.isolate_command(DB_TARGET),
            ("sudo", SYSTEMCTL, "isolate", "--no-block", DB_TARGET),
        )


class DrbdPresenceTests(unittest.TestCase):
    def test_presence_follows_proc_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            proc = Path(tmp) / "drbd"
            self.assertFalse(queries.is_drbd_present(proc))
            proc.write_text("version: 9.2.0\n", encoding="utf-8")
            self.assertTrue(queries.is_drbd_present(proc))


if __name__ == "__main__":
    unittest.main()
