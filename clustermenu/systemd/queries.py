"""systemd status queries and the commands that move the node between roles.

Every query shells out through :class:`~clustermenu.executor.CommandExecutor`
and tolerates failed or empty output: a missing listing simply produces no
targets, no resources, or "jobs running" so that actions stay hidden.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from ..executor import CommandExecutor
from .tree import exclude_subtree, filter_lines

CLUSTER_TARGET = "cluster-active.target"
APP_TARGET = "app-active.target"
DB_TARGET = "db-active.target"
DISABLED_TARGET = "multi-user.target"

CLUSTER_ROLE_TARGETS: tuple[str, ...] = (CLUSTER_TARGET, APP_TARGET, DB_TARGET)
GATED_TARGETS: tuple[str, ...] = (APP_TARGET, DB_TARGET, CLUSTER_TARGET)

SYSTEMCTL = "/usr/bin/systemctl"
SUDO = "sudo"
DRBD_PROC_PATH = Path("/proc/drbd")

NO_JOBS_PATTERN = re.compile(r"No jobs running\.")
RUNNING_JOB_PATTERN = re.compile(r"running")
WAITING_JOB_PATTERN = re.compile(r"waiting")
_BECOME_PRIMARY_RE = re.compile(r"drbd-become-primary@([\w-]*)\.service")

# Root line plus the three role targets; anything more means the whole-cluster
# target pulls in units of its own and the cluster is not split.
SPLIT_CLUSTER_MAX_LINES = 4


def isolate_command(target: str) -> tuple[str, ...]:
    return (SUDO, SYSTEMCTL, "isolate", "--no-block", target)


POWEROFF_COMMAND: tuple[str, ...] = (SUDO, SYSTEMCTL, "poweroff")
REBOOT_COMMAND: tuple[str, ...] = (SUDO, SYSTEMCTL, "reboot")


def is_drbd_present(proc_path: Path = DRBD_PROC_PATH) -> bool:
    return proc_path.exists()


def active_targets(executor: CommandExecutor) -> tuple[str, ...]:
    """Return the active cluster-role targets in listing order.

    When none of them is active the node is disabled and the result is
    ``("multi-user.target",)``.
    """
    listing = executor.run(SYSTEMCTL, "list-units", "--type", "target", "--state", "active")
    found: list[str] = []
    for line in listing.splitlines():
        for target in CLUSTER_ROLE_TARGETS:
            if target in line and target not in found:
                found.append(target)
    if not found:
        return (DISABLED_TARGET,)
    return tuple(found)


def list_jobs(executor: CommandExecutor) -> str:
    return executor.run(SYSTEMCTL, "list-jobs")


def has_running_jobs(jobs_listing: str) -> bool:
    """Return whether a job transition may be in flight.

    Only an explicit "No jobs running." counts as idle, so an empty or failed
    listing keeps destructive actions disabled.
    """
    return not filter_lines(jobs_listing.split("\n"), NO_JOBS_PATTERN)


def job_summary(jobs_listing: str) -> tuple[list[str], int]:
    """Split a job listing into running-job lines and the number of waiting jobs."""
    lines = jobs_listing.split("\n")
    return filter_lines(lines, RUNNING_JOB_PATTERN), len(filter_lines(lines, WAITING_JOB_PATTERN))


def dependency_lines(executor: CommandExecutor, target: str, *extra: str) -> list[str]:
    return executor.run(SYSTEMCTL, "list-dependencies", target, *extra).split("\n")


def cluster_dependency_lines(executor: CommandExecutor) -> list[str]:
    """Dependency tree of the whole-cluster target without the disabled-role subtree."""
    return exclude_subtree(dependency_lines(executor, CLUSTER_TARGET), re.escape(DISABLED_TARGET))


def is_split_cluster(executor: CommandExecutor) -> bool:
    """Return whether applications and databases can be enabled separately.

    The cluster is split when the whole-cluster target contains nothing besides
    the three role targets once their own subtrees are removed.
    """
    lines = dependency_lines(executor, CLUSTER_TARGET)
    for target in (DISABLED_TARGET, APP_TARGET, DB_TARGET):
        lines = exclude_subtree(lines, re.escape(target))
    return len([line for line in lines if line.strip()]) <= SPLIT_CLUSTER_MAX_LINES


def parse_gated_resources(lines: Iterable[str]) -> tuple[str, ...]:
    """Extract DRBD resource names from ``drbd-become-primary@<res>.service`` units."""
    found: list[str] = []
    for line in lines:
        match = _BECOME_PRIMARY_RE.search(line)
        if match is not None and match.group(1) not in found:
            found.append(match.group(1))
    return tuple(found)


def resources_for_target(executor: CommandExecutor, target: str) -> tuple[str, ...]:
    return parse_gated_resources(dependency_lines(executor, target, "--all", "--plain"))


def build_target_resource_map(
    executor: CommandExecutor,
    targets: Iterable[str] = GATED_TARGETS,
) -> Mapping[str, tuple[str, ...]]:
    """Query once which DRBD resources each target promotes; the result is read-only."""
    return MappingProxyType({target: resources_for_target(executor, target) for target in targets})
