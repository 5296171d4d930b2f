"""systemd integration: dependency-tree filtering and status queries."""

from .tree import exclude_subtree, filter_lines

__all__ = ["exclude_subtree", "filter_lines"]
