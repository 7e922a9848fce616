"""
Definition Diff

Finds which fields of a watcher definition changed between two
reconciliation cycles.
"""

from __future__ import annotations

from typing import Any


def changed_fields(
    old_data: dict[str, Any],
    new_data: dict[str, Any],
    prefix: str = "",
) -> list[str]:
    """
    Compute the dotted paths whose values differ between two snapshots.

    Args:
        old_data: Previous snapshot
        new_data: Current snapshot
        prefix: Path prefix for nested calls

    Returns:
        Sorted list of changed paths (e.g. "_source.trigger.schedule.interval")
    """
    changes: list[str] = []

    for field in set(old_data) | set(new_data):
        path = f"{prefix}{field}"
        old_value = old_data.get(field)
        new_value = new_data.get(field)

        if old_value == new_value:
            continue

        # Recurse into nested dicts
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            changes.extend(changed_fields(old_value, new_value, prefix=f"{path}."))
        else:
            changes.append(path)

    return sorted(changes)
