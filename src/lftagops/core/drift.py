"""Comparison of desired and actual LF-Tag associations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from lftagops.core.tags import TagSet


class DriftStatus(str, Enum):
    """
    Outcome of comparing a desired tag set with the remote one.

    Values:
        IN_SYNC: Remote tags equal the desired tags.
        DRIFTED: Remote tags exist but differ.
        ABSENT: No tags are directly assigned to the resource.
    """

    IN_SYNC = "IN_SYNC"
    DRIFTED = "DRIFTED"
    ABSENT = "ABSENT"


@dataclass(frozen=True)
class TagDrift:
    """
    Differences between a desired and an actual tag set.

    Attributes:
        status: Overall comparison outcome.
        missing: Desired keys not present remotely.
        unexpected: Remote keys not in the desired set.
        changed: Keys present on both sides with different values,
            mapped to (desired values, actual values).
        actual: Remote tag set, or None when absent.
    """

    status: DriftStatus
    missing: tuple[str, ...] = ()
    unexpected: tuple[str, ...] = ()
    changed: dict[str, tuple[frozenset[str], frozenset[str]]] = field(
        default_factory=dict
    )
    actual: TagSet | None = None

    @property
    def in_sync(self) -> bool:
        return self.status is DriftStatus.IN_SYNC


def compare(desired: TagSet, actual: TagSet | None) -> TagDrift:
    """Compare ``desired`` with ``actual`` (None meaning absent)."""
    if not actual:
        return TagDrift(status=DriftStatus.ABSENT, missing=tuple(desired.keys()))

    want = desired.as_dict()
    have = actual.as_dict()
    missing = tuple(k for k in want if k not in have)
    unexpected = tuple(k for k in have if k not in want)
    changed = {
        k: (want[k], have[k]) for k in want if k in have and want[k] != have[k]
    }

    status = (
        DriftStatus.IN_SYNC
        if not (missing or unexpected or changed)
        else DriftStatus.DRIFTED
    )
    return TagDrift(
        status=status,
        missing=missing,
        unexpected=unexpected,
        changed=changed,
        actual=actual,
    )
