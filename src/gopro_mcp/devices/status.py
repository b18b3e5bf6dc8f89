"""Camera status snapshots and the deltas between them.

A CameraStatus is immutable once built: the poller constructs a new one for
every round and swaps it in whole, so a subscriber can keep a reference as
long as it likes without seeing it change or seeing half of one round and
half of the next.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from gopro_mcp.drivers.gopro import StatusValue


class CameraStatus(Mapping[str, StatusValue]):
    """Read-only mapping of status label to value, with capture time.

    Example:
        >>> status = CameraStatus({"CameraMode": "Video", "BatteryLevel": 80})
        >>> status["CameraMode"]
        'Video'
        >>> status["CameraMode"] = "Photo"
        Traceback (most recent call last):
        TypeError: 'CameraStatus' object does not support item assignment
    """

    __slots__ = ("_values", "_captured_at")

    def __init__(
        self,
        values: Mapping[str, StatusValue],
        captured_at: datetime | None = None,
    ) -> None:
        # Copy first so later mutation of the source cannot leak in.
        self._values: Mapping[str, StatusValue] = MappingProxyType(dict(values))
        self._captured_at = captured_at or datetime.now(UTC)

    @property
    def captured_at(self) -> datetime:
        return self._captured_at

    def __getitem__(self, key: str) -> StatusValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CameraStatus):
            return dict(self._values) == dict(other._values)
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CameraStatus({dict(self._values)!r})"

    def to_dict(self) -> dict[str, StatusValue]:
        """Plain mutable copy, for JSON output."""
        return dict(self._values)


@dataclass(frozen=True, slots=True)
class StatusChange:
    """One key whose value differs between two snapshots.

    ``old`` is None when the key is new; ``new`` is None when it vanished.
    """

    key: str
    old: StatusValue | None
    new: StatusValue | None


#: Changes between two snapshots, in the order keys appear in the newer one
#: (keys only in the older snapshot last).
StatusDelta = tuple[StatusChange, ...]


def diff_status(
    previous: Mapping[str, StatusValue] | None,
    current: Mapping[str, StatusValue],
) -> StatusDelta:
    """Compute the delta from ``previous`` to ``current``.

    With no previous snapshot every key of ``current`` is a change from
    None, which is exactly what a full "populate" needs.

    Example:
        >>> diff_status({"mode": "Video", "battery": 80},
        ...             {"mode": "Photo", "battery": 80})
        (StatusChange(key='mode', old='Video', new='Photo'),)
    """
    if previous is None:
        return tuple(StatusChange(key, None, value) for key, value in current.items())

    changes = [
        StatusChange(key, previous.get(key), value)
        for key, value in current.items()
        if key not in previous or previous[key] != value
    ]
    changes.extend(
        StatusChange(key, previous[key], None)
        for key in previous
        if key not in current
    )
    return tuple(changes)


class UpdateKind(Enum):
    """How a collaborator should apply a status update."""

    POPULATE = "populate"  # First snapshot: render every key
    UPDATE = "update"  # Later snapshot: apply only the delta


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    """Payload of OnStatusChanged.

    Attributes:
        kind: POPULATE for the first snapshot after Ready, UPDATE after.
        snapshot: Complete status after this round.
        delta: Keys that changed. For POPULATE, every key.
    """

    kind: UpdateKind
    snapshot: CameraStatus
    delta: StatusDelta

    @property
    def changed(self) -> bool:
        return bool(self.delta)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "captured_at": self.snapshot.captured_at.isoformat(),
            "status": self.snapshot.to_dict(),
            "changes": [
                {"key": c.key, "old": c.old, "new": c.new} for c in self.delta
            ],
        }
