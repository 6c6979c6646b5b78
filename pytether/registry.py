"""
Registry entries and the pure merge logic shared by every window.

Nothing in this module does I/O. The snapshot written to the shared store
is a JSON array of

    {"id": str, "shape": {"x", "y", "w", "h"}, "metadata": {...}, "lastSeen": float}

ordered by id. There is no version field.
"""

import json
from dataclasses import dataclass, field, replace

from .shapes import Shape


class SnapshotError(ValueError):
    """Raised when a stored snapshot cannot be decoded."""


@dataclass(frozen=True)
class WindowEntry:
    id: str
    shape: Shape
    metadata: dict = field(default_factory=dict)
    last_seen: float = 0.0

    def touched(self, now, shape=None):
        """Copy with a refreshed last_seen (and optionally a new shape)."""
        return replace(
            self,
            shape=self.shape if shape is None else Shape(*shape),
            last_seen=max(self.last_seen, now),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "shape": self.shape.to_dict(),
            "metadata": dict(self.metadata),
            "lastSeen": self.last_seen,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise SnapshotError(f"Entry must be an object, got {type(data).__name__}")
        try:
            wid = data["id"]
            shape = Shape.from_dict(data["shape"])
            last_seen = data["lastSeen"]
        except (KeyError, TypeError) as e:
            raise SnapshotError(f"Malformed entry {data!r}: {e}") from e

        metadata = data.get("metadata")
        if metadata is None:
            metadata = {}
        if not isinstance(wid, str) or not wid:
            raise SnapshotError(f"Entry id must be a non-empty string, got {wid!r}")
        if isinstance(last_seen, bool) or not isinstance(last_seen, (int, float)):
            raise SnapshotError(f"lastSeen must be a number, got {last_seen!r}")
        if not isinstance(metadata, dict):
            raise SnapshotError(f"metadata must be an object, got {metadata!r}")
        return cls(wid, shape, metadata, float(last_seen))


def sort_entries(entries):
    """Deterministic registry order: ascending id."""
    return sorted(entries, key=lambda e: e.id)


def entry_ids(entries):
    """The membership signature compared to decide on window-change events."""
    return tuple(e.id for e in entries)


def serialize_entries(entries):
    return json.dumps([e.to_dict() for e in sort_entries(entries)])


def deserialize_entries(raw):
    """
    Decode a stored snapshot into a list of WindowEntry.

    An empty value decodes to an empty list. Duplicate ids are collapsed,
    keeping the copy with the larger last_seen.
    """
    if raw is None or raw == "":
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise SnapshotError(f"Snapshot must be a list, got {type(data).__name__}")

    return merge_entries([], [WindowEntry.from_dict(item) for item in data])


def merge_entries(local, remote, own_id=None):
    """
    Union two entry lists by id.

    On conflict the entry with the larger last_seen wins (remote on a tie,
    since it is the more recent news), except for
    own_id: the owner is the only authority on its own entry, so the local
    copy is kept even if a foreign copy claims to be newer.
    """
    merged = {}
    for entry in local:
        prev = merged.get(entry.id)
        if prev is None or entry.last_seen > prev.last_seen:
            merged[entry.id] = entry

    for entry in remote:
        prev = merged.get(entry.id)
        if prev is None:
            merged[entry.id] = entry
        elif entry.id == own_id:
            continue
        elif entry.last_seen >= prev.last_seen:
            merged[entry.id] = entry

    return sort_entries(merged.values())


def prune_stale(entries, now, timeout, keep_id=None):
    """Drop entries whose last heartbeat is older than timeout seconds."""
    return [
        e for e in entries if e.id == keep_id or now - e.last_seen <= timeout
    ]
