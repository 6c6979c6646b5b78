"""pytether - keep separate application windows aware of each other

Windows share a registry through a per-user store (no server). Based on
PyQt (via qtpy) and vispy.

"""

__version__ = "0.1.0"

from .config import SyncConfig
from .identity import IdentityAllocator, new_window_id
from .manager import WindowManager, create_manager
from .registry import (
    SnapshotError,
    WindowEntry,
    deserialize_entries,
    merge_entries,
    prune_stale,
    serialize_entries,
    sort_entries,
)
from .scheduler import ManualScheduler, QtScheduler
from .shapes import Shape, ShapeTracker, widget_shape_source
from .store import FileStore, MemoryHub, MemoryStore

__all__ = [
    "__version__",
    # config
    "SyncConfig",
    # identity & shapes
    "IdentityAllocator",
    "new_window_id",
    "Shape",
    "ShapeTracker",
    "widget_shape_source",
    # registry
    "WindowEntry",
    "SnapshotError",
    "serialize_entries",
    "deserialize_entries",
    "merge_entries",
    "prune_stale",
    "sort_entries",
    # stores & schedulers
    "FileStore",
    "MemoryHub",
    "MemoryStore",
    "QtScheduler",
    "ManualScheduler",
    # manager
    "WindowManager",
    "create_manager",
]
