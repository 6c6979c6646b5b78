# %%
import time

from pytether.config import SyncConfig
from pytether.registry import SnapshotError, deserialize_entries
from pytether.store import FileStore


# %%
def registry_tree(entries, now=None, timeout=None):
    """
    Print the registry as a tree, one branch per window.

    Args:
        entries: list of WindowEntry, in registry order.
        now: reference time for the age column (defaults to time.time()).
        timeout: liveness timeout; entries older than this are flagged.
    """
    now = time.time() if now is None else now
    for i, e in enumerate(entries):
        last = i == len(entries) - 1
        connector = "└── " if last else "├── "
        child_pre = "    " if last else "│   "

        age = now - e.last_seen
        stale = " STALE" if timeout is not None and age > timeout else ""
        print(f"{connector}[{i}] {e.id}  (age {age:.1f}s){stale}")
        print(f"{child_pre}shape: x={e.shape.x} y={e.shape.y} w={e.shape.w} h={e.shape.h}")
        if e.metadata:
            print(f"{child_pre}metadata: {e.metadata}")


# %%
config = SyncConfig.from_env()
store = FileStore(config.store_dir, config.store_key)
raw = store.read_all()
print(f"{store.path} ({len(raw or '')} bytes)")

# %%
try:
    registry_tree(deserialize_entries(raw), timeout=config.liveness_timeout)
except SnapshotError as e:
    print(f"Unreadable registry: {e}")
