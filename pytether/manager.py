import json
import logging
import time

from qtpy.QtCore import QObject, Signal

from .config import SyncConfig
from .identity import IdentityAllocator
from .registry import (
    SnapshotError,
    WindowEntry,
    deserialize_entries,
    entry_ids,
    merge_entries,
    prune_stale,
    serialize_entries,
)
from .scheduler import QtScheduler
from .shapes import ShapeTracker, widget_shape_source
from .store import FileStore

logger = logging.getLogger(__name__)


class WindowManager(QObject):
    """
    Keeps this window's view of every open window in sync.

    Each window owns exactly one entry (id, shape, metadata, last_seen) and
    is the only one allowed to change it. The whole registry is written to
    the shared store on every publish; other windows merge what they read
    with their own entry and never write on someone else's behalf.

    Windows that vanish without calling depart() are dropped once their
    last_seen is older than config.liveness_timeout.

    Emits signals alongside the optional callbacks so that Qt components
    can connect directly.
    """

    shape_changed = Signal(object)  # Emits the new Shape of this window
    windows_changed = Signal()  # Membership (ordered ids) changed

    def __init__(
        self,
        store,
        shape_source,
        config=None,
        clock=time.time,
        scheduler=None,
        identity=None,
    ):
        super().__init__()
        self.store = store
        self.config = (config or SyncConfig()).validate()
        self._clock = clock
        self._scheduler = scheduler
        self._identity = identity or IdentityAllocator()
        if isinstance(shape_source, ShapeTracker):
            self._tracker = shape_source
        else:
            self._tracker = ShapeTracker(shape_source)

        self._entries = []
        self._own = None
        self._published = None  # Own entry as last written to the store
        self._last_publish = None
        self._membership = ()  # Ordered ids last reported to listeners

        self._shape_callback = None
        self._windows_callback = None

        self._initialized = False
        self._departed = False

    # ---- Properties ----

    @property
    def initialized(self):
        return self._initialized

    @property
    def departed(self):
        return self._departed

    @property
    def window_id(self):
        return self._own.id if self._own is not None else None

    @property
    def own_entry(self):
        return self._own

    # ---- Public API ----

    def init(self, metadata=None):
        """
        Join the registry: create our entry, merge whatever the store holds,
        publish, and start listening for other windows.
        """
        if self._initialized:
            logger.warning("WindowManager.init() called twice for %s", self.window_id)
            return

        now = self._clock()
        wid = self._identity.allocate()
        # Stored as it will read back from the store (tuples become lists)
        metadata = json.loads(json.dumps(dict(metadata or {})))
        self._own = WindowEntry(wid, self._tracker.sample(), metadata, now)

        remote = self._read_store()
        merged = merge_entries([self._own], remote, own_id=wid)
        self._entries = self._prune(merged, now)
        self._initialized = True

        self._publish(now)
        self.store.on_remote_change(self._on_external_change)
        if self._scheduler is not None:
            self._scheduler.start(self.config.heartbeat_interval, self.update)

        logger.info("Window %s joined (%d known)", wid, len(self._entries))
        self._check_membership()

    def update(self):
        """
        Re-sample our shape. Publishes on a real shape change, otherwise at
        most once per heartbeat interval. Also sweeps stale windows.
        """
        if not self._initialized:
            raise RuntimeError("WindowManager.init() must be called before update()")
        if self._departed:
            return

        now = self._clock()
        shape = self._tracker.sample()
        self._entries = self._prune(self._entries, now)

        moved = shape.differs(self._own.shape, self.config.shape_epsilon)
        if moved:
            self._own = self._own.touched(now, shape)
            self._publish(now)
        elif now - self._last_publish >= self.config.heartbeat_interval:
            self._publish(now)

        if moved:
            self._fire_shape_changed(self._own.shape)
        self._check_membership()

    def depart(self):
        """
        Best-effort removal of our entry from the store.

        May never run if the process is killed; other windows then drop us
        after the liveness timeout.
        """
        if not self._initialized or self._departed:
            return
        self._departed = True
        if self._scheduler is not None:
            self._scheduler.stop()

        wid = self._own.id
        remaining = [e for e in self._read_store() if e.id != wid]
        self.store.write(serialize_entries(remaining))
        self.store.close()
        self._entries = [e for e in self._entries if e.id != wid]
        logger.info("Window %s departed", wid)

    def get_windows(self):
        """Ordered list of every known window (ascending id)."""
        return list(self._entries)

    def set_win_shape_change_callback(self, callback):
        self._shape_callback = callback

    def set_win_change_callback(self, callback):
        self._windows_callback = callback

    # Names used by browser-side callers
    getWindows = get_windows
    setWinShapeChangeCallback = set_win_shape_change_callback
    setWinChangeCallback = set_win_change_callback

    # ---- Store notifications ----

    def _on_external_change(self, raw):
        if not self._initialized or self._departed:
            return

        now = self._clock()
        wid = self._own.id
        corrupt = False
        try:
            remote = deserialize_entries(raw)
        except SnapshotError as e:
            logger.warning("Ignoring unreadable registry snapshot: %s", e)
            remote = []
            corrupt = True

        # The snapshot decides who is still around; local copies only win
        # when they are newer than what the snapshot carries.
        known = {e.id: e for e in self._entries}
        local = [self._own] + [known[e.id] for e in remote if e.id in known]
        self._entries = self._prune(merge_entries(local, remote, own_id=wid), now)

        # An older last_seen alone is left to the next heartbeat: concurrent
        # writers always carry slightly old copies of each other.
        theirs = next((e for e in remote if e.id == wid), None)
        if corrupt or theirs is None or self._content_differs(theirs):
            logger.debug("Republishing %s after foreign snapshot", wid)
            self._publish(now)

        self._check_membership()

    # ---- Internals ----

    def _read_store(self):
        try:
            return deserialize_entries(self.store.read_all())
        except SnapshotError as e:
            logger.warning("Stored registry is unreadable, starting empty: %s", e)
            return []

    def _content_differs(self, copy):
        """True if a stored copy of our entry has an outdated shape or metadata."""
        return (
            copy.shape.differs(self._published.shape)
            or copy.metadata != self._published.metadata
        )

    def _prune(self, entries, now):
        kept = prune_stale(
            entries, now, self.config.liveness_timeout, keep_id=self._own.id
        )
        if len(kept) != len(entries):
            dropped = set(entry_ids(entries)) - set(entry_ids(kept))
            logger.info("Dropping stale windows: %s", ", ".join(sorted(dropped)))
        return kept

    def _publish(self, now):
        self._own = self._own.touched(now)
        self._entries = [self._own if e.id == self._own.id else e for e in self._entries]
        self.store.write(serialize_entries(self._entries))
        self._published = self._own
        self._last_publish = now

    def _check_membership(self):
        ids = entry_ids(self._entries)
        if ids == self._membership:
            return
        self._membership = ids
        self.windows_changed.emit()
        if self._windows_callback is not None:
            self._windows_callback()

    def _fire_shape_changed(self, shape):
        self.shape_changed.emit(shape)
        if self._shape_callback is not None:
            self._shape_callback(shape)


def create_manager(widget, config=None):
    """
    Build a WindowManager for a Qt top-level widget, sharing the file store
    under config.store_dir with every other window of this user.
    """
    config = config or SyncConfig.from_env()
    store = FileStore(config.store_dir, config.store_key, config.poll_interval)
    return WindowManager(
        store,
        widget_shape_source(widget),
        config=config,
        scheduler=QtScheduler(),
    )
