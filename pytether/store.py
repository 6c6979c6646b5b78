"""
Shared registry store: the only channel between windows.

Every store holds one serialized value under one key and supports

    write(raw)                  overwrite the value (fire-and-forget)
    read_all() -> raw or None   read the current value
    on_remote_change(handler)   handler(raw) runs when *another* writer
                                changes the value, never for own writes
    clear()                     remove the value
    close()                     stop listening

FileStore shares a JSON file between processes of the same user.
MemoryHub/MemoryStore is an in-process stand-in whose notification
delivery is driven explicitly, for tests and single-process demos.
"""

import logging
from collections import deque
from pathlib import Path

from qtpy.QtCore import (
    QFileSystemWatcher,
    QIODevice,
    QLockFile,
    QObject,
    QSaveFile,
    QTimer,
    Signal,
)

from .config import STORE_DIR, STORE_KEY

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_MS = 200


class FileStore(QObject):
    """
    Store backed by ``<directory>/<key>.json``.

    Writes are atomic (QSaveFile renames a temp file into place) and
    serialized between processes with a QLockFile. Change detection uses a
    QFileSystemWatcher plus a polling timer, since watchers can drop
    events when a file is replaced by rename.
    """

    remote_changed = Signal(str)

    def __init__(self, directory=STORE_DIR, key=STORE_KEY, poll_interval=0.25, parent=None):
        super().__init__(parent)
        self.directory = Path(directory)
        self.key = key
        self.path = self.directory / f"{key}.json"
        self.directory.mkdir(parents=True, exist_ok=True)

        self._lock = QLockFile(str(self.directory / f"{key}.json.lock"))
        self._lock.setStaleLockTime(5000)

        # Last value written or observed by this store
        self._last_raw = self._read()

        self._watcher = None
        self._poll_timer = None
        self._poll_interval = poll_interval

    # ---- Store interface ----

    def write(self, raw):
        if not self._lock.tryLock(LOCK_TIMEOUT_MS):
            logger.warning("Could not lock %s, skipping write", self.path)
            return False
        try:
            f = QSaveFile(str(self.path))
            if not f.open(QIODevice.WriteOnly):
                logger.warning("Could not open %s: %s", self.path, f.errorString())
                return False
            f.write(raw.encode("utf-8"))
            if not f.commit():
                logger.warning("Could not commit %s: %s", self.path, f.errorString())
                return False
        finally:
            self._lock.unlock()

        self._last_raw = raw
        self._watch_file()
        return True

    def read_all(self):
        return self._read()

    def on_remote_change(self, handler):
        self.remote_changed.connect(handler)
        self._start_watching()

    def clear(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        self._last_raw = None

    def close(self):
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None
        if self._watcher is not None:
            self._watcher.deleteLater()
            self._watcher = None
        try:
            self.remote_changed.disconnect()
        except (TypeError, RuntimeError):
            # No connections
            pass

    # ---- Change detection ----

    def _read(self):
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return None

    def _start_watching(self):
        if self._watcher is None:
            self._watcher = QFileSystemWatcher(self)
            self._watcher.addPath(str(self.directory))
            self._watcher.directoryChanged.connect(self.check)
            self._watcher.fileChanged.connect(self.check)
            self._watch_file()

        if self._poll_timer is None:
            self._poll_timer = QTimer(self)
            self._poll_timer.timeout.connect(self.check)
            self._poll_timer.start(int(self._poll_interval * 1000))

    def _watch_file(self):
        # A rename replaces the inode, which drops the file from the watcher
        if self._watcher is None or not self.path.exists():
            return
        if str(self.path) not in self._watcher.files():
            self._watcher.addPath(str(self.path))

    def check(self):
        """Emit remote_changed if the stored value differs from the last one seen."""
        raw = self._read()
        if raw == self._last_raw:
            return
        self._last_raw = raw
        self._watch_file()
        self.remote_changed.emit(raw or "")


class MemoryHub:
    """
    The shared value plus a queue of undelivered notifications.

    Each write queues (store, raw) for every other attached store. Tests
    choose when and in which order those are delivered; with
    auto_deliver=True they are delivered immediately.
    """

    def __init__(self, auto_deliver=False):
        self.value = None
        self.auto_deliver = auto_deliver
        self.pending = deque()
        self.stores = []
        self.writes = 0

    def store(self):
        return MemoryStore(self)

    def _write(self, writer, raw):
        self.value = raw
        self.writes += 1
        for s in self.stores:
            if s is not writer and not s.closed:
                self.pending.append((s, raw))
        if self.auto_deliver:
            self.deliver_all()

    def deliver_next(self):
        """Deliver one queued notification. Returns False if none was queued."""
        if not self.pending:
            return False
        target, raw = self.pending.popleft()
        target._notify(raw)
        return True

    def deliver_all(self, max_rounds=10000):
        """Deliver until no notification is queued (new writes included)."""
        delivered = 0
        while self.pending:
            if delivered >= max_rounds:
                raise RuntimeError(
                    f"Store did not settle after {max_rounds} notifications"
                )
            self.deliver_next()
            delivered += 1
        return delivered

    def drop_pending(self):
        """Lose every queued notification, as a suspended window would."""
        self.pending.clear()


class MemoryStore:
    def __init__(self, hub):
        self.hub = hub
        self.closed = False
        self._handlers = []
        hub.stores.append(self)

    def write(self, raw):
        if self.closed:
            return False
        self.hub._write(self, raw)
        return True

    def read_all(self):
        return self.hub.value

    def on_remote_change(self, handler):
        self._handlers.append(handler)

    def clear(self):
        self.hub.value = None

    def close(self):
        self.closed = True
        self._handlers = []

    def _notify(self, raw):
        if self.closed:
            return
        for handler in list(self._handlers):
            handler(raw or "")
