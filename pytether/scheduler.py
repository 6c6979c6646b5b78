"""
Periodic schedulers driving the registry heartbeat.

The registry only needs ``start(interval, callback)`` and ``stop()``, so
its liveness behavior does not depend on any rendering frame rate.
"""

from qtpy.QtCore import QObject, QTimer


class QtScheduler(QObject):
    """Calls back on the Qt event loop every `interval` seconds."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._callback = None
        self._timer.timeout.connect(self._on_timeout)

    @property
    def active(self):
        return self._timer.isActive()

    def start(self, interval, callback):
        self._callback = callback
        self._timer.start(max(1, int(interval * 1000)))

    def stop(self):
        self._timer.stop()
        self._callback = None

    def _on_timeout(self):
        if self._callback is not None:
            self._callback()


class ManualScheduler:
    """Test double: the callback only runs when fire() is called."""

    def __init__(self):
        self.interval = None
        self._callback = None

    @property
    def active(self):
        return self._callback is not None

    def start(self, interval, callback):
        self.interval = interval
        self._callback = callback

    def stop(self):
        self._callback = None

    def fire(self, n=1):
        for _ in range(n):
            if self._callback is None:
                return
            self._callback()
