import pytest

from pytether.config import SyncConfig
from pytether.identity import IdentityAllocator
from pytether.manager import WindowManager
from pytether.scheduler import ManualScheduler
from pytether.shapes import Shape
from pytether.store import MemoryHub


class FakeClock:
    """Settable clock. With tick > 0 every reading also moves it forward."""

    def __init__(self, now=1000.0, tick=0.0):
        self.now = now
        self.tick = tick

    def __call__(self):
        self.now += self.tick
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class Surface:
    """One simulated window: a manager plus a movable shape and event counters."""

    def __init__(self, hub, clock, wid, shape=(0, 0, 100, 100), config=None):
        self.shape = Shape(*shape)
        self.store = hub.store()
        self.scheduler = ManualScheduler()
        self.shape_events = []
        self.window_events = 0
        self.manager = WindowManager(
            self.store,
            lambda: self.shape,
            config=config or SyncConfig(),
            clock=clock,
            scheduler=self.scheduler,
            identity=IdentityAllocator(generator=lambda: wid),
        )
        self.manager.set_win_shape_change_callback(self.shape_events.append)
        self.manager.set_win_change_callback(self._on_windows)

    def _on_windows(self):
        self.window_events += 1

    def move(self, x, y):
        self.shape = self.shape._replace(x=x, y=y)

    def ids(self):
        return [e.id for e in self.manager.get_windows()]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ticking_clock():
    # Every reading is 1 ms later than the previous one, like a real clock
    return FakeClock(tick=0.001)


@pytest.fixture
def hub():
    return MemoryHub()


@pytest.fixture
def make_surface(hub, clock):
    def factory(wid, shape=(0, 0, 100, 100), config=None, clock=clock):
        return Surface(hub, clock, wid, shape=shape, config=config)

    return factory
