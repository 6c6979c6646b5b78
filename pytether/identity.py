import time
import uuid


def new_window_id():
    """
    Generate a fresh window id.

    A zero-padded nanosecond timestamp followed by a random suffix, so two
    windows created in the same instant still differ and plain string
    ordering roughly follows creation order.
    """
    return f"{time.time_ns():020d}-{uuid.uuid4().hex[:8]}"


class IdentityAllocator:
    """Hands out one id per surface and keeps returning it."""

    def __init__(self, generator=new_window_id):
        self._generator = generator
        self._id = None

    def allocate(self):
        if self._id is None:
            self._id = self._generator()
        return self._id

    @property
    def allocated(self):
        return self._id is not None
