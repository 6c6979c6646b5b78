"""
Window shapes and the local shape tracker.

A shape is the screen-space rectangle of a window: position (x, y) of the
client area and its size (w, h).
"""

from collections import namedtuple


class Shape(namedtuple("Shape", ["x", "y", "w", "h"])):
    __slots__ = ()

    def center(self):
        return (self.x + self.w * 0.5, self.y + self.h * 0.5)

    def differs(self, other, epsilon=0.0):
        """True if any component moved by more than epsilon."""
        if other is None:
            return True
        return any(abs(a - b) > epsilon for a, b in zip(self, other))

    def to_dict(self):
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @classmethod
    def from_dict(cls, data):
        values = [data[k] for k in cls._fields]
        for v in values:
            # bool is an int subclass but never a valid coordinate
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise TypeError(f"Shape component must be a number, got {v!r}")
        return cls(*values)


def widget_shape_source(widget):
    """
    Return a callable that reads a Qt top-level widget's screen geometry.

    Raises RuntimeError from Qt once the underlying C++ widget is gone;
    ShapeTracker treats that as "no data".
    """

    def read():
        geom = widget.geometry()
        return Shape(geom.x(), geom.y(), geom.width(), geom.height())

    return read


class ShapeTracker:
    """
    Samples the local window shape from a host-environment source.

    The source returns a Shape, a 4-sequence, or None. When it has nothing
    to say, the last known shape is returned instead.
    """

    def __init__(self, source, initial=None):
        self._source = source
        self._last = Shape(*initial) if initial is not None else Shape(0, 0, 0, 0)

    @property
    def last_shape(self):
        return self._last

    def sample(self):
        try:
            value = self._source()
        except RuntimeError:
            return self._last

        if value is None:
            return self._last
        if not isinstance(value, Shape):
            value = Shape(*value)
        self._last = value
        return value
