import sys
from datetime import datetime

import numpy as np
from qtpy import API_NAME
from qtpy.QtCore import Qt, QTimer
from qtpy.QtWidgets import QApplication, QLabel, QMainWindow, QVBoxLayout, QWidget
from vispy import app, scene
from vispy.visuals.transforms import STTransform

from .manager import create_manager
from .visuals import SwirlVisual

try:
    app.use_app(API_NAME)
except Exception:
    app.use_app("pyqt5")

FRAME_MS = 16
# Window positions are unreliable right after the first show
JOIN_DELAY_MS = 500
FALLOFF = 0.05


def shared_time():
    """Seconds since local midnight, so every window animates in phase."""
    now = datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return (now - midnight).total_seconds()


class TetherWindow(QMainWindow):
    """
    One surface: draws a swirl for every open window, in screen space.

    The scene is offset by this window's screen position, so swirls of
    other windows appear where those windows actually sit on screen.
    """

    def __init__(self, metadata=None, config=None, manager=None):
        super().__init__()
        self.setAttribute(Qt.WA_DeleteOnClose)
        self.setWindowTitle("pytether")
        self.resize(640, 480)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        self.layout = QVBoxLayout(central_widget)
        self.layout.setContentsMargins(0, 0, 0, 0)
        self.layout.setSpacing(0)

        self.canvas = scene.SceneCanvas(keys=None, bgcolor="black", show=False)
        self.layout.addWidget(self.canvas.native, 1)

        self.info_label = QLabel("Waiting for other windows")
        self.info_label.setStyleSheet(
            "background-color: #333; color: #EEE; padding: 4px; font-family: monospace;"
        )
        self.info_label.setFixedHeight(25)
        self.layout.addWidget(self.info_label, 0)

        # Everything drawn lives under `world`, which carries the scene offset
        self.world = scene.Node(parent=self.canvas.scene)
        self.world.transform = STTransform()
        self.swirls = []
        self.scene_offset = np.zeros(2)
        self.scene_offset_target = np.zeros(2)

        self.metadata = metadata or {}
        self.manager = manager or create_manager(self, config)
        self.manager.set_win_shape_change_callback(self.update_window_shape)
        self.manager.set_win_change_callback(self.windows_updated)

        self.frame_timer = QTimer(self)
        self.frame_timer.timeout.connect(self.render_frame)

        self.join_timer = QTimer(self)
        self.join_timer.setSingleShot(True)
        self.join_timer.timeout.connect(self.join)

    def showEvent(self, event):
        super().showEvent(event)
        if not self.manager.initialized:
            self.join_timer.start(JOIN_DELAY_MS)

    def join(self):
        if self.manager.initialized or not self.isVisible():
            return
        self.manager.init(self.metadata)
        self.update_window_shape(self.manager.own_entry.shape, easing=False)
        self.frame_timer.start(FRAME_MS)

    def closeEvent(self, event):
        self.join_timer.stop()
        self.frame_timer.stop()
        self.manager.depart()
        super().closeEvent(event)

    # ---- Registry callbacks ----

    def windows_updated(self):
        """Rebuild one swirl per registered window, in registry order."""
        for swirl in self.swirls:
            swirl.remove()
        self.swirls = []

        wins = self.manager.get_windows()
        for i, win in enumerate(wins):
            self.swirls.append(SwirlVisual(self.world, i, win.shape.center(), falloff=FALLOFF))

        index = next(
            (i for i, w in enumerate(wins) if w.id == self.manager.window_id), None
        )
        self.info_label.setText(f"window {index} of {len(wins)}")

    def update_window_shape(self, shape, easing=True):
        self.scene_offset_target = np.array([-shape.x, -shape.y], dtype=float)
        if not easing:
            self.scene_offset = self.scene_offset_target.copy()

    # ---- Frame loop ----

    def render_frame(self):
        t = shared_time()
        self.manager.update()

        self.scene_offset += (self.scene_offset_target - self.scene_offset) * FALLOFF
        self.world.transform.translate = self.scene_offset

        wins = self.manager.get_windows()
        for swirl, win in zip(self.swirls, wins):
            swirl.update_target(win.shape.center())
            swirl.animate(t)

        self.canvas.update()


def show(metadata=None, config=None):
    """Open a new surface. Creates the QApplication if needed."""
    qt_app = QApplication.instance()
    if qt_app is None:
        qt_app = QApplication(sys.argv)

    from .theme import DARK_THEME

    qt_app.setStyleSheet(DARK_THEME)

    window = TetherWindow(metadata=metadata, config=config)
    window.show()
    return window


def run_app():
    """Start the Qt event loop."""
    qt_app = QApplication.instance()
    if qt_app:
        return qt_app.exec_()
    return 0
