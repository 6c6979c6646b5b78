"""Test that surfaces open, join the registry and quit cleanly.

Runs the real Qt/vispy window in a subprocess (offscreen platform) so a
crash in the GL or Qt teardown shows up as an exit code instead of taking
the test runner down with it.

Segfaults result in exit code -11 (SIGSEGV) on Linux.
"""

import json
import os
import signal
import subprocess
import sys

import pytest

SCRIPT = """
import json
import sys
from qtpy.QtCore import QTimer
from qtpy.QtWidgets import QApplication

# Must create QApplication before importing pytether UI components
app = QApplication(sys.argv)

from pytether.config import SyncConfig
from pytether.ui import show

config = SyncConfig(store_dir={store_dir!r}, heartbeat_interval=0.2)
windows = [show({{"index": i}}, config=config) for i in range({n_windows})]

def report():
    print(json.dumps([[e.id for e in w.manager.get_windows()] for w in windows]))
    sys.stdout.flush()

def close_all():
    for w in windows:
        w.close()
    QTimer.singleShot(200, app.quit)

QTimer.singleShot(1500, report)
QTimer.singleShot(1800, close_all if {close} else app.quit)

sys.exit(app.exec_())
"""


def run_quit_test(store_dir, n_windows, close, timeout=15.0):
    script = SCRIPT.format(store_dir=str(store_dir), n_windows=n_windows, close=close)
    result = subprocess.run(
        [sys.executable, "-c", script],
        capture_output=True,
        text=True,
        timeout=timeout,
        env={**os.environ, "QT_QPA_PLATFORM": "offscreen"},
    )
    return result.returncode, result.stdout, result.stderr


def exit_code_to_signal_name(code: int) -> str:
    """Convert negative exit code to signal name."""
    if code >= 0:
        return f"exit({code})"
    try:
        return f"{signal.Signals(-code).name} (exit code {code})"
    except ValueError:
        return f"signal {-code} (exit code {code})"


@pytest.mark.parametrize("close", [True, False])
def test_windows_join_and_quit(tmp_path, close):
    try:
        exit_code, stdout, stderr = run_quit_test(tmp_path, n_windows=2, close=close)
    except subprocess.TimeoutExpired:
        pytest.skip("Qt event loop did not finish (no usable offscreen platform)")

    assert exit_code != -signal.SIGSEGV, (
        f"Segmentation fault: {exit_code_to_signal_name(exit_code)}\n{stderr[:500]}"
    )
    if exit_code != 0:
        # No GL context or Qt platform plugin in this environment
        pytest.skip(f"window could not start: {exit_code_to_signal_name(exit_code)}")

    views = json.loads(stdout.strip().splitlines()[-1])
    assert len(views) == 2
    assert views[0] == views[1]
    assert len(views[0]) == 2

    stored = json.loads((tmp_path / "windows.json").read_text())
    if close:
        # Both windows departed
        assert stored == []
    else:
        # Killed without departing: entries stay until their liveness timeout
        assert sorted(e["id"] for e in stored) == sorted(views[0])


EARLY_CLOSE_SCRIPT = """
import json
import sys
from qtpy.QtCore import QTimer
from qtpy.QtWidgets import QApplication

app = QApplication(sys.argv)
app.setQuitOnLastWindowClosed(False)

from pytether.config import SyncConfig
from pytether.ui import JOIN_DELAY_MS, show

config = SyncConfig(store_dir={store_dir!r}, heartbeat_interval=0.2)
window = show(config=config)
manager = window.manager

def report():
    print(json.dumps(manager.initialized))
    sys.stdout.flush()
    app.quit()

# Closed before the delayed join is due
QTimer.singleShot(100, window.close)
QTimer.singleShot(JOIN_DELAY_MS + 500, report)

sys.exit(app.exec_())
"""


def test_window_closed_before_join_never_registers(tmp_path):
    script = EARLY_CLOSE_SCRIPT.format(store_dir=str(tmp_path))
    try:
        result = subprocess.run(
            [sys.executable, "-c", script],
            capture_output=True,
            text=True,
            timeout=15.0,
            env={**os.environ, "QT_QPA_PLATFORM": "offscreen"},
        )
    except subprocess.TimeoutExpired:
        pytest.skip("Qt event loop did not finish (no usable offscreen platform)")

    assert result.returncode != -signal.SIGSEGV, (
        f"Segmentation fault: {exit_code_to_signal_name(result.returncode)}\n"
        f"{result.stderr[:500]}"
    )
    if result.returncode != 0:
        pytest.skip(
            f"window could not start: {exit_code_to_signal_name(result.returncode)}"
        )

    assert json.loads(result.stdout.strip().splitlines()[-1]) is False
    store_file = tmp_path / "windows.json"
    if store_file.exists():
        assert json.loads(store_file.read_text() or "[]") == []
