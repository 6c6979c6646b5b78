DARK_THEME = """
/* Surfaces sit on a black canvas; keep the chrome out of the way */
QMainWindow, QWidget {
    background-color: #111111;
    color: #d9f7e2;
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
    font-size: 12px;
}

QToolTip {
    background-color: #1f1f1f;
    color: #d9f7e2;
    border: 1px solid #2f6f45;
    padding: 4px;
}

QLabel {
    background-color: transparent;
}
"""
