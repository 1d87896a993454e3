"""
Application entry point.
"""
import sys

from PyQt5.QtWidgets import QApplication

from penmark.config import load_settings
from penmark.ui import MainWindow
from penmark.utils import configure_logging


def main():
    """
    Run the highlighter.

    An optional PDF path passed on the command line is opened on startup.
    """
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)

    app = QApplication(sys.argv)
    app.setApplicationName("Penmark")

    file_path = None
    if len(sys.argv) > 1:
        file_path = sys.argv[1]

    window = MainWindow(settings, file_path)
    window.showMaximized()
    sys.exit(app.exec_())
