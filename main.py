from PySide6.QtGui import QFont
from PySide6.QtWidgets import QApplication, QMainWindow

from diskman.components.browser import BrowserView
from diskman.services.config import configure_logging


class MainWindow(QMainWindow):
    def __init__(self, browser: BrowserView | None = None) -> None:
        super().__init__()
        self.setWindowTitle("Disk Manager")

        font = QFont()
        font.setPixelSize(13)
        QApplication.instance().setFont(font)

        self.browser = browser or BrowserView()
        self.browser.location_display.textChanged.connect(self._on_location_changed)
        self.setCentralWidget(self.browser)
        self.resize(800, 560)

    def _on_location_changed(self, path: str) -> None:
        self.setWindowTitle("Disk Manager" if path in ("", "/") else path)

    def closeEvent(self, event) -> None:
        # Only the top-level window receives close events
        self.browser.shutdown()
        super().closeEvent(event)


if __name__ == "__main__":
    configure_logging()
    app = QApplication([])
    window = MainWindow()
    window.show()
    app.exec()
