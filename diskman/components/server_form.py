import logging
from typing import Callable, Dict

from PySide6.QtWidgets import QFormLayout, QLabel, QLineEdit, QPushButton, QWidget

from diskman.services import config

logger = logging.getLogger(__name__)


class ServerSettingsForm(QWidget):
    def __init__(self, callback: Callable[[Dict[str, str]], None]) -> None:
        super().__init__()
        self.callback = callback
        self.init_ui()
        self.load_config()

    def init_ui(self) -> None:
        self.base_url_input = QLineEdit()
        self.base_url_input.setPlaceholderText(config.default_base_url())
        self.hint_label = QLabel("Address of the storage backend")
        self.hint_label.setStyleSheet("color: #aaa;")
        self.connect_btn = QPushButton("Connect")

        layout = QFormLayout()
        layout.addRow("Server URL", self.base_url_input)
        layout.addRow(self.hint_label)
        layout.addWidget(self.connect_btn)

        self.connect_btn.clicked.connect(self.on_connect)
        self.base_url_input.returnPressed.connect(self.on_connect)
        self.setLayout(layout)

    def load_config(self) -> None:
        saved = str(config.read_settings().get("base_url", "") or "")
        self.base_url_input.setText(saved)

    def on_connect(self) -> None:
        base_url = self.base_url_input.text().strip() or config.default_base_url()
        try:
            config.save_base_url(base_url)
        except OSError:
            logger.exception("Failed to save server settings")
        info = {"base_url": base_url}
        self.callback(info)
