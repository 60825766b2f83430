from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from PySide6.QtCore import QPoint, Qt, QTimer, QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QHBoxLayout,
    QHeaderView,
    QInputDialog,
    QLabel,
    QLineEdit,
    QMenu,
    QPushButton,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from diskman.components.preview_dialogs import DialogPreviewPresenter
from diskman.components.server_form import ServerSettingsForm
from diskman.services import config
from diskman.services.http.client import FileEntry, PathSource, RemoteDirectoryClient
from diskman.services.navigation import LoadState, NavigationController
from diskman.services.preview import PreviewDispatcher
from diskman.services.workers import RemoteCallRunner

logger = logging.getLogger(__name__)

NOTIFICATION_TIMEOUT_MS = 4000


def _default_client(base_url: str | None = None) -> RemoteDirectoryClient:
    return RemoteDirectoryClient(
        base_url or config.resolve_base_url(), timeout=config.resolve_timeout()
    )


class BrowserView(QWidget):
    """Single-widget UI over one NavigationController.

    Top bar elements:
    - Back (go up one folder)
    - Location display (read-only)
    - Refresh, Upload, New folder, Download, Delete, Settings
    """

    def __init__(
        self,
        client: RemoteDirectoryClient | None = None,
        *,
        runner: RemoteCallRunner | None = None,
        client_factory: Callable[..., RemoteDirectoryClient] = _default_client,
        player_factory: Callable[[Any], Any] | None = None,
    ) -> None:
        super().__init__()
        self._client_factory = client_factory
        self._player_factory = player_factory
        self.runner = runner or RemoteCallRunner(self)
        self.controller: NavigationController | None = None
        self.dispatcher: PreviewDispatcher | None = None

        self.init_ui()
        self._bind(client or client_factory())
        self.controller.initialize()

    def init_ui(self) -> None:
        # --- Top bar UI ---
        self.top_bar = QHBoxLayout()

        self.back_btn = QPushButton("Up")
        self.back_btn.setToolTip("Go up one folder")
        self.back_btn.clicked.connect(self.on_back_clicked)
        self.top_bar.addWidget(self.back_btn)

        self.location_display = QLineEdit()
        self.location_display.setReadOnly(True)
        self.top_bar.addWidget(self.location_display, 1)

        self.refresh_btn = QPushButton("Refresh")
        self.upload_btn = QPushButton("Upload")
        self.new_folder_btn = QPushButton("New folder")
        self.download_btn = QPushButton("Download")
        self.delete_btn = QPushButton("Delete")
        self.config_btn = QPushButton("Settings")
        for btn in (
            self.refresh_btn,
            self.upload_btn,
            self.new_folder_btn,
            self.download_btn,
            self.delete_btn,
            self.config_btn,
        ):
            self.top_bar.addWidget(btn)

        self.refresh_btn.clicked.connect(self.on_refresh_clicked)
        self.upload_btn.clicked.connect(self.on_upload_clicked)
        self.new_folder_btn.clicked.connect(self.on_new_folder_clicked)
        self.download_btn.clicked.connect(self.download_selected)
        self.delete_btn.clicked.connect(self.delete_selected)
        self.config_btn.clicked.connect(self.open_config_dialog)

        # --- Listing ---
        self.file_tree = QTreeWidget()
        self.file_tree.setHeaderLabels(["Name", "Type"])
        self.file_tree.setRootIsDecorated(False)
        self.file_tree.setUniformRowHeights(True)
        self.file_tree.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        header = self.file_tree.header()
        header.setSectionResizeMode(QHeaderView.ResizeMode.ResizeToContents)
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self.file_tree.itemActivated.connect(self.on_item_activated)
        self.file_tree.itemSelectionChanged.connect(self._on_selection_changed)
        self.file_tree.customContextMenuRequested.connect(self._show_context_menu)

        self.status_label = QLabel("Loading…")
        self.status_label.setStyleSheet("color: #aaa;")

        # Transient notification; clears itself after a few seconds
        self.notification_label = QLabel("")
        self.notification_label.setWordWrap(True)
        self.notification_label.setVisible(False)
        self._notification_timer = QTimer(self)
        self._notification_timer.setSingleShot(True)
        self._notification_timer.timeout.connect(self.clear_notification)

        layout = QVBoxLayout()
        layout.addLayout(self.top_bar)
        layout.addWidget(self.file_tree, 1)
        layout.addWidget(self.status_label)
        layout.addWidget(self.notification_label)
        self.setLayout(layout)
        self._on_selection_changed()

    # ---- wiring ----
    def _bind(self, client: RemoteDirectoryClient) -> None:
        if self.controller is not None:
            self.controller.detach()
            self.controller.deleteLater()
        self.client = client
        self.controller = NavigationController(client, self, runner=self.runner)
        self.controller.listing_changed.connect(self._populate)
        self.controller.path_changed.connect(self._on_path_changed)
        self.controller.state_changed.connect(self._on_state_changed)
        self.controller.error_raised.connect(self.show_error)
        self.controller.notice.connect(self.show_notice)
        self.presenter = DialogPreviewPresenter(
            self,
            client,
            self.runner,
            self.show_notice,
            player_factory=self._player_factory,
        )
        self.dispatcher = PreviewDispatcher(self.presenter)

    def reconnect(self, client: RemoteDirectoryClient) -> None:
        self.file_tree.clear()
        self._bind(client)
        self.controller.initialize()

    # ---- controller signals ----
    def _populate(self, entries: List[FileEntry]) -> None:
        self.file_tree.clear()
        items: list[QTreeWidgetItem] = []
        for entry in entries:
            item = QTreeWidgetItem([entry.name, "Folder" if entry.is_dir else "File"])
            item.setData(0, Qt.ItemDataRole.UserRole, entry)
            items.append(item)
        if items:
            self.file_tree.addTopLevelItems(items)
        self._update_status()

    def _on_path_changed(self, path: str) -> None:
        self.location_display.setText("/" + path)
        self.back_btn.setEnabled(bool(path))

    def _on_state_changed(self, state: LoadState) -> None:
        if state is LoadState.LOADING:
            self.status_label.setText("Loading…")
        else:
            self._update_status()

    def _update_status(self) -> None:
        count = self.file_tree.topLevelItemCount()
        if count == 0:
            self.status_label.setText("Empty folder")
        else:
            self.status_label.setText(f"{count} item{'' if count == 1 else 's'}")

    # ---- notifications ----
    def show_error(self, message: str) -> None:
        logger.warning(message)
        self._notify(message, "color: #c62828;")

    def show_notice(self, message: str) -> None:
        self._notify(message, "")

    def _notify(self, message: str, style: str) -> None:
        self.notification_label.setStyleSheet(style)
        self.notification_label.setText(message)
        self.notification_label.setVisible(True)
        self._notification_timer.start(NOTIFICATION_TIMEOUT_MS)

    def clear_notification(self) -> None:
        self.notification_label.clear()
        self.notification_label.setVisible(False)

    # ---- selection ----
    def selected_entry(self) -> FileEntry | None:
        item = self.file_tree.currentItem()
        if item is None:
            return None
        data = item.data(0, Qt.ItemDataRole.UserRole)
        return data if isinstance(data, FileEntry) else None

    def _on_selection_changed(self) -> None:
        entry = self.selected_entry()
        self.download_btn.setEnabled(entry is not None and not entry.is_dir)
        self.delete_btn.setEnabled(entry is not None)

    # ---- UI handlers ----
    def on_item_activated(self, item: QTreeWidgetItem, _column: int = 0) -> None:
        entry = item.data(0, Qt.ItemDataRole.UserRole)
        if not isinstance(entry, FileEntry):
            return
        if entry.is_dir:
            self.controller.enter_folder(entry.name)
        else:
            self.dispatcher.dispatch(entry.name, self.controller.download_url(entry.name))

    def on_back_clicked(self) -> None:
        self.controller.go_up()

    def on_refresh_clicked(self) -> None:
        self.controller.refresh()

    def on_upload_clicked(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(self, "Select File to Upload")
        if file_path:
            self.controller.upload_entry(PathSource(file_path))

    def on_new_folder_clicked(self) -> None:
        name, ok = QInputDialog.getText(self, "New Folder", "Folder Name")
        name = (name or "").strip()
        if ok and name:
            self.controller.create_folder(name)

    def download_selected(self) -> None:
        entry = self.selected_entry()
        if entry is not None and not entry.is_dir:
            self.download(entry.name)

    def download(self, name: str) -> None:
        url = self.controller.download_url(name)
        if not QDesktopServices.openUrl(QUrl(url)):
            self.show_error("Could not launch download url")

    def delete_selected(self) -> None:
        entry = self.selected_entry()
        if entry is not None:
            self.controller.delete_entry(entry.name)

    def _show_context_menu(self, pos: QPoint) -> None:
        item = self.file_tree.itemAt(pos)
        if item is None:
            return
        self.file_tree.setCurrentItem(item)
        entry = self.selected_entry()
        if entry is None:
            return
        menu = QMenu(self)
        if not entry.is_dir:
            menu.addAction("Download", lambda: self.download(entry.name))
        menu.addAction("Delete", lambda: self.controller.delete_entry(entry.name))
        menu.exec(self.file_tree.viewport().mapToGlobal(pos))

    def open_config_dialog(self) -> None:
        # Wrap ServerSettingsForm inside a dialog
        dlg = QDialog(self)
        dlg.setWindowTitle("Server Settings")
        v = QVBoxLayout(dlg)

        def on_connected(info: Dict[str, str]) -> None:
            try:
                base_url = info.get("base_url", "")
                if base_url.rstrip("/") != self.client.base:
                    self.reconnect(self._client_factory(base_url))
            finally:
                dlg.accept()

        v.addWidget(ServerSettingsForm(callback=on_connected))
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(dlg.reject)
        v.addWidget(buttons)

        dlg.setModal(True)
        dlg.resize(480, 160)
        dlg.exec()

    def shutdown(self) -> None:
        """Drop late results and wait for calls still running."""
        if self.controller is not None:
            self.controller.detach()
        self.runner.shutdown()
