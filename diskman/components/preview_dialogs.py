import logging
from typing import Any, Callable, Dict, List

from PySide6.QtCore import Qt
from PySide6.QtGui import QPixmap
from PySide6.QtMultimediaWidgets import QVideoWidget
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QSlider,
    QStyle,
    QVBoxLayout,
    QWidget,
)

from diskman.services.http.client import Ok, RemoteDirectoryClient, Result
from diskman.services.media_session import (
    FALLBACK_ASPECT_RATIO,
    MediaPreviewSession,
    SessionState,
)
from diskman.services.workers import RemoteCallRunner

logger = logging.getLogger(__name__)


class ImagePreviewDialog(QDialog):
    """Fetches an image once per URL and shows it; no retry on failure."""

    def __init__(
        self,
        url: str,
        fetch: Callable[[str], Result[bytes]],
        runner: RemoteCallRunner,
        cache: Dict[str, bytes],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.url = url
        self.failed = False
        self._cache = cache
        self._closed = False
        self.finished.connect(self._on_finished)

        self.image_label = QLabel("Loading…")
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_label.setMinimumSize(200, 150)
        layout = QVBoxLayout(self)
        layout.addWidget(self.image_label)

        if url in cache:
            self._render(cache[url])
        else:
            runner.submit(lambda: fetch(url), self._on_loaded)

    def _on_finished(self, _result: int = 0) -> None:
        self._closed = True

    def _on_loaded(self, result: Result[bytes]) -> None:
        if self._closed:
            return
        if isinstance(result, Ok):
            self._render(result.value)
        else:
            logger.warning(f"Image preview failed for {self.url}: {result.detail}")
            self._show_error()

    def _render(self, data: bytes) -> None:
        pixmap = QPixmap()
        if not pixmap.loadFromData(data):
            self._show_error()
            return
        self._cache[self.url] = data
        if pixmap.width() > 1024 or pixmap.height() > 768:
            pixmap = pixmap.scaled(
                1024,
                768,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        self.image_label.setText("")
        self.image_label.setPixmap(pixmap)

    def _show_error(self) -> None:
        self.failed = True
        icon = self.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxCritical)
        self.image_label.setText("")
        self.image_label.setPixmap(icon.pixmap(48, 48))


class TextPreviewDialog(QDialog):
    def __init__(
        self,
        name: str,
        url: str,
        fetch: Callable[[str], Result[str]],
        runner: RemoteCallRunner,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.name = name
        self.setWindowTitle(name)
        self._closed = False
        self.finished.connect(self._on_finished)

        self.status_label = QLabel("Loading…")
        self.status_label.setWordWrap(True)
        self.text_view = QPlainTextEdit()
        self.text_view.setReadOnly(True)
        self.text_view.setVisible(False)
        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addWidget(self.status_label)
        layout.addWidget(self.text_view, 1)
        layout.addWidget(buttons)
        self.resize(640, 480)

        runner.submit(lambda: fetch(url), self._on_loaded)

    def _on_finished(self, _result: int = 0) -> None:
        self._closed = True

    def _on_loaded(self, result: Result[str]) -> None:
        if self._closed:
            return
        if isinstance(result, Ok):
            # Raw body, no parsing or truncation
            self.text_view.setPlainText(result.value)
            self.text_view.setVisible(True)
            self.status_label.setVisible(False)
        else:
            self.setWindowTitle("Error")
            self.status_label.setText(str(result.error))


class VideoPreviewDialog(QDialog):
    """Hosts one media session; closing the dialog always tears it down."""

    def __init__(
        self,
        url: str,
        parent: QWidget | None = None,
        *,
        player_factory: Callable[[Any], Any] | None = None,
    ) -> None:
        super().__init__(parent)
        self.setStyleSheet("QDialog { background-color: black; }")
        self.aspect_ratio = FALLBACK_ASPECT_RATIO

        self.video_widget = QVideoWidget()
        self.video_widget.setVisible(False)
        self.status_label = QLabel("Loading…")
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.status_label.setStyleSheet("color: #aaa;")

        self.play_btn = QPushButton("Play")
        self.pause_btn = QPushButton("Pause")
        self.position_slider = QSlider(Qt.Orientation.Horizontal)
        controls = QHBoxLayout()
        controls.addWidget(self.play_btn)
        controls.addWidget(self.pause_btn)
        controls.addWidget(self.position_slider, 1)
        self._set_controls_enabled(False)

        layout = QVBoxLayout(self)
        layout.addWidget(self.video_widget, 1)
        layout.addWidget(self.status_label, 1)
        layout.addLayout(controls)
        self.resize(640, 400)

        self.session = MediaPreviewSession(
            url, self, player_factory=player_factory, video_output=self.video_widget
        )
        self.session.state_changed.connect(self._on_state_changed)
        self.play_btn.clicked.connect(self.session.play)
        self.pause_btn.clicked.connect(self.session.pause)
        self.position_slider.sliderMoved.connect(self.session.seek)
        self.finished.connect(self._release)
        self.session.open()

    def _set_controls_enabled(self, on: bool) -> None:
        for w in (self.play_btn, self.pause_btn, self.position_slider):
            w.setEnabled(on)

    def _on_state_changed(self, state: SessionState) -> None:
        if state is SessionState.READY:
            player = self.session.player
            player.durationChanged.connect(self._on_duration)
            player.positionChanged.connect(self._on_position)
            self._on_duration(player.duration())
            self.aspect_ratio = self.session.aspect_ratio()
            width = max(self.video_widget.width(), 480)
            self.video_widget.setMinimumHeight(int(width / self.aspect_ratio))
            self.status_label.setVisible(False)
            self.video_widget.setVisible(True)
            self._set_controls_enabled(True)
        elif state is SessionState.FAILED:
            # Neutral empty state; details only go to the log
            self.status_label.setText("")
            self.video_widget.setVisible(False)
            self._set_controls_enabled(False)

    def _on_duration(self, duration: int) -> None:
        self.position_slider.setRange(0, max(0, int(duration)))

    def _on_position(self, position: int) -> None:
        if not self.position_slider.isSliderDown():
            self.position_slider.setValue(int(position))

    def _release(self, _result: int = 0) -> None:
        self.session.close()


class DialogPreviewPresenter:
    """Shows previews as dialogs over ``parent``."""

    def __init__(
        self,
        parent: QWidget,
        client: RemoteDirectoryClient,
        runner: RemoteCallRunner,
        notify: Callable[[str], None],
        *,
        player_factory: Callable[[Any], Any] | None = None,
    ) -> None:
        self.parent = parent
        self.client = client
        self.runner = runner
        self._notify = notify
        self._player_factory = player_factory
        self._image_cache: Dict[str, bytes] = {}
        self.open_dialogs: List[QDialog] = []

    def _track(self, dlg: QDialog) -> QDialog:
        self.open_dialogs.append(dlg)
        dlg.finished.connect(lambda _r=0, d=dlg: self._forget(d))
        dlg.open()
        return dlg

    def _forget(self, dlg: QDialog) -> None:
        if dlg in self.open_dialogs:
            self.open_dialogs.remove(dlg)
        dlg.deleteLater()

    def show_image(self, name: str, url: str) -> None:
        dlg = ImagePreviewDialog(
            url, self.client.fetch_bytes, self.runner, self._image_cache, self.parent
        )
        dlg.setWindowTitle(name)
        self._track(dlg)

    def show_video(self, name: str, url: str) -> None:
        dlg = VideoPreviewDialog(url, self.parent, player_factory=self._player_factory)
        dlg.setWindowTitle(name)
        self._track(dlg)

    def show_text(self, name: str, url: str) -> None:
        self._track(TextPreviewDialog(name, url, self.client.fetch_text, self.runner, self.parent))

    def notify(self, message: str) -> None:
        self._notify(message)
