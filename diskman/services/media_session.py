from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from PySide6.QtCore import QObject, QUrl, Signal
from PySide6.QtMultimedia import QAudioOutput, QMediaMetaData, QMediaPlayer

logger = logging.getLogger(__name__)

FALLBACK_ASPECT_RATIO = 16 / 9

_READY_STATUSES = (
    QMediaPlayer.MediaStatus.LoadedMedia,
    QMediaPlayer.MediaStatus.BufferedMedia,
)


class MediaInitError(Exception):
    """The stream could not be opened for playback."""


class SessionState(Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


def display_aspect_ratio(width: float, height: float) -> float:
    if width > 0 and height > 0:
        return width / height
    return FALLBACK_ASPECT_RATIO


class MediaPreviewSession(QObject):
    """One streaming playback of a remote video.

    ``open()`` starts loading; the player reports readiness or failure through
    its signals. ``close()`` releases the player exactly once, whatever state
    the session reached, and every signal arriving afterwards is ignored.
    """

    state_changed = Signal(object)

    def __init__(
        self,
        source_url: str,
        parent: QObject | None = None,
        *,
        player_factory: Callable[[QObject], Any] | None = None,
        autoplay: bool = True,
        loop: bool = False,
        video_output: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.source_url = source_url
        self.autoplay = autoplay
        self.loop = loop
        self.error: MediaInitError | None = None
        self._player_factory = player_factory
        self._video_output = video_output
        self._player: Any | None = None
        self._audio: QAudioOutput | None = None
        self._state: SessionState | None = None
        self._closed = False

    def __enter__(self) -> "MediaPreviewSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- lifecycle ----
    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def player(self) -> Any | None:
        return self._player

    def _create_player(self) -> Any:
        if self._player_factory is not None:
            return self._player_factory(self)
        player = QMediaPlayer(self)
        self._audio = QAudioOutput(self)
        player.setAudioOutput(self._audio)
        return player

    def open(self) -> None:
        if self._closed or self._state is not None:
            return
        self._set_state(SessionState.INITIALIZING)
        try:
            self._player = self._create_player()
            self._player.mediaStatusChanged.connect(self._on_media_status_changed)
            self._player.errorOccurred.connect(self._on_error_occurred)
            if self._video_output is not None:
                self._player.setVideoOutput(self._video_output)
            # -1 loops forever
            self._player.setLoops(-1 if self.loop else 1)
            self._player.setSource(QUrl(self.source_url))
        except Exception as e:  # noqa: BLE001
            self._fail(str(e))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        player, self._player = self._player, None
        if player is not None:
            for signal, slot in (
                (player.mediaStatusChanged, self._on_media_status_changed),
                (player.errorOccurred, self._on_error_occurred),
            ):
                try:
                    signal.disconnect(slot)
                except (RuntimeError, TypeError):
                    pass
            try:
                player.stop()
                player.setSource(QUrl())
            except RuntimeError as e:
                logger.debug(f"Player already gone during teardown: {e}")
            player.deleteLater()
        if self._audio is not None:
            self._audio.deleteLater()
            self._audio = None

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        self.state_changed.emit(state)

    def _fail(self, message: str) -> None:
        self.error = MediaInitError(message)
        logger.error(f"Error initializing video player for {self.source_url}: {message}")
        self._set_state(SessionState.FAILED)

    # ---- player signals ----
    def _on_media_status_changed(self, status) -> None:
        if self._closed or self._state is not SessionState.INITIALIZING:
            return
        if status in _READY_STATUSES:
            self._set_state(SessionState.READY)
            if self.autoplay:
                self.play()
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._fail("Invalid or unsupported media")

    def _on_error_occurred(self, error, message: str = "") -> None:
        if self._closed:
            return
        if self._state is SessionState.INITIALIZING:
            self._fail(message or str(error))
        else:
            logger.warning(f"Playback error for {self.source_url}: {message or error}")

    # ---- playback controls (Ready only) ----
    def play(self) -> None:
        if self._player is not None and self._state is SessionState.READY:
            self._player.play()

    def pause(self) -> None:
        if self._player is not None and self._state is SessionState.READY:
            self._player.pause()

    def seek(self, position_ms: int) -> None:
        if self._player is not None and self._state is SessionState.READY:
            self._player.setPosition(max(0, int(position_ms)))

    def aspect_ratio(self) -> float:
        if self._player is None or self._state is not SessionState.READY:
            return FALLBACK_ASPECT_RATIO
        size = self._player.metaData().value(QMediaMetaData.Key.Resolution)
        if size is None or not hasattr(size, "width"):
            return FALLBACK_ASPECT_RATIO
        return display_aspect_ratio(size.width(), size.height())
