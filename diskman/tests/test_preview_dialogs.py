from typing import List

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QColor, QImage
from PySide6.QtMultimedia import QMediaPlayer

from diskman.components.preview_dialogs import (
    DialogPreviewPresenter,
    ImagePreviewDialog,
    TextPreviewDialog,
    VideoPreviewDialog,
)
from diskman.services.http.client import Err, HttpError, Ok
from diskman.services.media_session import SessionState
from diskman.services.workers import RemoteCallRunner
from diskman.tests.fakes import PlayerFactory


def _png_bytes() -> bytes:
    img = QImage(4, 2, QImage.Format.Format_RGB32)
    img.fill(QColor("red"))
    data = QByteArray()
    buf = QBuffer(data)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    img.save(buf, "PNG")
    buf.close()
    return bytes(data)


def _sync() -> RemoteCallRunner:
    return RemoteCallRunner(use_threads=False)


def test_text_preview_shows_raw_body(qtbot):
    body = "# Title\n\n<not parsed>\n" * 50
    dlg = TextPreviewDialog("notes.md", "http://srv/x", lambda url: Ok(body), _sync())
    qtbot.addWidget(dlg)
    assert dlg.windowTitle() == "notes.md"
    assert dlg.text_view.toPlainText() == body
    assert dlg.text_view.isReadOnly()


def test_text_preview_error_message(qtbot):
    dlg = TextPreviewDialog(
        "a.txt", "http://srv/x", lambda url: Err(HttpError(404)), _sync()
    )
    qtbot.addWidget(dlg)
    assert dlg.windowTitle() == "Error"
    assert dlg.status_label.text() == "404"


def test_text_preview_shows_loading_until_result(qtbot):
    pending: List[tuple] = []

    class Deferred:
        def submit(self, fn, callback):
            pending.append((fn, callback))

    dlg = TextPreviewDialog("a.txt", "http://srv/x", lambda url: Ok("done"), Deferred())
    qtbot.addWidget(dlg)
    assert dlg.status_label.text() == "Loading…"
    fn, cb = pending.pop()
    cb(fn())
    assert dlg.text_view.toPlainText() == "done"


def test_image_preview_renders_and_caches(qtbot):
    fetched: List[str] = []
    data = _png_bytes()

    def fetch(url):
        fetched.append(url)
        return Ok(data)

    cache = {}
    first = ImagePreviewDialog("http://srv/a.png", fetch, _sync(), cache)
    qtbot.addWidget(first)
    assert not first.failed
    assert first.image_label.pixmap().width() == 4

    second = ImagePreviewDialog("http://srv/a.png", fetch, _sync(), cache)
    qtbot.addWidget(second)
    assert fetched == ["http://srv/a.png"]
    assert not second.failed


def test_image_preview_error_indicator(qtbot):
    dlg = ImagePreviewDialog("http://srv/a.png", lambda url: Err(HttpError(500)), _sync(), {})
    qtbot.addWidget(dlg)
    assert dlg.failed


def test_image_preview_undecodable_bytes(qtbot):
    cache = {}
    dlg = ImagePreviewDialog("http://srv/a.png", lambda url: Ok(b"nope"), _sync(), cache)
    qtbot.addWidget(dlg)
    assert dlg.failed
    assert cache == {}


def test_video_dialog_ready_enables_controls(qtbot):
    factory = PlayerFactory()
    dlg = VideoPreviewDialog("http://srv/clip.mp4", player_factory=factory)
    qtbot.addWidget(dlg)
    player = factory.players[0]
    assert ("setVideoOutput", dlg.video_widget) in player.calls
    assert not dlg.play_btn.isEnabled()

    player.mediaStatusChanged.emit(QMediaPlayer.MediaStatus.LoadedMedia)
    assert dlg.session.state is SessionState.READY
    assert dlg.play_btn.isEnabled()
    assert dlg.position_slider.maximum() == 12000
    assert dlg.aspect_ratio == 16 / 9


def test_video_dialog_close_releases_session_in_any_state(qtbot):
    factory = PlayerFactory()
    dlg = VideoPreviewDialog("http://unreachable/clip.mp4", player_factory=factory)
    qtbot.addWidget(dlg)
    player = factory.players[0]
    player.errorOccurred.emit(QMediaPlayer.Error.NetworkError, "unreachable")
    assert dlg.session.state is SessionState.FAILED
    assert not dlg.play_btn.isEnabled()

    dlg.reject()
    assert dlg.session.closed
    assert player.count("stop") == 1


def test_video_dialog_closed_while_initializing(qtbot):
    factory = PlayerFactory()
    dlg = VideoPreviewDialog("http://srv/clip.mp4", player_factory=factory)
    qtbot.addWidget(dlg)
    dlg.done(0)
    player = factory.players[0]
    player.mediaStatusChanged.emit(QMediaPlayer.MediaStatus.LoadedMedia)
    assert dlg.session.closed
    assert player.count("play") == 0


class StubClient:
    def fetch_text(self, url):
        return Ok("hello")

    def fetch_bytes(self, url):
        return Ok(_png_bytes())


def test_presenter_opens_and_forgets_dialogs(qtbot):
    from PySide6.QtWidgets import QWidget

    parent = QWidget()
    qtbot.addWidget(parent)
    notes: List[str] = []
    presenter = DialogPreviewPresenter(
        parent, StubClient(), _sync(), notes.append, player_factory=PlayerFactory()
    )
    presenter.show_text("a.txt", "http://srv/a.txt")
    presenter.show_image("a.png", "http://srv/a.png")
    presenter.show_video("a.mp4", "http://srv/a.mp4")
    assert len(presenter.open_dialogs) == 3
    assert presenter.open_dialogs[1].windowTitle() == "a.png"

    video = presenter.open_dialogs[2]
    video.reject()
    assert video.session.closed
    assert len(presenter.open_dialogs) == 2

    presenter.notify("Preview not supported for this file type")
    assert notes == ["Preview not supported for this file type"]
