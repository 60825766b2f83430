from enum import Enum
from typing import Protocol


class PreviewKind(Enum):
    IMAGE = "image"
    VIDEO = "video"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi", "mkv"})
TEXT_EXTENSIONS = frozenset({"txt", "md", "json", "xml", "log"})

UNSUPPORTED_MESSAGE = "Preview not supported for this file type"


def extension_of(name: str) -> str:
    """Lower-cased text after the last dot, or '' when there is no dot."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def classify(name: str) -> PreviewKind:
    ext = extension_of(name)
    if ext in IMAGE_EXTENSIONS:
        return PreviewKind.IMAGE
    if ext in VIDEO_EXTENSIONS:
        return PreviewKind.VIDEO
    if ext in TEXT_EXTENSIONS:
        return PreviewKind.TEXT
    return PreviewKind.UNSUPPORTED


class PreviewPresenter(Protocol):
    def show_image(self, name: str, url: str) -> None: ...
    def show_video(self, name: str, url: str) -> None: ...
    def show_text(self, name: str, url: str) -> None: ...
    def notify(self, message: str) -> None: ...


class PreviewDispatcher:
    """Routes a file to the presenter method matching its type."""

    def __init__(self, presenter: PreviewPresenter) -> None:
        self.presenter = presenter

    def dispatch(self, name: str, url: str) -> PreviewKind:
        kind = classify(name)
        if kind is PreviewKind.IMAGE:
            self.presenter.show_image(name, url)
        elif kind is PreviewKind.VIDEO:
            self.presenter.show_video(name, url)
        elif kind is PreviewKind.TEXT:
            self.presenter.show_text(name, url)
        else:
            self.presenter.notify(UNSUPPORTED_MESSAGE)
        return kind
