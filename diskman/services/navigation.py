from __future__ import annotations

import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, List, Protocol

from PySide6.QtCore import QObject, Signal

from diskman.services.http.client import (
    Err,
    FileEntry,
    HttpError,
    Ok,
    Result,
    UploadSource,
    join_path,
)
from diskman.services.path_stack import InvalidSegmentError, PathStack
from diskman.services.workers import RemoteCallRunner

logger = logging.getLogger(__name__)


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"


class DirectoryClient(Protocol):
    def list(self, path: str = "") -> Result[List[FileEntry]]: ...
    def create_folder(self, path: str) -> Result[None]: ...
    def upload(
        self, path: str, source: UploadSource, file_name: str | None = None
    ) -> Result[None]: ...
    def download(self, path: str) -> str: ...
    def delete(self, path: str) -> Result[None]: ...


def _describe(result: Err, on_status: str, on_transport: str) -> str:
    if isinstance(result.error, HttpError):
        return f"{on_status}: {result.detail}"
    return f"{on_transport}: {result.detail}"


class NavigationController(QObject):
    """Browsing session over one backend: current folder, listing and actions.

    Each view owns its own controller; nothing here is global. Listing fetches
    are tagged with a generation number and only the latest one may replace
    the listing, so a slow response for a folder the user already left is
    dropped instead of overwriting newer state.
    """

    listing_changed = Signal(object)
    path_changed = Signal(str)
    state_changed = Signal(object)
    error_raised = Signal(str)
    notice = Signal(str)

    def __init__(
        self,
        client: DirectoryClient,
        parent: QObject | None = None,
        *,
        runner: RemoteCallRunner | None = None,
    ) -> None:
        super().__init__(parent)
        self.client = client
        self.runner = runner or RemoteCallRunner(self)
        self.path_stack = PathStack()
        self._listing: List[FileEntry] = []
        self._state = LoadState.IDLE
        self._generation = 0
        self._detached = False

    # ---- state ----
    @property
    def listing(self) -> List[FileEntry]:
        return list(self._listing)

    @property
    def state(self) -> LoadState:
        return self._state

    def current_path(self) -> str:
        return self.path_stack.current_path()

    def entry_path(self, name: str) -> str:
        return join_path(self.current_path(), name)

    def download_url(self, name: str) -> str:
        return self.client.download(self.entry_path(name))

    def detach(self) -> None:
        """Stop emitting; results still in flight are dropped on arrival."""
        self._detached = True
        self._generation += 1
        self.blockSignals(True)

    def _set_state(self, state: LoadState) -> None:
        if state != self._state:
            self._state = state
            self.state_changed.emit(state)

    # ---- navigation ----
    def initialize(self) -> None:
        while not self.path_stack.is_root():
            self.path_stack.pop()
        self.path_changed.emit(self.current_path())
        self._fetch()

    def enter_folder(self, name: str) -> None:
        try:
            self.path_stack.push(name)
        except InvalidSegmentError:
            self.error_raised.emit(f"Invalid folder name: {name}")
            return
        # The push stays even if the fetch below fails
        self.path_changed.emit(self.current_path())
        self._fetch()

    def go_up(self) -> None:
        if self.path_stack.is_root():
            return
        self.path_stack.pop()
        self.path_changed.emit(self.current_path())
        self._fetch()

    def refresh(self) -> None:
        self._fetch()

    def _fetch(self) -> None:
        self._generation += 1
        generation = self._generation
        path = self.current_path()
        self._set_state(LoadState.LOADING)
        self.runner.submit(
            lambda: self.client.list(path), partial(self._on_listing, generation, path)
        )

    def _on_listing(self, generation: int, path: str, result: Result[List[FileEntry]]) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding superseded listing for {path!r}")
            return
        if isinstance(result, Ok):
            self._listing = list(result.value)
            self.listing_changed.emit(self.listing)
        else:
            self.error_raised.emit(
                _describe(result, "Failed to load files", "Error connecting to server")
            )
        self._set_state(LoadState.IDLE)

    # ---- mutations ----
    def _mutate(
        self,
        call: Callable[[], Result[Any]],
        success: str,
        on_status: str,
        on_transport: str,
    ) -> None:
        def done(result: Result[Any]) -> None:
            if self._detached:
                return
            if isinstance(result, Ok):
                self.notice.emit(success)
                self.refresh()
            else:
                self.error_raised.emit(_describe(result, on_status, on_transport))

        self.runner.submit(call, done)

    def create_folder(self, name: str) -> None:
        if not name:
            return
        path = self.entry_path(name)
        self._mutate(
            lambda: self.client.create_folder(path),
            "Folder created",
            "Failed to create folder",
            "Error",
        )

    def delete_entry(self, name: str) -> None:
        path = self.entry_path(name)
        self._mutate(
            lambda: self.client.delete(path),
            "Deleted successfully",
            "Delete failed",
            "Delete Error",
        )

    def upload_entry(self, source: UploadSource) -> None:
        path = self.current_path()
        self._mutate(
            lambda: self.client.upload(path, source),
            "File uploaded",
            "Upload failed",
            "Error uploading",
        )
