import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Generic, Iterator, List, Protocol, TypeVar, Union

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_NAME = "Unknown"


class RemoteError(Exception):
    """Base exception for backend operations."""

    status: int | None = None

    @property
    def detail(self) -> str:
        return str(self)


class HttpError(RemoteError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, detail: str = "") -> None:
        super().__init__(detail or str(status))
        self.status = status


class TransportError(RemoteError):
    """Connectivity failure or an unreadable response."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: RemoteError

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    @property
    def detail(self) -> str:
        return self.error.detail


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class FileEntry:
    name: str
    is_dir: bool = False

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "FileEntry":
        """Build an entry from one item of the ``/list`` response.

        Missing fields get their defaults here so consumers never see a
        partially filled entry.
        """
        name = raw.get("name")
        is_dir = raw.get("is_dir")
        return cls(
            name=str(name) if name else PLACEHOLDER_NAME,
            is_dir=is_dir if isinstance(is_dir, bool) else False,
        )


# -------- upload sources --------
class UploadSource(Protocol):
    @property
    def file_name(self) -> str: ...

    def part(self) -> Any: ...


@dataclass(frozen=True)
class BytesSource:
    """File content held in memory (the picker gave bytes, no local path)."""

    name: str
    data: bytes

    @property
    def file_name(self) -> str:
        return self.name

    @contextmanager
    def part(self) -> Iterator[bytes]:
        yield self.data


@dataclass(frozen=True)
class PathSource:
    """File living on the local filesystem; streamed from disk on upload."""

    path: str
    name: str | None = None

    @property
    def file_name(self) -> str:
        return self.name or os.path.basename(self.path)

    @contextmanager
    def part(self) -> Iterator[BinaryIO]:
        with open(self.path, "rb") as f:
            yield f


def join_path(parent: str, name: str) -> str:
    """Join a virtual directory and an entry name without any escaping."""
    return name if not parent else f"{parent}/{name}"


def _is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


class RemoteDirectoryClient:
    """
    Stateless wrapper around the storage backend's HTTP endpoints.
    Every operation returns ``Ok(value)`` or ``Err(error)`` instead of raising.
    Virtual paths go into the query string as-is; decoding is the backend's job.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # -------- helpers --------
    def _url(self, endpoint: str, path: str | None = None) -> str:
        url = f"{self.base}/{endpoint}"
        if path:
            url += f"?path={path}"
        return url

    def _request(self, action: str, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request failed while trying to {action}: {e}")
            raise TransportError(e) from e

    def _status_error(self, action: str, resp: requests.Response, detail: str = "") -> Err:
        logger.warning(f"Backend returned {resp.status_code} while trying to {action}")
        return Err(HttpError(resp.status_code, detail or str(resp.status_code)))

    # -------- operations --------
    def list(self, path: str = "") -> Result[List[FileEntry]]:
        """List one level of ``path``; root when empty."""
        try:
            resp = self._request("list directory", "GET", self._url("list", path))
        except TransportError as e:
            return Err(e)
        if not _is_success(resp):
            return self._status_error("list directory", resp)
        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(f"Listing for {path!r} is not valid JSON: {e}")
            return Err(TransportError(e))
        if not isinstance(payload, list):
            logger.error(f"Listing for {path!r} is not a JSON array")
            return Err(TransportError(ValueError("Unexpected listing payload")))
        entries: List[FileEntry] = []
        for raw in payload:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed listing item: {raw!r}")
                continue
            entries.append(FileEntry.from_json(raw))
        return Ok(entries)

    def create_folder(self, path: str) -> Result[None]:
        """Create ``path`` (parent joined with the new name)."""
        try:
            resp = self._request(
                "create folder", "POST", self._url("create_folder"), json={"path": path}
            )
        except TransportError as e:
            return Err(e)
        if not _is_success(resp):
            return self._status_error("create folder", resp, resp.text)
        return Ok(None)

    def upload(
        self, path: str, source: UploadSource, file_name: str | None = None
    ) -> Result[None]:
        """Send ``source`` as the single multipart field ``file`` into ``path``."""
        name = file_name or source.file_name
        url = self._url("upload", path)
        try:
            with source.part() as payload:
                resp = self._request(
                    "upload file", "POST", url, files={"file": (name, payload)}
                )
        except TransportError as e:
            return Err(e)
        except OSError as e:
            logger.error(f"Could not read {name} for upload: {e}")
            return Err(TransportError(e))
        if not _is_success(resp):
            return self._status_error("upload file", resp)
        return Ok(None)

    def download(self, path: str) -> str:
        """URL of the raw file, for an external launcher or a direct GET."""
        return self._url("download", path)

    def fetch_text(self, url: str) -> Result[str]:
        try:
            resp = self._request("fetch text", "GET", url)
        except TransportError as e:
            return Err(e)
        if not _is_success(resp):
            return self._status_error("fetch text", resp)
        return Ok(resp.text)

    def fetch_bytes(self, url: str) -> Result[bytes]:
        try:
            resp = self._request("fetch file", "GET", url)
        except TransportError as e:
            return Err(e)
        if not _is_success(resp):
            return self._status_error("fetch file", resp)
        return Ok(resp.content)

    def delete(self, path: str) -> Result[None]:
        try:
            resp = self._request("delete", "DELETE", self._url("delete", path))
        except TransportError as e:
            return Err(e)
        if not _is_success(resp):
            return self._status_error("delete", resp)
        return Ok(None)
