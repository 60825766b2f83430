import json
from typing import Any, Dict, List

import pytest
import requests

from diskman.services.http.client import (
    BytesSource,
    Err,
    FileEntry,
    HttpError,
    Ok,
    PathSource,
    RemoteDirectoryClient,
    TransportError,
    join_path,
)

BASE = "http://srv:3000"


def _response(status: int, body: Any = b"") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if isinstance(body, (list, dict)):
        body = json.dumps(body)
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    resp.encoding = "utf-8"
    return resp


class FakeSession:
    """Stands in for requests.Session; records calls and replays responses."""

    def __init__(self, *responses):
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, **kwargs):
        call = {"method": method, "url": url, **kwargs}
        files = kwargs.get("files")
        if files:
            # Read file parts while the source is still open
            call["parts"] = {
                field: (name, payload if isinstance(payload, bytes) else payload.read())
                for field, (name, payload) in files.items()
            }
        self.calls.append(call)
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def _client(*responses) -> RemoteDirectoryClient:
    return RemoteDirectoryClient(BASE + "/", timeout=5, session=FakeSession(*responses))


def test_join_path_root_and_nested():
    assert join_path("", "a.txt") == "a.txt"
    assert join_path("docs/sub", "a.txt") == "docs/sub/a.txt"


def test_list_root_omits_path_query():
    c = _client(_response(200, []))
    result = c.list("")
    assert result == Ok([])
    assert c.session.calls[0]["method"] == "GET"
    assert c.session.calls[0]["url"] == f"{BASE}/list"
    assert c.session.calls[0]["timeout"] == 5


def test_list_parses_entries_in_order():
    body = [{"name": "report.txt", "is_dir": False}, {"name": "img", "is_dir": True}]
    c = _client(_response(200, body))
    result = c.list("docs")
    assert c.session.calls[0]["url"] == f"{BASE}/list?path=docs"
    assert isinstance(result, Ok)
    assert result.value == [FileEntry("report.txt", False), FileEntry("img", True)]


def test_list_applies_defaults_and_skips_non_objects():
    body = [{"is_dir": True}, {"name": "plain"}, "garbage", {"name": "", "is_dir": None}]
    c = _client(_response(200, body))
    result = c.list("")
    assert isinstance(result, Ok)
    assert result.value == [
        FileEntry("Unknown", True),
        FileEntry("plain", False),
        FileEntry("Unknown", False),
    ]


def test_list_only_real_booleans_mark_folders():
    body = [
        {"name": "a", "is_dir": "false"},
        {"name": "b", "is_dir": "true"},
        {"name": "c", "is_dir": 1},
        {"name": "d", "is_dir": True},
    ]
    c = _client(_response(200, body))
    result = c.list("")
    assert isinstance(result, Ok)
    assert [e.is_dir for e in result.value] == [False, False, False, True]


def test_list_non_2xx_maps_to_http_error():
    c = _client(_response(404, "missing"))
    result = c.list("nope")
    assert isinstance(result, Err)
    assert isinstance(result.error, HttpError)
    assert result.error.status == 404
    assert result.detail == "404"
    assert result.kind == "HttpError"


@pytest.mark.parametrize("body", ["not json", {"name": "x"}])
def test_list_unreadable_body_is_transport_error(body):
    c = _client(_response(200, body))
    result = c.list("")
    assert isinstance(result, Err)
    assert isinstance(result.error, TransportError)


def test_connection_failure_is_transport_error():
    c = _client(requests.ConnectionError("connection refused"))
    result = c.list("")
    assert isinstance(result, Err)
    assert result.kind == "TransportError"
    assert "connection refused" in result.detail


def test_create_folder_posts_json_path():
    c = _client(_response(200, "Folder created"))
    assert c.create_folder("docs/new") == Ok(None)
    call = c.session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{BASE}/create_folder"
    assert call["json"] == {"path": "docs/new"}


def test_create_folder_failure_carries_body():
    c = _client(_response(409, "Folder or file already exists"))
    result = c.create_folder("docs")
    assert isinstance(result, Err)
    assert result.error.status == 409
    assert result.detail == "Folder or file already exists"


def test_upload_bytes_sends_single_file_part():
    c = _client(_response(200, "File uploaded"))
    result = c.upload("", BytesSource("photo.png", b"\x89PNG"))
    assert result == Ok(None)
    call = c.session.calls[0]
    assert call["url"] == f"{BASE}/upload"
    assert call["parts"] == {"file": ("photo.png", b"\x89PNG")}

    # The encoded multipart body holds exactly one part named "file"
    prepared = requests.Request("POST", call["url"], files=call["files"]).prepare()
    body = prepared.body.decode("latin-1")
    assert body.count("Content-Disposition") == 1
    assert 'name="file"; filename="photo.png"' in body


def test_upload_from_path_uses_basename_and_query(tmp_path):
    local = tmp_path / "notes.txt"
    local.write_bytes(b"hello")
    c = _client(_response(200))
    assert c.upload("docs", PathSource(str(local))) == Ok(None)
    call = c.session.calls[0]
    assert call["url"] == f"{BASE}/upload?path=docs"
    assert call["parts"] == {"file": ("notes.txt", b"hello")}


def test_upload_missing_local_file_is_transport_error(tmp_path):
    c = _client()
    result = c.upload("", PathSource(str(tmp_path / "gone.bin")))
    assert isinstance(result, Err)
    assert isinstance(result.error, TransportError)
    assert c.session.calls == []


def test_upload_failure_reports_status():
    c = _client(_response(500, "boom"))
    result = c.upload("docs", BytesSource("a.bin", b"x"))
    assert isinstance(result, Err)
    assert result.detail == "500"


def test_download_builds_url_without_fetching():
    c = _client()
    assert c.download("docs/My File.txt") == f"{BASE}/download?path=docs/My File.txt"
    assert c.session.calls == []


def test_delete_issues_delete_with_path():
    c = _client(_response(200, "Deleted"))
    assert c.delete("docs/old.txt") == Ok(None)
    call = c.session.calls[0]
    assert call["method"] == "DELETE"
    assert call["url"] == f"{BASE}/delete?path=docs/old.txt"


def test_delete_failure():
    c = _client(_response(404))
    result = c.delete("docs/old.txt")
    assert isinstance(result, Err)
    assert result.error.status == 404


def test_fetch_text_returns_raw_body():
    c = _client(_response(200, '{"raw": true}\nsecond line'))
    url = c.download("notes.json")
    assert c.fetch_text(url) == Ok('{"raw": true}\nsecond line')
    assert c.session.calls[0]["url"] == url


def test_fetch_bytes_error_status():
    c = _client(_response(403))
    result = c.fetch_bytes(c.download("a.png"))
    assert isinstance(result, Err)
    assert result.error.status == 403
