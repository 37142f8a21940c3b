"""Tests for downloading venue CSVs from local and HTTP blob stores."""

import pytest
import requests

from pos_reports.config import BlobSettings
from pos_reports.exceptions import ConfigError, ExtractionError
from pos_reports.storage.blobs import HttpBlobStore, LocalBlobStore, make_session


class FakeResponse:
    def __init__(self, status_code=200, content=b"", text=""):
        self.status_code = status_code
        self.content = content
        self.text = text


class FakeSession:
    """Records GETs and replays a canned response (or raises)."""

    def __init__(self, response=None, error=None):
        self.headers = {}
        self.calls = []
        self.response = response
        self.error = error

    def get(self, url, **kwargs):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


class TestLocalBlobStore:
    def test_download(self, tmp_path) -> None:
        (tmp_path / "r1").mkdir()
        (tmp_path / "r1" / "auckland.csv").write_bytes(b"Name,Volume In-Store\n")
        assert LocalBlobStore(tmp_path).download("r1/auckland.csv") == b"Name,Volume In-Store\n"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ExtractionError, match="r1/missing.csv"):
            LocalBlobStore(tmp_path).download("r1/missing.csv")

    def test_path_escape(self, tmp_path) -> None:
        root = tmp_path / "uploads"
        root.mkdir()
        (tmp_path / "secret.csv").write_text("x", encoding="utf-8")
        with pytest.raises(ExtractionError, match="escapes"):
            LocalBlobStore(root).download("../secret.csv")


class TestHttpBlobStore:
    def test_download(self) -> None:
        session = FakeSession(FakeResponse(200, b"Name,Volume In-Store\n"))
        store = HttpBlobStore("https://blobs.test/report-csvs/", token="abc", session=session)
        assert store.download("2025 w02/auckland.csv") == b"Name,Volume In-Store\n"
        assert session.calls == ["https://blobs.test/report-csvs/2025%20w02/auckland.csv"]
        assert session.headers["Authorization"] == "Bearer abc"

    def test_error_status(self) -> None:
        session = FakeSession(FakeResponse(404, text="Object not found"))
        store = HttpBlobStore("https://blobs.test", session=session)
        with pytest.raises(ExtractionError, match="HTTP 404: Object not found"):
            store.download("r1/auckland.csv")
        assert "Authorization" not in session.headers

    def test_connection_error(self) -> None:
        session = FakeSession(error=requests.ConnectionError("refused"))
        store = HttpBlobStore("https://blobs.test", session=session)
        with pytest.raises(ExtractionError, match="refused"):
            store.download("r1/auckland.csv")

    def test_from_env_requires_base(self, monkeypatch) -> None:
        monkeypatch.delenv("REPORTS_BLOB_BASE", raising=False)
        with pytest.raises(ConfigError):
            HttpBlobStore.from_env()

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("REPORTS_BLOB_BASE", "https://blobs.test/csvs/")
        monkeypatch.setenv("REPORTS_BLOB_TOKEN", " tok ")
        monkeypatch.delenv("REPORTS_TIMEOUT", raising=False)
        monkeypatch.delenv("REPORTS_RETRIES", raising=False)
        store = HttpBlobStore.from_env()
        assert store.base_url == "https://blobs.test/csvs"
        assert store.session.headers["Authorization"] == "Bearer tok"


def test_make_session_retries() -> None:
    session = make_session(timeout=5, retries=2)
    retry = session.get_adapter("https://blobs.test").max_retries
    assert retry.total == 2
    assert 503 in retry.status_forcelist
    assert "GET" in retry.allowed_methods


def test_blob_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("REPORTS_BLOB_BASE", "https://blobs.test/")
    monkeypatch.setenv("REPORTS_TIMEOUT", "12.5")
    monkeypatch.setenv("REPORTS_RETRIES", "5")
    monkeypatch.delenv("REPORTS_BLOB_TOKEN", raising=False)
    settings = BlobSettings.from_env()
    assert settings == BlobSettings("https://blobs.test", None, 12.5, 5)


def test_blob_settings_bad_number(monkeypatch) -> None:
    monkeypatch.setenv("REPORTS_RETRIES", "many")
    with pytest.raises(ConfigError):
        BlobSettings.from_env()
