# tests/conftest.py
import itertools
from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from gdrive_transfer.config import Settings, get_settings
from gdrive_transfer.gdrive import GoogleDriveTransferManager
from gdrive_transfer.storage.dto import ProvisionedLayout
from gdrive_transfer.storage.query import FOLDER_CONTENT_TYPE


def http_error(status=500):
    return HttpError(resp=MagicMock(status=status), content=b'{"error": {"message": "boom"}}')


@pytest.fixture
def mock_settings(tmp_path):
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.LOG_LEVEL = "INFO"
    settings.GDRIVE_CLIENT_ID = "test_client_id"
    settings.GDRIVE_CLIENT_SECRET = "test_client_secret"
    settings.GDRIVE_REFRESH_TOKEN = "test_refresh_token"
    settings.GDRIVE_ROOT_PATH = "Backups/Repo"
    settings.BASE_DIR = tmp_path
    settings.TOKEN_FILE = tmp_path / ".gdrive.token"
    settings.LAYOUT_PATH = tmp_path / ".gdrive.layout.json"
    settings.LOG_FILE = tmp_path / "app.log"
    return settings


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    Any part of the app code that calls `Settings()` during a test run will
    receive the `mock_settings` instance instead of a real settings object.
    """
    get_settings.cache_clear()
    monkeypatch.setattr("gdrive_transfer.config.Settings", lambda *args, **kwargs: mock_settings)
    yield
    get_settings.cache_clear()


def _unquote(literal):
    return literal.strip()[1:-1].replace("\\'", "'")


class _Request:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class _MediaRequest:
    def __init__(self, content):
        self.content = content


class FakeDrive:
    """
    In-memory stand-in for the Drive v2 service object returned by build().

    Every call is recorded in `calls` as (name, kwargs). An exception placed in
    `failures[name]` is raised when that call executes; `patch_returns` can
    override the result of files().patch().
    """

    def __init__(self):
        self.items = {}
        self.content = {}
        self.calls = []
        self.failures = {}
        self.patch_returns = "default"
        self._ids = itertools.count(1)

    # Test helpers

    def add(self, title, parent=None, mime_type="application/x-syncany", content=b"", trashed=False):
        file_id = f"id{next(self._ids)}"
        self.items[file_id] = {
            "id": file_id,
            "title": title,
            "parents": [{"id": parent}] if parent else [],
            "mimeType": mime_type,
            "labels": {"trashed": trashed},
        }
        if mime_type != FOLDER_CONTENT_TYPE:
            self.items[file_id]["downloadUrl"] = f"https://drive.example/{file_id}"
            self.content[file_id] = content
        return file_id

    def add_folder(self, title, parent=None):
        return self.add(title, parent, mime_type=FOLDER_CONTENT_TYPE)

    def titles_in(self, parent):
        return sorted(
            item["title"] for item in self.items.values()
            if {"id": parent} in item["parents"]
        )

    def called(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]

    def _call(self, name, fn, **kwargs):
        def run():
            self.calls.append((name, kwargs))
            if name in self.failures:
                raise self.failures[name]
            return fn()
        return _Request(run)

    def _matches(self, item, query):
        for clause in query.split(" and "):
            if clause == "trashed=false":
                if item["labels"]["trashed"]:
                    return False
            elif clause.startswith("title="):
                if item["title"] != _unquote(clause[len("title="):]):
                    return False
            elif clause.startswith("mimeType="):
                if item["mimeType"] != _unquote(clause[len("mimeType="):]):
                    return False
            elif clause.endswith(" in parents"):
                if {"id": _unquote(clause[: -len(" in parents")])} not in item["parents"]:
                    return False
            else:
                raise AssertionError(f"unexpected query clause {clause!r}")
        return True

    # Service surface

    def files(self):
        return self

    def parents(self):
        return _Parents(self)

    def about(self):
        return _About(self)

    def list(self, q, pageToken=None, fields=None):
        return self._call(
            "files.list",
            lambda: {"items": [dict(i) for i in self.items.values() if self._matches(i, q)]},
            q=q, pageToken=pageToken,
        )

    def insert(self, body, media_body=None, fields=None):
        def run():
            file_id = self.add(
                body["title"],
                body["parents"][0]["id"] if body.get("parents") else None,
                mime_type=body["mimeType"],
            )
            if media_body is not None:
                self.content[file_id] = media_body.getbytes(0, media_body.size())
            return {"id": file_id}
        return self._call("files.insert", run, body=body)

    def patch(self, fileId, body, fields=None):
        def run():
            if self.patch_returns != "default":
                return self.patch_returns
            self.items[fileId]["title"] = body["title"]
            return {"title": body["title"]}
        return self._call("files.patch", run, fileId=fileId, body=body)

    def delete(self, fileId):
        def run():
            if fileId not in self.items:
                raise http_error(404)
            del self.items[fileId]
            self.content.pop(fileId, None)
            return ""
        return self._call("files.delete", run, fileId=fileId)

    def get_media(self, fileId):
        return _MediaRequest(self.content[fileId])


class _Parents:
    def __init__(self, drive):
        self.drive = drive

    def delete(self, fileId, parentId):
        def run():
            self.drive.items[fileId]["parents"].remove({"id": parentId})
            return ""
        return self.drive._call("parents.delete", run, fileId=fileId, parentId=parentId)

    def insert(self, fileId, body):
        def run():
            self.drive.items[fileId]["parents"].append({"id": body["id"]})
            return body
        return self.drive._call("parents.insert", run, fileId=fileId, body=body)


class _About:
    def __init__(self, drive):
        self.drive = drive

    def get(self):
        return self.drive._call("about.get", lambda: {"name": "Test User"})


class FakeDownload:
    """Replaces MediaIoBaseDownload; writes the fake file content in one chunk."""

    def __init__(self, fh, request):
        self.fh = fh
        self.request = request

    def next_chunk(self):
        self.fh.write(self.request.content)
        return None, True


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def layout():
    return ProvisionedLayout(root_path="Backups/Repo")


@pytest.fixture
def manager(drive, layout):
    """A transfer manager whose Drive service is the in-memory fake."""
    with patch("gdrive_transfer.gdrive.build", return_value=drive), \
            patch("gdrive_transfer.gdrive.Credentials"), \
            patch("gdrive_transfer.gdrive.MediaIoBaseDownload", FakeDownload):
        yield GoogleDriveTransferManager("client_id", "client_secret", "refresh_token", layout)


@pytest.fixture
def repository(drive, layout):
    """Provisions a complete repository in the fake drive and records its IDs in the layout."""
    backups = drive.add_folder("Backups")
    layout.root_id = drive.add_folder("Repo", backups)
    layout.content_id = drive.add_folder("multichunks", layout.root_id)
    layout.metadata_id = drive.add_folder("databases", layout.root_id)
    layout.actions_id = drive.add_folder("actions", layout.root_id)
    layout.transactions_id = drive.add_folder("transactions", layout.root_id)
    layout.temp_id = drive.add_folder("temporary", layout.root_id)
    layout.setup_complete = True
    return layout


@pytest.fixture
def local_file(tmp_path):
    def make(name="local.bin", content=b"hello drive"):
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return make


