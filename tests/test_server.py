import os

import pytest
from fastapi.testclient import TestClient

from cerbero.config import TEMP_DIR_NAME, Settings
from cerbero.errors import StorageError
from cerbero.main import create_app
from cerbero.services.storage_manager import StorageManager
from helpers import shared_files, write_file


def test_index_lists_files_newest_first(client, root_dir):
    write_file(root_dir, "older.txt", b"1", mtime=1_000_000)
    write_file(root_dir, "newer.txt", b"22", mtime=2_000_000)

    response = client.get("/")

    assert response.status_code == 200
    assert response.text.index("newer.txt") < response.text.index("older.txt")
    assert "2.00 B" in response.text
    assert 'href="/download/newer.txt"' in response.text


def test_index_escapes_file_names(client, root_dir):
    write_file(root_dir, "<script>x.txt")

    response = client.get("/")

    assert "<script>x.txt" not in response.text
    assert "&lt;script&gt;x.txt" in response.text


def test_index_shows_password_and_delete_controls(make_client, root_dir):
    # The delete form is rendered per file, so there has to be one
    write_file(root_dir, "listed.txt")

    text = make_client(password="pw").get("/").text
    assert 'name="password"' in text
    assert 'action="/delete"' in text

    text = make_client(delete_enabled=False).get("/").text
    assert 'name="password"' not in text
    assert 'action="/delete"' not in text


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_startup_creates_root_and_removes_stale_partials(tmp_path):
    root = tmp_path / "new" / "root"
    settings = Settings(root_dir=str(root))
    app = create_app(settings)

    with TestClient(app):
        assert root.is_dir()
        assert (root / TEMP_DIR_NAME).is_dir()

    stale = write_file(root / TEMP_DIR_NAME, "dead.part")
    keep = write_file(root, "keep.txt")
    lookalike = write_file(root, ".cerbero-upload-dead.part")
    with TestClient(create_app(settings)):
        assert not stale.exists()
        assert keep.exists()
        assert lookalike.exists()


def test_startup_fails_when_root_cannot_be_created(tmp_path):
    blocker = write_file(tmp_path, "not-a-dir")
    app = create_app(Settings(root_dir=str(blocker / "root")))

    with pytest.raises(OSError):
        with TestClient(app):
            pass


class ChunkedSource:
    def __init__(self, chunks):
        self.chunks = list(chunks)

    async def read(self, size):
        return self.chunks.pop(0) if self.chunks else b""


@pytest.mark.asyncio
async def test_save_stream_writes_and_replaces(tmp_path):
    storage = StorageManager(str(tmp_path))
    await storage.initialize()
    destination = str(tmp_path / "out.bin")
    write_file(tmp_path, "out.bin", b"old content")

    size = await storage.save_stream(ChunkedSource([b"new ", b"data"]), destination, 4)

    assert size == 8
    assert (tmp_path / "out.bin").read_bytes() == b"new data"
    assert shared_files(tmp_path) == ["out.bin"]
    assert os.listdir(storage.temp_dir) == []


@pytest.mark.asyncio
async def test_save_stream_read_failure_keeps_old_file(tmp_path):
    storage = StorageManager(str(tmp_path))
    await storage.initialize()
    write_file(tmp_path, "out.bin", b"old content")

    class FailingSource:
        async def read(self, size):
            raise OSError("connection reset")

    with pytest.raises(StorageError):
        await storage.save_stream(FailingSource(), str(tmp_path / "out.bin"), 4)

    assert (tmp_path / "out.bin").read_bytes() == b"old content"
    assert shared_files(tmp_path) == ["out.bin"]
    assert os.listdir(storage.temp_dir) == []
