import io
import sqlite3
import zipfile
from datetime import datetime, timezone

import pytest

from ankivocab.application.data_service import AnkiDataService
from ankivocab.infrastructure.anki.schema import SCHEMA_SQL
from ankivocab.infrastructure.storage.json_storage import MemoryStorage

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def build_collection(notes: list[dict]) -> bytes:
    """
    Build a minimal schema-11 collection database.

    Each entry: {"flds": "front\\x1fback", "ivl": 0, "factor": 2500, "type": 0, "tags": ""}
    """
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA_SQL)
    for i, note in enumerate(notes, start=1):
        nid = 1000 + i
        cid = 5000 + i
        conn.execute(
            "INSERT INTO notes VALUES (?, ?, 1, 0, -1, ?, ?, '', 0, 0, '')",
            (nid, f"guid{i}", note.get("tags", ""), note["flds"]),
        )
        conn.execute(
            "INSERT INTO cards VALUES (?, ?, 1, 0, 0, -1, ?, ?, 0, ?, ?, 0, 0, 0, 0, 0, 0, '')",
            (
                cid,
                nid,
                note.get("type", 0),
                note.get("type", 0),
                note.get("ivl", 0),
                note.get("factor", 2500),
            ),
        )
    conn.commit()
    data = conn.serialize()
    conn.close()
    return data


def build_apkg(members: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
        zf.writestr("media", "{}")
    return buf.getvalue()


@pytest.fixture
def apkg_factory():
    """Returns a callable: notes -> .apkg bytes with the given member name."""

    def _make(notes: list[dict], member: str = "collection.anki2") -> bytes:
        return build_apkg({member: build_collection(notes)})

    return _make


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def service(storage):
    return AnkiDataService(storage, clock=lambda: FIXED_NOW)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def collection_factory():
    return build_collection


@pytest.fixture
def zip_factory():
    return build_apkg


@pytest.fixture
def fixed_now():
    return FIXED_NOW
