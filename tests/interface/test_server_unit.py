import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from ankivocab.consts import VERSION
from ankivocab.domain.errors import StorageError
from ankivocab.server import app, get_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_import_tabular_and_query(client):
    response = client.post(
        "/import/tabular",
        json={"filename": "Basics.tsv", "content": "hola\thello\nadiós\tbye", "tier": "mastered"},
    )
    assert response.status_code == 200
    assert response.json()["card_count"] == 2

    stats = client.get("/stats").json()
    assert stats["mastered"] == 2
    assert stats["total_vocabulary"] == 2

    guidance = client.get("/guidance").json()
    assert sorted(guidance["mastered"]) == ["adiós", "hola"]

    decks = client.get("/decks").json()
    assert decks[0]["name"] == "Basics"
    assert decks[0]["manual_mastery_level"] == "mastered"


def test_import_tabular_bad_tier(client):
    response = client.post(
        "/import/tabular", json={"filename": "a.csv", "content": "x,y", "tier": "expert"}
    )
    assert response.status_code == 422


def test_import_apkg(client, apkg_factory):
    response = client.post(
        "/import/apkg",
        params={"filename": "Spanish.apkg"},
        content=apkg_factory([{"flds": "la casa\x1fhouse", "ivl": 30, "type": 2}]),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["deck_name"] == "Spanish"
    assert client.get("/stats").json()["familiar"] == 1


def test_import_apkg_rejected(client, service):
    response = client.post("/import/apkg", content=b"garbage")
    assert response.status_code == 422
    assert response.json()["error_kind"] == "CorruptArchive"
    assert service.store.decks == []


def test_remove_deck(client):
    client.post("/import/tabular", json={"filename": "A.csv", "content": "uno,one"})

    assert client.delete("/decks/Missing").status_code == 404
    response = client.delete("/decks/A")
    assert response.status_code == 200
    assert response.json()["decks"] == 0


def test_remove_deck_storage_failure(client, service, monkeypatch):
    client.post("/import/tabular", json={"filename": "A.csv", "content": "uno,one"})

    async def broken_save(key, value):
        raise StorageError("disk full")

    monkeypatch.setattr(service._storage, "save", broken_save)
    response = client.delete("/decks/A")
    assert response.status_code == 500
    assert len(service.store.decks) == 1


def test_clear_data(client):
    client.post("/import/tabular", json={"filename": "A.csv", "content": "uno,one"})
    assert client.delete("/data").json() == {"ok": True}
    assert client.get("/stats").json()["decks"] == 0


def test_export(client):
    response = client.post(
        "/export",
        json={
            "deck_name": "Mis palabras",
            "terms": [{"term": "hola", "counterpart": "hello"}, {"term": "sol", "interval": 10}],
        },
    )
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/octet-stream"
    assert "Mis%20palabras.apkg" in response.headers["content-disposition"]

    with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
        assert sorted(zf.namelist()) == ["collection.anki2", "media"]


def test_export_rejects_negative_interval(client):
    response = client.post("/export", json={"terms": [{"term": "x", "interval": -5}]})
    assert response.status_code == 422
