import mongomock
import pytest
from fastapi.testclient import TestClient

import config
import database
import main
from game import GameRegistry


@pytest.fixture
def mongo(monkeypatch):
    db = mongomock.MongoClient()["musikmatch_test"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def client(mongo, monkeypatch):
    monkeypatch.setattr(main, "games", GameRegistry())
    monkeypatch.setattr(config, "ADMIN_EMAILS", ["admin@admin.com"])
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def signup(client, email="player@example.com", username="player", password="secret123"):
    r = client.post("/auth/signup", json={"email": email, "username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def user_headers(client):
    return signup(client)


@pytest.fixture
def admin_headers(client):
    return signup(client, email="admin@admin.com", username="admin")


@pytest.fixture
def preset(mongo):
    """A preset playlist with six songs."""
    import playlists

    playlist_id = playlists.create_preset_playlist("Pop Hits", "Pop", "The biggest pop hits")
    for title, artist, vid in [
        ("Blinding Lights", "The Weeknd", "4NRXx6U8ABQ"),
        ("Shape of You", "Ed Sheeran", "JGwWNGJdvx8"),
        ("Bad Guy", "Billie Eilish", "DyDfgMOUjCI"),
        ("As It Was", "Harry Styles", "H5v3kku4y6Q"),
        ("Don't Start Now", "Dua Lipa", "oygrmJFKYZY"),
        ("Stay", "The Kid LAROI & Justin Bieber", "fHI8X4OXluQ"),
    ]:
        playlists.add_song_to_preset(playlist_id, title, artist, f"https://www.youtube.com/watch?v={vid}", duration=200)
    return playlist_id
