import main
from conftest import signup


def live(game_id):
    return main.games._games[game_id]


def start_solo(client, headers, preset, **extra):
    r = client.post("/games/solo", json=dict({"playlist_id": preset}, **extra), headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def start_multi(client, headers, preset, **extra):
    r = client.post("/games/multiplayer", json=dict({"playlist_id": preset}, **extra), headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


# Solo

def test_solo_game_flow(client, user_headers, preset):
    state = start_solo(client, user_headers, preset)
    assert state["mode"] == "solo"
    assert state["playlist"]["name"] == "Pop Hits"
    assert state["time_remaining"] == 30
    assert "title" not in state["round"]

    game_id = state["id"]
    song = live(game_id).current.song
    r = client.post(f"/games/{game_id}/guess", json={"guess": song["title"]}, headers=user_headers)
    assert r.status_code == 200
    assert r.json()["outcome"]["correct"] is True
    assert r.json()["state"]["score"] == 1

    r = client.post(f"/games/{game_id}/guess", json={"guess": "nothing like it"}, headers=user_headers)
    assert r.json()["outcome"]["message"] == "Incorrect guess. Keep trying!"
    assert client.post(f"/games/{game_id}/guess", json={"guess": "  "}, headers=user_headers).status_code == 400

    assert client.post(f"/games/{game_id}/skip", headers=user_headers).status_code == 200
    assert client.get(f"/games/{game_id}/summary", headers=user_headers).status_code == 409

    summary = client.post(f"/games/{game_id}/end", headers=user_headers).json()
    assert summary["score"] == 1
    assert [r["guess"] for r in summary["results"]] == [song["title"], "Skipped"]

    history = client.get("/me/games", headers=user_headers).json()["games"]
    assert len(history) == 1
    assert history[0]["score"] == 1 and history[0]["duration"] == 30


def test_solo_time_up_is_recorded_once(client, user_headers, preset):
    game_id = start_solo(client, user_headers, preset, duration=60)["id"]
    live(game_id).started_at -= 61

    state = client.get(f"/games/{game_id}", headers=user_headers).json()
    assert state["status"] == "ended"
    assert state["time_remaining"] == 0
    assert "title" in state["round"]

    r = client.post(f"/games/{game_id}/guess", json={"guess": "too late"}, headers=user_headers)
    assert r.status_code == 409
    client.get(f"/games/{game_id}/summary", headers=user_headers)

    entries = client.get(f"/leaderboard/{preset}").json()["entries"]
    assert len(entries) == 1
    assert entries[0]["duration"] == 60 and entries[0]["username"] == "player"


def test_solo_rejects_bad_duration(client, user_headers, preset):
    r = client.post("/games/solo", json={"playlist_id": preset, "duration": 45}, headers=user_headers)
    assert r.status_code == 400


def test_game_needs_songs_and_a_known_playlist(client, user_headers, admin_headers):
    empty = client.post("/admin/playlists", json={"name": "Empty", "genre": "None"},
                        headers=admin_headers).json()["id"]
    assert client.post("/games/solo", json={"playlist_id": empty}, headers=user_headers).status_code == 400
    r = client.post("/games/solo", json={"playlist_id": "000000000000000000000000"}, headers=user_headers)
    assert r.status_code == 404
    r = client.post("/games/solo", json={"playlist_id": empty, "playlist_type": "user"}, headers=user_headers)
    assert r.status_code == 404


def test_games_belong_to_their_owner(client, user_headers, preset):
    game_id = start_solo(client, user_headers, preset)["id"]
    other = signup(client, email="other@example.com", username="other")
    assert client.get(f"/games/{game_id}", headers=other).status_code == 404
    assert client.get("/games/unknown", headers=user_headers).status_code == 404


def test_suggestions(client, user_headers, preset):
    game_id = start_solo(client, user_headers, preset)["id"]
    r = client.get(f"/games/{game_id}/suggestions", params={"q": "bli"}, headers=user_headers)
    assert [s["fill"] for s in r.json()["suggestions"]] == ["Blinding Lights The Weeknd"]
    r = client.get(f"/games/{game_id}/suggestions", params={"q": "b"}, headers=user_headers)
    assert r.json()["suggestions"] == []


def test_buzz_is_multiplayer_only(client, user_headers, preset):
    game_id = start_solo(client, user_headers, preset)["id"]
    r = client.post(f"/games/{game_id}/buzz", json={"key": "A"}, headers=user_headers)
    assert r.status_code == 400


# Multiplayer

def test_multiplayer_game_flow(client, user_headers, preset):
    state = start_multi(client, user_headers, preset, rounds=2, players=[
        {"name": "Ana", "key": "q"}, {"name": "Bo", "key": "p"},
    ])
    assert [p["key"] for p in state["players"]] == ["Q", "P"]
    game_id = state["id"]

    r = client.post(f"/games/{game_id}/guess", json={"guess": "early"}, headers=user_headers)
    assert r.status_code == 409

    r = client.post(f"/games/{game_id}/buzz", json={"key": "p"}, headers=user_headers).json()
    assert r["accepted"] is True and r["player"]["name"] == "Bo"
    r = client.post(f"/games/{game_id}/buzz", json={"key": "x"}, headers=user_headers).json()
    assert r["accepted"] is False

    song = live(game_id).current.song
    r = client.post(f"/games/{game_id}/guess", json={"guess": song["artist"]}, headers=user_headers).json()
    assert r["outcome"]["correct"] is True
    assert r["state"]["current_round"] == 2

    client.post(f"/games/{game_id}/skip", headers=user_headers)
    summary = client.get(f"/games/{game_id}/summary", headers=user_headers).json()
    assert summary["outcome"] == "🏆 Bo wins with 1 points!"
    assert [r["winner"] for r in summary["results"]] == ["Bo", None]

    entries = client.get(f"/leaderboard/{preset}", params={"mode": "multiplayer"}).json()["entries"]
    assert len(entries) == 1
    assert entries[0]["score"] == 1 and entries[0]["mode"] == "multiplayer"
    assert client.get(f"/leaderboard/{preset}").json()["entries"] == []


def test_multiplayer_setup_errors(client, user_headers, preset):
    r = client.post("/games/multiplayer", json={"playlist_id": preset, "rounds": 0}, headers=user_headers)
    assert r.status_code == 400
    r = client.post("/games/multiplayer", json={
        "playlist_id": preset, "players": [{"key": "A"}, {"key": "a"}],
    }, headers=user_headers)
    assert r.status_code == 400
