import random

import pytest

from fakes import FakeClock, make_songs
from game import (
    EmptyPlaylistError,
    GameError,
    GameNotFound,
    GameOverError,
    GameRegistry,
    InvalidGuessError,
    MultiplayerGame,
    NoResponderError,
    SongQueue,
    SoloGame,
    build_players,
)

PLAYLIST = {"id": "p1", "name": "Test Mix", "type": "preset"}


def solo(songs=None, clock=None, duration=30):
    return SoloGame("u1", PLAYLIST, songs or make_songs(8), duration=duration,
                    clock=clock or FakeClock(), rng=random.Random(7))


def multi(rounds=3, players=None, songs=None, clock=None):
    return MultiplayerGame("u1", PLAYLIST, songs or make_songs(8), rounds=rounds, players=players,
                           clock=clock or FakeClock(), rng=random.Random(7))


# SongQueue

def test_queue_loads_lazily_in_batches():
    queue = SongQueue(make_songs(12), rng=random.Random(1))
    assert len(queue.loaded) == 5
    for _ in range(4):
        queue.next_song()
    assert len(queue.loaded) == 10


def test_queue_never_repeats_within_a_cycle():
    songs = make_songs(12)
    queue = SongQueue(songs, rng=random.Random(3))
    served = [queue.next_song()["id"] for _ in range(12)]
    assert sorted(served) == sorted(s["id"] for s in songs)


def test_queue_starts_new_cycle_without_immediate_repeat():
    queue = SongQueue(make_songs(3), rng=random.Random(5))
    served = [queue.next_song()["id"] for _ in range(3)]
    nxt = queue.next_song()["id"]
    assert nxt != served[-1]
    assert queue.played == {nxt}


def test_single_song_playlist_repeats():
    queue = SongQueue(make_songs(1))
    assert queue.next_song()["id"] == "s0"
    assert queue.next_song()["id"] == "s0"


def test_empty_playlist_is_rejected():
    with pytest.raises(EmptyPlaylistError):
        SongQueue([])
    with pytest.raises(EmptyPlaylistError):
        SoloGame("u1", PLAYLIST, [], clock=FakeClock())


# Solo

def test_solo_starts_with_a_song_and_full_clock():
    game = solo()
    state = game.state()
    assert state["status"] == "playing"
    assert state["time_remaining"] == 30
    assert state["round"]["clip_url"].startswith("https://www.youtube.com/embed/vid")
    assert "autoplay=1" in state["round"]["clip_url"]
    assert "title" not in state["round"]


def test_solo_countdown_and_time_up():
    clock = FakeClock()
    game = solo(clock=clock)
    clock.advance(10.5)
    assert game.time_remaining() == 20
    clock.advance(19.5)
    assert game.is_over
    assert game.time_remaining() == 0
    with pytest.raises(GameOverError):
        game.guess("anything")
    with pytest.raises(GameOverError):
        game.skip()


def test_solo_correct_guess_scores_and_advances():
    game = solo()
    song = game.current.song
    outcome = game.guess(song["title"].upper())
    assert outcome.correct
    assert outcome.message == f'Correct! "{song["title"]}" by {song["artist"]}'
    assert game.score == 1
    assert game.current.song["id"] != song["id"]
    assert game.results == [{"song": {"id": song["id"], "title": song["title"], "artist": song["artist"],
                                      "album_art": None}, "correct": True, "guess": song["title"].upper()}]


def test_solo_wrong_guess_keeps_song():
    game = solo()
    song = game.current.song
    outcome = game.guess("definitely not it")
    assert not outcome.correct
    assert outcome.message == "Incorrect guess. Keep trying!"
    assert game.current.song is song
    assert game.score == 0
    assert game.results == []


def test_solo_blank_guess_rejected():
    with pytest.raises(InvalidGuessError):
        solo().guess("   ")


def test_solo_skip_records_result():
    game = solo()
    song = game.current.song
    game.skip()
    assert game.results[0]["guess"] == "Skipped"
    assert game.results[0]["correct"] is False
    assert game.current.song["id"] != song["id"]


def test_solo_end_early_and_reveal():
    clock = FakeClock()
    game = solo(clock=clock, duration=60)
    clock.advance(5)
    game.end()
    assert game.is_over
    assert game.time_remaining() == 55
    assert game.state()["round"]["title"] == game.current.song["title"]


def test_solo_duration_must_be_30_or_60():
    with pytest.raises(GameError):
        solo(duration=45)


# Multiplayer

def test_default_players():
    game = multi()
    assert [(p.name, p.key) for p in game.players] == [("Player 1", "A"), ("Player 2", "L")]
    assert game.current_round == 1


def test_player_setup_validation():
    with pytest.raises(GameError):
        build_players([{"key": "a"}, {"key": "A"}])
    with pytest.raises(GameError):
        build_players([{"key": "a"}])
    with pytest.raises(GameError):
        build_players([{"key": k} for k in "ABCDE"])
    with pytest.raises(GameError):
        build_players([{"key": "A"}, {"key": "pz"}])
    players = build_players([{"name": "Ana", "key": "q"}, {"name": "", "key": "p"}])
    assert [(p.name, p.key) for p in players] == [("Ana", "Q"), ("Player 2", "P")]


def test_rounds_bounds():
    with pytest.raises(GameError):
        multi(rounds=0)
    with pytest.raises(GameError):
        multi(rounds=100)


def test_first_buzz_takes_the_turn_and_others_queue():
    game = multi()
    assert game.buzz("a").name == "Player 1"
    assert game.buzz("A") is None
    assert game.buzz("x") is None
    assert game.buzz("LA") is None
    assert game.buzz("l").name == "Player 2"
    assert game.responder == 1
    assert game.buzz_order == [1, 2]
    assert game.state()["can_buzz"] is False


def test_guess_without_buzz():
    with pytest.raises(NoResponderError):
        multi().guess("anything")


def test_correct_guess_scores_responder_and_advances_round():
    game = multi()
    song = game.current.song
    game.buzz("L")
    outcome = game.guess(song["artist"])
    assert outcome.correct
    assert outcome.message == f'Player 2 got it! "{song["title"]}" by {song["artist"]}'
    assert game.players[1].score == 1
    assert game.current_round == 2
    assert game.responder is None and game.buzz_order == []


def test_wrong_answer_passes_to_next_buzzer_then_reveals():
    game = multi()
    song = game.current.song
    game.buzz("A")
    game.buzz("L")
    outcome = game.guess("nope")
    assert outcome.message == "Wrong! Player 2's turn to answer."
    assert game.responder == 2
    assert game.current_round == 1

    outcome = game.guess("still nope")
    assert outcome.message == f'No one got it! It was "{song["title"]}" by {song["artist"]}'
    assert game.current_round == 2
    assert game.results[0]["winner"] is None


def test_game_ends_after_configured_rounds():
    game = multi(rounds=2)
    game.skip()
    assert not game.is_over
    game.skip()
    assert game.is_over
    assert game.current_round == 2
    assert game.buzz("A") is None
    with pytest.raises(GameOverError):
        game.skip()


def test_final_round_correct_answer_ends_game():
    game = multi(rounds=1)
    game.buzz("A")
    outcome = game.guess(game.current.song["title"])
    assert outcome.game_over
    assert game.is_over
    assert game.summary()["outcome"] == "🏆 Player 1 wins with 1 points!"


def test_tie_message():
    game = multi(players=[{"name": "Ana", "key": "A"}, {"name": "Bo", "key": "B"}, {"name": "Cy", "key": "C"}])
    game.players[0].score = 2
    game.players[2].score = 2
    assert game.outcome_message() == "It's a tie! Ana and Cy win with 2 points each!"
    assert [p["name"] for p in game.summary()["standings"]][:2] == ["Ana", "Cy"]


# Registry

def test_registry_is_scoped_to_owner():
    registry = GameRegistry()
    game = registry.add(solo())
    assert registry.get(game.id, "u1") is game
    with pytest.raises(GameNotFound):
        registry.get(game.id, "someone-else")
    with pytest.raises(GameNotFound):
        registry.get("missing", "u1")


def test_registry_prunes_finished_games():
    clock = FakeClock()
    registry = GameRegistry(clock=clock, ttl=60)
    old = registry.add(solo(clock=clock))
    old.end()
    clock.advance(61)
    registry.add(solo(clock=clock))
    assert len(registry) == 1
    with pytest.raises(GameNotFound):
        registry.get(old.id, "u1")
