"""
In-memory game engine

A game is built from the song list of one playlist. SongQueue hands out
songs without repeats, SoloGame runs the countdown mode and MultiplayerGame
the buzz-in mode. GameRegistry keeps live games per process.

Games never touch the database; callers persist results once `is_over`
turns true.
"""

import math
import random
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import matching
import youtube
from logger import get_logger

log = get_logger("game")

Clock = Callable[[], float]

BATCH_SIZE = 5
LOW_WATER = 2

SOLO_DURATIONS = (30, 60)
DEFAULT_SOLO_DURATION = 30

DEFAULT_ROUNDS = 3
MIN_ROUNDS, MAX_ROUNDS = 1, 99
MIN_PLAYERS, MAX_PLAYERS = 2, 4
DEFAULT_KEYS = ["A", "L", "J", "Z"]
PLAYER_COLORS = ["blue", "red", "green", "yellow"]

SKIPPED = "Skipped"


class GameError(Exception):
    pass


class EmptyPlaylistError(GameError):
    pass


class GameOverError(GameError):
    pass


class NoResponderError(GameError):
    pass


class InvalidGuessError(GameError):
    pass


class GameNotFound(GameError):
    pass


class SongQueue:
    """
    Random song selection without repeats.

    Songs are pulled into a working set in random batches. A new batch is
    added once the unplayed part of the working set runs low. After every
    song of the playlist has been played a new cycle starts.
    """

    def __init__(self, songs: list[dict], batch_size: int = BATCH_SIZE,
                 low_water: int = LOW_WATER, rng: Optional[random.Random] = None):
        if not songs:
            raise EmptyPlaylistError("Playlist has no songs")
        self.songs = list(songs)
        self.batch_size = batch_size
        self.low_water = low_water
        self.rng = rng or random.Random()
        self.loaded: list[dict] = []
        self.played: set[str] = set()
        self.last_played: Optional[str] = None
        self._load_batch()

    def _load_batch(self) -> int:
        loaded_ids = {s["id"] for s in self.loaded}
        candidates = [s for s in self.songs if s["id"] not in loaded_ids]
        self.rng.shuffle(candidates)
        batch = candidates[:self.batch_size]
        self.loaded.extend(batch)
        if batch:
            log.debug("Loaded batch of %d songs (%d/%d)", len(batch), len(self.loaded), len(self.songs))
        return len(batch)

    def unplayed(self) -> list[dict]:
        return [s for s in self.loaded if s["id"] not in self.played]

    def next_song(self) -> dict:
        unplayed = self.unplayed()
        if len(unplayed) <= self.low_water and len(self.loaded) < len(self.songs):
            self._load_batch()
            unplayed = self.unplayed()

        if not unplayed:
            log.info("All %d songs played, starting a new cycle", len(self.songs))
            self.played.clear()
            unplayed = [s for s in self.loaded if s["id"] != self.last_played] or list(self.loaded)

        song = self.rng.choice(unplayed)
        self.played.add(song["id"])
        self.last_played = song["id"]
        return song


@dataclass
class Player:
    id: int
    name: str
    key: str
    color: str = ""
    score: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "key": self.key, "color": self.color, "score": self.score}


def default_players(count: int = MIN_PLAYERS) -> list[Player]:
    return [
        Player(id=i + 1, name=f"Player {i + 1}", key=DEFAULT_KEYS[i], color=PLAYER_COLORS[i])
        for i in range(count)
    ]


def build_players(setups: Optional[list[dict]]) -> list[Player]:
    """Validate player setup: 2-4 players with distinct single-character keys."""
    if not setups:
        return default_players()
    if not MIN_PLAYERS <= len(setups) <= MAX_PLAYERS:
        raise GameError(f"Multiplayer needs {MIN_PLAYERS} to {MAX_PLAYERS} players")

    players = []
    for i, setup in enumerate(setups):
        key = (setup.get("key") or DEFAULT_KEYS[i]).upper()
        if len(key) != 1 or not key.strip():
            raise GameError("Buzz keys must be a single visible character")
        name = (setup.get("name") or "").strip() or f"Player {i + 1}"
        players.append(Player(id=i + 1, name=name, key=key, color=setup.get("color") or PLAYER_COLORS[i]))

    keys = [p.key for p in players]
    if len(set(keys)) != len(keys):
        raise GameError("Each player needs a different buzz key")
    return players


@dataclass
class Round:
    number: int
    song: dict
    clip_url: Optional[str]

    def to_dict(self, reveal: bool = False) -> dict:
        out = {
            "number": self.number,
            "song_id": self.song["id"],
            "clip_url": self.clip_url,
            "album_art": self.song.get("album_art"),
        }
        if reveal:
            out["title"] = self.song.get("title")
            out["artist"] = self.song.get("artist")
        return out


@dataclass
class GuessOutcome:
    correct: bool
    message: str
    game_over: bool = False

    def to_dict(self) -> dict:
        return {"correct": self.correct, "message": self.message, "game_over": self.game_over}


def _song_brief(song: dict) -> dict:
    return {
        "id": song["id"],
        "title": song.get("title"),
        "artist": song.get("artist"),
        "album_art": song.get("album_art"),
    }


class Game:
    mode = ""

    def __init__(self, owner_id: str, playlist: dict, songs: list[dict],
                 clock: Clock = time.monotonic, rng: Optional[random.Random] = None):
        self.id = uuid.uuid4().hex
        self.owner_id = owner_id
        self.playlist = playlist
        self.songs = list(songs)
        self.clock = clock
        self.rng = rng or random.Random()
        self.queue = SongQueue(self.songs, rng=self.rng)
        self.current: Optional[Round] = None
        self.round_count = 0
        self.started_at = clock()
        self.ended_at: Optional[float] = None
        self.banner: Optional[dict] = None
        self.results: list[dict] = []
        self.persisted = False
        self._lock = threading.RLock()

    # -- helpers -----------------------------------------------------------

    def _serve_next(self) -> Round:
        song = self.queue.next_song()
        self.round_count += 1
        video_id = song.get("youtube_id") or youtube.extract_video_id(song.get("audio_url", ""))
        clip = None
        if video_id:
            clip = youtube.embed_url(video_id, start=youtube.clip_start(song.get("duration"), self.rng))
        self.current = Round(number=self.round_count, song=song, clip_url=clip)
        log.debug("Game %s now playing %s - %s", self.id, song.get("title"), song.get("artist"))
        return self.current

    def _set_banner(self, kind: str, message: str) -> None:
        self.banner = {"type": kind, "message": message}

    def _finish(self, at: Optional[float] = None) -> None:
        if self.ended_at is None:
            self.ended_at = at if at is not None else self.clock()
            log.info("Game %s (%s) finished", self.id, self.mode)

    def _check_clock(self) -> None:
        pass

    def _require_running(self) -> None:
        self._check_clock()
        if self.ended_at is not None:
            raise GameOverError("Game has ended")

    @property
    def is_over(self) -> bool:
        with self._lock:
            self._check_clock()
            return self.ended_at is not None

    def elapsed_seconds(self) -> int:
        end = self.ended_at if self.ended_at is not None else self.clock()
        return int(max(0, end - self.started_at))

    def end(self) -> None:
        with self._lock:
            self._check_clock()
            self._finish()

    def persist_once(self, save: Callable[["Game"], Optional[str]]) -> Optional[str]:
        """Run `save` for a finished game; later calls do nothing."""
        with self._lock:
            if self.persisted or not self.is_over:
                return None
            result = save(self)
            self.persisted = True
            return result

    def suggestions(self, text: str) -> list[dict]:
        return matching.suggest(text, self.songs)

    def state(self) -> dict:
        with self._lock:
            over = self.is_over
            return {
                "id": self.id,
                "mode": self.mode,
                "playlist": self.playlist,
                "status": "ended" if over else "playing",
                "round": self.current.to_dict(reveal=over) if self.current else None,
                "banner": self.banner,
            }


class SoloGame(Game):
    mode = "solo"

    def __init__(self, owner_id: str, playlist: dict, songs: list[dict],
                 duration: int = DEFAULT_SOLO_DURATION, **kwargs):
        if duration not in SOLO_DURATIONS:
            raise GameError(f"Solo duration must be one of {SOLO_DURATIONS}")
        super().__init__(owner_id, playlist, songs, **kwargs)
        self.duration = duration
        self.score = 0
        # the countdown starts with the first song
        self._serve_next()
        self.started_at = self.clock()

    def _check_clock(self) -> None:
        if self.ended_at is None and self.clock() - self.started_at >= self.duration:
            self._finish(at=self.started_at + self.duration)

    def time_remaining(self) -> int:
        with self._lock:
            self._check_clock()
            end = self.ended_at if self.ended_at is not None else self.clock()
            return max(0, math.ceil(self.duration - (end - self.started_at)))

    def guess(self, text: str) -> GuessOutcome:
        with self._lock:
            if not (text or "").strip():
                raise InvalidGuessError("Guess is empty")
            self._require_running()

            song = self.current.song
            if matching.is_correct_guess(text, song.get("title", ""), song.get("artist", "")):
                self.score += 1
                self.results.append({"song": _song_brief(song), "correct": True, "guess": text.strip()})
                message = f'Correct! "{song.get("title")}" by {song.get("artist")}'
                self._set_banner("correct", message)
                self._serve_next()
                return GuessOutcome(True, message)

            message = "Incorrect guess. Keep trying!"
            self._set_banner("incorrect", message)
            return GuessOutcome(False, message)

    def skip(self) -> None:
        with self._lock:
            self._require_running()
            self.results.append({"song": _song_brief(self.current.song), "correct": False, "guess": SKIPPED})
            self._serve_next()

    def state(self) -> dict:
        with self._lock:
            out = super().state()
            out.update({
                "duration": self.duration,
                "time_remaining": self.time_remaining(),
                "score": self.score,
            })
            return out

    def summary(self) -> dict:
        with self._lock:
            return {
                "id": self.id,
                "mode": self.mode,
                "playlist": self.playlist,
                "duration": self.duration,
                "score": self.score,
                "results": list(self.results),
            }


class MultiplayerGame(Game):
    mode = "multiplayer"

    def __init__(self, owner_id: str, playlist: dict, songs: list[dict],
                 rounds: int = DEFAULT_ROUNDS, players: Optional[list[dict]] = None, **kwargs):
        if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
            raise GameError(f"Rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}")
        self.players = build_players(players)
        super().__init__(owner_id, playlist, songs, **kwargs)
        self.rounds = rounds
        self.current_round = 1
        self.buzz_order: list[int] = []
        self.responder: Optional[int] = None
        self._serve_next()

    def _player(self, player_id: Optional[int]) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def _advance_round(self, winner: Optional[Player]) -> bool:
        """Close the current round; returns True when the game ended."""
        self.results.append({
            "round": self.current_round,
            "song": _song_brief(self.current.song),
            "winner": winner.name if winner else None,
        })
        self.buzz_order = []
        self.responder = None
        if self.current_round + 1 > self.rounds:
            self._finish()
            return True
        self.current_round += 1
        self._serve_next()
        return False

    def buzz(self, key: str) -> Optional[Player]:
        """Register a buzz; returns the player, or None when it is ignored."""
        with self._lock:
            if self.ended_at is not None or not key or len(key) != 1:
                return None
            player = next((p for p in self.players if p.key == key.upper()), None)
            if player is None or player.id in self.buzz_order:
                return None
            self.buzz_order.append(player.id)
            if self.responder is None:
                self.responder = player.id
            return player

    def guess(self, text: str) -> GuessOutcome:
        with self._lock:
            if not (text or "").strip():
                raise InvalidGuessError("Guess is empty")
            self._require_running()
            if self.responder is None:
                raise NoResponderError("Nobody has buzzed in yet")

            song = self.current.song
            responder = self._player(self.responder)
            if matching.is_correct_guess(text, song.get("title", ""), song.get("artist", "")):
                responder.score += 1
                message = f'{responder.name} got it! "{song.get("title")}" by {song.get("artist")}'
                self._set_banner("correct", message)
                over = self._advance_round(responder)
                return GuessOutcome(True, message, game_over=over)

            position = self.buzz_order.index(self.responder)
            if position + 1 < len(self.buzz_order):
                self.responder = self.buzz_order[position + 1]
                message = f"Wrong! {self._player(self.responder).name}'s turn to answer."
                self._set_banner("incorrect", message)
                return GuessOutcome(False, message)

            message = f'No one got it! It was "{song.get("title")}" by {song.get("artist")}'
            self._set_banner("incorrect", message)
            over = self._advance_round(None)
            return GuessOutcome(False, message, game_over=over)

    def skip(self) -> None:
        with self._lock:
            self._require_running()
            self._advance_round(None)

    def standings(self) -> list[Player]:
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    def outcome_message(self) -> str:
        ranked = self.standings()
        top = ranked[0].score
        winners = [p for p in ranked if p.score == top]
        if len(winners) > 1:
            return f"It's a tie! {' and '.join(p.name for p in winners)} win with {top} points each!"
        return f"🏆 {winners[0].name} wins with {top} points!"

    def top_score(self) -> int:
        return max(p.score for p in self.players)

    def state(self) -> dict:
        with self._lock:
            out = super().state()
            over = self.ended_at is not None
            out.update({
                "rounds": self.rounds,
                "current_round": self.current_round,
                "players": [p.to_dict() for p in self.players],
                "buzz_order": list(self.buzz_order),
                "responder": self.responder,
                "can_buzz": not over and len(self.buzz_order) < len(self.players),
            })
            return out

    def summary(self) -> dict:
        with self._lock:
            return {
                "id": self.id,
                "mode": self.mode,
                "playlist": self.playlist,
                "rounds": self.rounds,
                "standings": [p.to_dict() for p in self.standings()],
                "outcome": self.outcome_message(),
                "results": list(self.results),
            }


class GameRegistry:
    """Live games of this process, keyed by id."""

    def __init__(self, clock: Clock = time.monotonic, ttl: float = 3600, max_age: float = 6 * 3600):
        self.clock = clock
        self.ttl = ttl
        self.max_age = max_age
        self._games: dict[str, Game] = {}
        self._lock = threading.Lock()

    def add(self, game: Game) -> Game:
        with self._lock:
            self._prune()
            self._games[game.id] = game
        log.info("Game %s created (%s, playlist %s)", game.id, game.mode, game.playlist.get("id"))
        return game

    def get(self, game_id: str, owner_id: str) -> Game:
        with self._lock:
            game = self._games.get(game_id)
        if game is None or game.owner_id != owner_id:
            raise GameNotFound("Game not found")
        return game

    def __len__(self) -> int:
        return len(self._games)

    def _prune(self) -> None:
        now = self.clock()
        # abandoned games that never ended go after max_age
        stale = [
            gid for gid, g in self._games.items()
            if (g.is_over and now - g.ended_at > self.ttl) or now - g.started_at > self.max_age
        ]
        for gid in stale:
            del self._games[gid]
