from typing import Optional

import database
from game import Game, MultiplayerGame, SoloGame
from logger import get_logger
from schemas import LeaderboardEntry

log = get_logger("leaderboard")

ORDER = [("score", -1), ("created_at", -1)]


def save_score(user_id: str, username: str, playlist_id: str, playlist_name: str,
               mode: str, score: int, duration: int) -> str:
    entry = LeaderboardEntry(
        user_id=user_id,
        username=username,
        playlist_id=playlist_id,
        playlist_name=playlist_name,
        mode=mode,
        score=score,
        duration=duration,
    )
    entry_id = database.create_document("leaderboard", entry)
    log.info("Leaderboard score saved with ID: %s", entry_id)
    return entry_id


def _save_game(game: Game, user: dict) -> Optional[str]:
    if isinstance(game, SoloGame):
        score, duration = game.score, game.duration
    elif isinstance(game, MultiplayerGame):
        score, duration = game.top_score(), game.elapsed_seconds()
    else:
        return None

    return save_score(
        user_id=str(user["_id"]),
        username=user.get("username") or user.get("email", ""),
        playlist_id=game.playlist["id"],
        playlist_name=game.playlist["name"],
        mode=game.mode,
        score=score,
        duration=duration,
    )


def record_game(game: Game, user: dict) -> Optional[str]:
    """Persist a finished game once; concurrent callers save a single entry."""
    return game.persist_once(lambda g: _save_game(g, user))


def _hidden_user_ids() -> list[str]:
    hidden = database.get_documents("user", {"settings.show_in_leaderboards": False})
    return [str(u["_id"]) for u in hidden]


def _board(query: dict, limit: int) -> list[dict]:
    hidden = _hidden_user_ids()
    if hidden:
        query = dict(query, user_id={"$nin": hidden})
    docs = database.get_documents("leaderboard", query, limit=limit, sort=ORDER)
    return [database.serialize(d) for d in docs]


def playlist_leaderboard(playlist_id: str, mode: str = "solo", limit: int = 10) -> list[dict]:
    return _board({"playlist_id": playlist_id, "mode": mode}, limit)


def global_leaderboard(mode: str = "solo", limit: int = 10) -> list[dict]:
    return _board({"mode": mode}, limit)


def user_playlist_scores(user_id: str, playlist_id: str, mode: str = "solo", limit: int = 5) -> list[dict]:
    docs = database.get_documents(
        "leaderboard",
        {"user_id": user_id, "playlist_id": playlist_id, "mode": mode},
        limit=limit,
        sort=ORDER,
    )
    return [database.serialize(d) for d in docs]


def user_playlist_rank(user_id: str, playlist_id: str, mode: str = "solo") -> int:
    """1 + entries with a strictly higher score than the user's best; -1 if unranked."""
    best = user_playlist_scores(user_id, playlist_id, mode, limit=1)
    if not best:
        return -1
    better = database.count_documents(
        "leaderboard",
        {"playlist_id": playlist_id, "mode": mode, "score": {"$gt": best[0]["score"]}},
    )
    return better + 1


def user_history(user_id: str, limit: int = 50) -> list[dict]:
    docs = database.get_documents("leaderboard", {"user_id": user_id}, limit=limit, sort=[("created_at", -1)])
    return [database.serialize(d) for d in docs]
