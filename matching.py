"""Guess normalization and matching for the trivia rounds."""

import re
from typing import Iterable

_STRIP_CHARS = re.compile(r"[^a-z0-9\s]")

SUGGESTION_LIMIT = 5
MIN_SUGGESTION_INPUT = 2


def normalize(text: str) -> str:
    return _STRIP_CHARS.sub("", (text or "").lower()).strip()


def is_correct_guess(guess: str, title: str, artist: str) -> bool:
    """
    A guess counts when it is the title, the artist, "title artist",
    or any text containing both the title and the artist.
    """
    norm_guess = normalize(guess)
    if not norm_guess:
        return False

    norm_title = normalize(title)
    norm_artist = normalize(artist)
    norm_full = normalize(f"{title} {artist}")

    return (
        norm_guess in (norm_title, norm_artist, norm_full)
        or (bool(norm_title) and bool(norm_artist) and norm_title in norm_guess and norm_artist in norm_guess)
    )


def suggest(text: str, songs: Iterable[dict], limit: int = SUGGESTION_LIMIT) -> list[dict]:
    """Autocomplete candidates from the playlist for a partial guess."""
    if not text or len(text.strip()) < MIN_SUGGESTION_INPUT:
        return []

    needle = normalize(text)
    if not needle:
        return []

    matches = []
    for song in songs:
        title = song.get("title", "")
        artist = song.get("artist", "")
        if (
            needle in normalize(title)
            or needle in normalize(artist)
            or needle in normalize(f"{title} {artist}")
        ):
            matches.append({
                "id": song.get("id"),
                "title": title,
                "artist": artist,
                "fill": f"{title} {artist}",
            })
            if len(matches) >= limit:
                break
    return matches
