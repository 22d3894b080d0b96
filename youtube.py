"""
YouTube Data API v3 client and URL helpers

Only the key-based (no OAuth) endpoints are used: playlists, playlistItems,
videos and search.
"""

import random
import re
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

import config
from logger import get_logger

log = get_logger("youtube")

API_BASE = "https://www.googleapis.com/youtube/v3"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
EMBED_URL = "https://www.youtube.com/embed/{video_id}"

MAX_PLAYLIST_ITEMS = 200
PAGE_SIZE = 50
DEFAULT_SONG_DURATION = 180
CLIP_TAIL = 30

_VIDEO_ID = re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})")
_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class YouTubeAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def extract_video_id(url: str) -> Optional[str]:
    match = _VIDEO_ID.search(url or "")
    return match.group(1) if match else None


def extract_playlist_id(url: str) -> Optional[str]:
    query = parse_qs(urlparse(url or "").query)
    values = query.get("list")
    return values[0] if values and values[0] else None


def is_playlist_url(url: str) -> bool:
    return "youtube.com/playlist" in (url or "") or "youtu.be/playlist" in (url or "")


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def parse_duration(duration: str) -> int:
    """ISO 8601 duration (PT4M13S) to seconds; 0 when unparseable."""
    match = _ISO_DURATION.fullmatch(duration or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def clip_start(duration: Optional[int], rng: Optional[random.Random] = None) -> int:
    """Random start offset that leaves room for a clip at the end of the song."""
    rng = rng or random
    span = max(1, (duration or DEFAULT_SONG_DURATION) - CLIP_TAIL)
    return max(0, rng.randrange(span))


def embed_url(video_id: str, start: int = 0, autoplay: bool = True, controls: bool = False) -> str:
    params = {
        "autoplay": 1 if autoplay else 0,
        "start": start,
        "controls": 1 if controls else 0,
        "rel": 0,
        "modestbranding": 1,
    }
    return f"{EMBED_URL.format(video_id=video_id)}?{urlencode(params)}"


def best_thumbnail(thumbnails: dict) -> Optional[str]:
    for size in ("maxres", "high", "medium", "default"):
        if (thumbnails or {}).get(size, {}).get("url"):
            return thumbnails[size]["url"]
    return None


def _error_message(status: int, message: str, reasons: list[str], context: str) -> str:
    if status == 403:
        if context == "playlistItems":
            return ("Cannot access playlist items. The playlist might be private "
                    "or you may have reached the API quota limit.")
        if "quotaExceeded" in reasons or "quotaExceeded" in message:
            return "YouTube API quota exceeded. Please try again later or check your API key quota limits."
        if "forbidden" in reasons or "forbidden" in message:
            return ("YouTube API access forbidden. Please check your API key permissions "
                    "and make sure YouTube Data API v3 is enabled.")
        return f"YouTube API access denied: {message}"
    if status == 400:
        return f"Invalid request: {message}. Please check the playlist URL."
    if status == 404:
        if context == "playlistItems":
            return "Playlist items not found. The playlist might be empty or private."
        return "Playlist not found. Please check that the playlist exists and is public or unlisted."
    return f"YouTube API error ({status}): {message}"


class YouTubeClient:
    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else config.YOUTUBE_API_KEY
        self.session = session or requests.Session()

    def _get(self, endpoint: str, params: dict) -> dict:
        if not self.api_key:
            raise YouTubeAPIError("YouTube API key not configured")

        query = dict(params, key=self.api_key)
        try:
            r = self.session.get(f"{API_BASE}/{endpoint}", params=query, timeout=config.HTTP_TIMEOUT)
        except requests.RequestException as e:
            raise YouTubeAPIError(f"YouTube request failed: {str(e)[:120]}")

        try:
            data = r.json()
        except ValueError:
            data = {}

        error = data.get("error") if isinstance(data, dict) else None
        if r.status_code >= 400 or error:
            error = error or {}
            status = int(error.get("code") or r.status_code)
            message = error.get("message") or f"HTTP {r.status_code}"
            reasons = [e.get("reason", "") for e in error.get("errors", [])]
            log.error("YouTube %s failed: %s %s", endpoint, status, message)
            raise YouTubeAPIError(_error_message(status, message, reasons, endpoint), status)
        return data

    def get_playlist(self, playlist_id: str) -> dict:
        data = self._get("playlists", {"part": "snippet", "id": playlist_id})
        items = data.get("items") or []
        if not items:
            raise YouTubeAPIError(
                "Playlist not found or is private. Please make sure the playlist is public or unlisted.", 404
            )
        return items[0]

    def get_playlist_video_ids(self, playlist_id: str, max_items: int = MAX_PLAYLIST_ITEMS) -> list[str]:
        video_ids: list[str] = []
        page_token = None
        while len(video_ids) < max_items:
            params = {"part": "snippet", "playlistId": playlist_id, "maxResults": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self._get("playlistItems", params)
            for item in data.get("items") or []:
                video_id = (item.get("snippet", {}).get("resourceId") or {}).get("videoId")
                if video_id:
                    video_ids.append(video_id)
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return video_ids[:max_items]

    def get_videos(self, video_ids: list[str]) -> dict[str, dict]:
        """Video details keyed by id; unavailable videos are simply absent."""
        found: dict[str, dict] = {}
        for i in range(0, len(video_ids), PAGE_SIZE):
            chunk = video_ids[i:i + PAGE_SIZE]
            data = self._get("videos", {"part": "snippet,contentDetails", "id": ",".join(chunk)})
            for video in data.get("items") or []:
                found[video["id"]] = video
        return found

    def search_video(self, query: str) -> Optional[str]:
        """First matching video id for a free-text query."""
        data = self._get("search", {"part": "snippet", "type": "video", "q": query, "maxResults": 1})
        items = data.get("items") or []
        if not items:
            return None
        return (items[0].get("id") or {}).get("videoId")


def video_to_song(video: dict) -> dict:
    snippet = video.get("snippet", {})
    video_id = video["id"]
    return {
        "title": snippet.get("title", ""),
        "artist": snippet.get("channelTitle", ""),
        "audio_url": watch_url(video_id),
        "youtube_id": video_id,
        "duration": parse_duration((video.get("contentDetails") or {}).get("duration", "")),
        "album_art": best_thumbnail(snippet.get("thumbnails", {})),
    }
