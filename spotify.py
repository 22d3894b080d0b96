"""
Spotify authorization (code flow with PKCE) and the few Web API reads
needed to import a playlist.
"""

import base64
import hashlib
import secrets
from typing import Optional
from urllib.parse import urlencode

import requests

import config
from logger import get_logger

log = get_logger("spotify")

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE = "https://api.spotify.com/v1"

SCOPES = "playlist-read-private playlist-read-collaborative"
CLIENT_ID_LENGTH = 32
MAX_PLAYLIST_TRACKS = 200
PAGE_SIZE = 50


class SpotifyAuthError(Exception):
    pass


class SpotifyAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def validate_client_id(client_id: Optional[str]) -> str:
    client_id = (client_id or "").strip()
    if not client_id:
        raise SpotifyAuthError("Spotify Client ID not configured. Please set SPOTIFY_CLIENT_ID.")
    if len(client_id) != CLIENT_ID_LENGTH:
        raise SpotifyAuthError("Invalid Spotify Client ID. Please check SPOTIFY_CLIENT_ID.")
    return client_id


def generate_code_verifier() -> str:
    # 64 random bytes -> 86 url-safe chars, inside the 43..128 range PKCE allows
    return secrets.token_urlsafe(64)


def code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def build_authorize_url(client_id: str, redirect_uri: str, challenge: str, state: str) -> str:
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": SCOPES,
        "code_challenge_method": "S256",
        "code_challenge": challenge,
        "state": state,
        "show_dialog": "true",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def track_to_song(track: dict) -> Optional[dict]:
    """Spotify track object to song fields; None for local/removed tracks."""
    if not track or not track.get("id") or not track.get("name"):
        return None
    images = (track.get("album") or {}).get("images") or []
    duration_ms = track.get("duration_ms")
    return {
        "spotify_id": track["id"],
        "title": track["name"],
        "artist": ", ".join(a.get("name", "") for a in track.get("artists") or [] if a.get("name")),
        "duration": int(duration_ms / 1000) if duration_ms else None,
        "album_art": images[0].get("url") if images else None,
    }


class SpotifyClient:
    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def exchange_code(self, code: str, code_verifier: str, redirect_uri: str, client_id: str) -> dict:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": code_verifier,
        }
        try:
            r = self.session.post(
                TOKEN_URL,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=config.HTTP_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SpotifyAuthError(f"Token exchange failed: {str(e)[:120]}")

        if r.status_code != 200:
            log.error("Spotify token exchange failed: %s", r.status_code)
            raise SpotifyAuthError(f"Token exchange failed ({r.status_code})")

        payload = r.json()
        if not payload.get("access_token"):
            raise SpotifyAuthError("Token exchange returned no access token")
        return {
            "access_token": payload["access_token"],
            "token_type": payload.get("token_type", "Bearer"),
            "expires_in": int(payload.get("expires_in", 3600)),
        }

    def _get(self, url: str, token: str, params: Optional[dict] = None) -> dict:
        try:
            r = self.session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=config.HTTP_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SpotifyAPIError(f"Spotify request failed: {str(e)[:120]}")

        if r.status_code == 401:
            raise SpotifyAPIError("Spotify session expired. Please connect Spotify again.", 401)
        if r.status_code == 404:
            raise SpotifyAPIError("Spotify playlist not found", 404)
        if r.status_code >= 400:
            raise SpotifyAPIError(f"Spotify API error ({r.status_code})", r.status_code)
        return r.json()

    def get_playlists(self, token: str) -> list[dict]:
        playlists = []
        url = f"{API_BASE}/me/playlists"
        params: Optional[dict] = {"limit": PAGE_SIZE}
        while url:
            data = self._get(url, token, params)
            for item in data.get("items") or []:
                images = item.get("images") or []
                playlists.append({
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "description": item.get("description") or "",
                    "track_count": (item.get("tracks") or {}).get("total", 0),
                    "cover_image_url": images[0].get("url") if images else None,
                })
            # `next` already carries the query string
            url, params = data.get("next"), None
        return playlists

    def get_playlist(self, token: str, playlist_id: str) -> dict:
        return self._get(f"{API_BASE}/playlists/{playlist_id}", token, {"fields": "id,name,description,images,external_urls"})

    def get_playlist_tracks(self, token: str, playlist_id: str, max_tracks: int = MAX_PLAYLIST_TRACKS) -> list[dict]:
        songs: list[dict] = []
        url = f"{API_BASE}/playlists/{playlist_id}/tracks"
        params: Optional[dict] = {"limit": PAGE_SIZE}
        while url and len(songs) < max_tracks:
            data = self._get(url, token, params)
            for item in data.get("items") or []:
                song = track_to_song(item.get("track"))
                if song:
                    songs.append(song)
            url, params = data.get("next"), None
        return songs[:max_tracks]
