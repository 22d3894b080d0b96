"""
Preset and user playlist storage, plus the YouTube / Spotify import flows.

Songs of both playlist kinds live in the "song" collection and point back
at their playlist with playlist_id + playlist_type.
"""

from typing import Optional

import database
import spotify
import youtube
from logger import get_logger
from schemas import PresetPlaylist, Song, UserPlaylist

log = get_logger("playlists")

PRESET = "preset"
USER = "user"

COLLECTIONS = {PRESET: "preset_playlist", USER: "user_playlist"}


class PlaylistNotFound(Exception):
    pass


class PlaylistImportError(Exception):
    pass


# Reads

def list_preset_playlists() -> list[dict]:
    docs = database.get_documents("preset_playlist", {}, sort=[("name", 1)])
    return [database.serialize(d) for d in docs]


def get_preset_playlist(playlist_id: str) -> dict:
    doc = database.get_document("preset_playlist", playlist_id)
    if not doc:
        raise PlaylistNotFound("Playlist not found")
    return database.serialize(doc)


def list_user_playlists(user_id: str) -> list[dict]:
    docs = database.get_documents("user_playlist", {"user_id": user_id}, sort=[("created_at", -1)])
    return [database.serialize(d) for d in docs]


def get_user_playlist(user_id: str, playlist_id: str) -> dict:
    doc = database.get_document("user_playlist", playlist_id, {"user_id": user_id})
    if not doc:
        raise PlaylistNotFound("Playlist not found")
    return database.serialize(doc)


def get_playlist_songs(playlist_id: str, playlist_type: str) -> list[dict]:
    docs = database.get_documents(
        "song",
        {"playlist_id": playlist_id, "playlist_type": playlist_type},
        sort=[("created_at", 1)],
    )
    return [database.serialize(d) for d in docs]


def load_for_game(playlist_id: str, playlist_type: str, user_id: str) -> tuple[dict, list[dict]]:
    """Playlist summary and songs for a new game. User playlists need ownership."""
    if playlist_type == PRESET:
        playlist = get_preset_playlist(playlist_id)
    elif playlist_type == USER:
        playlist = get_user_playlist(user_id, playlist_id)
    else:
        raise PlaylistNotFound(f"Unknown playlist type: {playlist_type}")

    songs = get_playlist_songs(playlist_id, playlist_type)
    log.info("Found %d total songs in playlist %s", len(songs), playlist_id)
    return {"id": playlist["id"], "name": playlist["name"], "type": playlist_type}, songs


# Preset management (admin)

def create_preset_playlist(name: str, genre: str, description: str = "",
                           cover_image_url: Optional[str] = None) -> str:
    playlist = PresetPlaylist(name=name, genre=genre, description=description, cover_image_url=cover_image_url)
    playlist_id = database.create_document("preset_playlist", playlist)
    log.info("Preset playlist created with ID: %s", playlist_id)
    return playlist_id


def _add_song(playlist_id: str, playlist_type: str, fields: dict) -> str:
    fields = dict(fields)
    if not fields.get("youtube_id"):
        fields["youtube_id"] = youtube.extract_video_id(fields.get("audio_url", ""))
    song = Song(playlist_id=playlist_id, playlist_type=playlist_type, **fields)
    song_id = database.create_document("song", song)
    database.increment_field(COLLECTIONS[playlist_type], playlist_id, "track_count", 1)
    return song_id


def add_song_to_preset(playlist_id: str, title: str, artist: str, audio_url: str,
                       duration: Optional[int] = None, album_art: Optional[str] = None) -> str:
    get_preset_playlist(playlist_id)
    return _add_song(playlist_id, PRESET, {
        "title": title,
        "artist": artist,
        "audio_url": audio_url,
        "duration": duration,
        "album_art": album_art,
    })


def _preset_song(playlist_id: str, song_id: str) -> dict:
    doc = database.get_document("song", song_id, {"playlist_id": playlist_id, "playlist_type": PRESET})
    if not doc:
        raise PlaylistNotFound("Song not found")
    return doc


def update_preset_song(playlist_id: str, song_id: str, changes: dict) -> dict:
    _preset_song(playlist_id, song_id)
    changes = {k: v for k, v in changes.items() if v is not None}
    if changes.get("audio_url"):
        video_id = youtube.extract_video_id(changes["audio_url"])
        if video_id:
            changes["youtube_id"] = video_id
    if changes:
        database.update_document("song", song_id, changes)
    log.info("Song %s updated", song_id)
    return database.serialize(database.get_document("song", song_id))


def delete_preset_song(playlist_id: str, song_id: str) -> None:
    _preset_song(playlist_id, song_id)
    database.delete_document("song", song_id)
    database.increment_field("preset_playlist", playlist_id, "track_count", -1)
    log.info("Song %s deleted", song_id)


# User playlists

def create_user_playlist(user_id: str, fields: dict, songs: list[dict]) -> str:
    playlist = UserPlaylist(user_id=user_id, track_count=0, **fields)
    playlist_id = database.create_document("user_playlist", playlist)
    for song in songs:
        _add_song(playlist_id, USER, song)
    return playlist_id


def delete_user_playlist(user_id: str, playlist_id: str) -> None:
    get_user_playlist(user_id, playlist_id)
    removed = database.delete_documents("song", {"playlist_id": playlist_id, "playlist_type": USER})
    database.delete_document("user_playlist", playlist_id)
    log.info("Deleted user playlist %s with %d songs", playlist_id, removed)


def import_youtube_playlist(user_id: str, playlist_url: str, client: youtube.YouTubeClient) -> str:
    if not youtube.is_playlist_url(playlist_url):
        raise PlaylistImportError("Please enter a valid YouTube playlist URL")
    source_id = youtube.extract_playlist_id(playlist_url)
    if not source_id:
        raise PlaylistImportError("Invalid YouTube playlist URL")

    log.info("Importing YouTube playlist: %s", source_id)
    try:
        meta = client.get_playlist(source_id)
        video_ids = client.get_playlist_video_ids(source_id)
        if not video_ids:
            raise PlaylistImportError("Playlist is empty or all videos are private/unavailable.")
        videos = client.get_videos(video_ids)
    except youtube.YouTubeAPIError as e:
        raise PlaylistImportError(str(e))

    songs = []
    for video_id in video_ids:
        video = videos.get(video_id)
        if not video:
            log.warning("Video %s not found or unavailable, skipping", video_id)
            continue
        songs.append(youtube.video_to_song(video))

    if not songs:
        raise PlaylistImportError("Playlist is empty or all videos are private/unavailable.")

    snippet = meta.get("snippet", {})
    playlist_id = create_user_playlist(user_id, {
        "name": snippet.get("title") or "YouTube playlist",
        "description": snippet.get("description") or "",
        "source": "youtube",
        "source_id": source_id,
        "source_url": playlist_url,
        "cover_image_url": youtube.best_thumbnail(snippet.get("thumbnails", {})),
    }, songs)
    log.info("YouTube playlist imported: %s (%d songs)", playlist_id, len(songs))
    return playlist_id


def import_spotify_playlist(user_id: str, spotify_playlist_id: str, access_token: str,
                            spotify_client: spotify.SpotifyClient,
                            youtube_client: youtube.YouTubeClient) -> str:
    try:
        meta = spotify_client.get_playlist(access_token, spotify_playlist_id)
        tracks = spotify_client.get_playlist_tracks(access_token, spotify_playlist_id)
    except spotify.SpotifyAPIError as e:
        raise PlaylistImportError(str(e))
    if not tracks:
        raise PlaylistImportError("Spotify playlist has no playable tracks")

    songs = []
    for track in tracks:
        query = f"{track['title']} {track['artist']} official audio"
        try:
            video_id = youtube_client.search_video(query)
        except youtube.YouTubeAPIError as e:
            if e.status_code == 403:
                raise PlaylistImportError(str(e))
            log.warning("YouTube search failed for %s: %s", query, e)
            continue
        if not video_id:
            log.warning("No YouTube match for %s, skipping", query)
            continue
        songs.append(dict(track, audio_url=youtube.watch_url(video_id), youtube_id=video_id))

    if not songs:
        raise PlaylistImportError("None of the playlist's tracks could be found on YouTube")

    images = meta.get("images") or []
    playlist_id = create_user_playlist(user_id, {
        "name": meta.get("name") or "Spotify playlist",
        "description": meta.get("description") or "",
        "source": "spotify",
        "source_id": spotify_playlist_id,
        "source_url": (meta.get("external_urls") or {}).get("spotify")
        or f"https://open.spotify.com/playlist/{spotify_playlist_id}",
        "cover_image_url": images[0].get("url") if images else None,
    }, songs)
    log.info("Spotify playlist imported: %s (%d/%d tracks)", playlist_id, len(songs), len(tracks))
    return playlist_id
