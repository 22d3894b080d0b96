import secrets
import time
from typing import Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field, ValidationError

import config
import database
import leaderboard
import playlists
import presets
import spotify
import youtube
from auth import (
    MIN_PASSWORD_LENGTH,
    create_access_token,
    get_current_user,
    get_user_by_email,
    hash_password,
    public_profile,
    require_admin,
    verify_password,
)
from game import (
    DEFAULT_ROUNDS,
    DEFAULT_SOLO_DURATION,
    GameError,
    GameNotFound,
    GameOverError,
    GameRegistry,
    InvalidGuessError,
    MultiplayerGame,
    NoResponderError,
    SoloGame,
)
from logger import get_logger, setup_logging
from schemas import MAX_USERNAME_LENGTH, SpotifyAuthRequest, SpotifyToken, User, UserSettings

setup_logging(config.LOG_LEVEL)
log = get_logger("api")

# FastAPI app
app = FastAPI(title="MusikMatch API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

games = GameRegistry()


@app.exception_handler(database.DatabaseNotConfigured)
def database_not_configured(request: Request, exc: database.DatabaseNotConfigured):
    return JSONResponse(status_code=500, content={"detail": "Database not configured"})


def get_youtube_client() -> youtube.YouTubeClient:
    return youtube.YouTubeClient()


def get_spotify_client() -> spotify.SpotifyClient:
    return spotify.SpotifyClient()


# Request / response models

class SignupRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., max_length=MAX_USERNAME_LENGTH)
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=MAX_USERNAME_LENGTH)
    avatar_url: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class PresetPlaylistCreate(BaseModel):
    name: str
    genre: str
    description: str = ""
    cover_image_url: Optional[str] = None


class SongCreate(BaseModel):
    title: str
    artist: str
    audio_url: str
    duration: Optional[int] = Field(None, ge=0)
    album_art: Optional[str] = None


class SongUpdate(BaseModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    audio_url: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    album_art: Optional[str] = None


class YouTubeImportRequest(BaseModel):
    url: str


class SpotifyImportRequest(BaseModel):
    playlist_id: str


class SpotifyCallback(BaseModel):
    code: str
    state: str


class PlayerSetup(BaseModel):
    name: Optional[str] = None
    key: Optional[str] = None
    color: Optional[str] = None


class SoloGameRequest(BaseModel):
    playlist_id: str
    playlist_type: Literal["preset", "user"] = "preset"
    duration: int = DEFAULT_SOLO_DURATION


class MultiplayerGameRequest(BaseModel):
    playlist_id: str
    playlist_type: Literal["preset", "user"] = "preset"
    rounds: int = DEFAULT_ROUNDS
    players: Optional[list[PlayerSetup]] = None


class GuessRequest(BaseModel):
    guess: str


class BuzzRequest(BaseModel):
    key: str


# Utility functions

def _user_id(user: dict) -> str:
    return str(user["_id"])


def _require_text(value: Optional[str], message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail=message)
    return value


def _get_game(game_id: str, user: dict):
    try:
        return games.get(game_id, _user_id(user))
    except GameNotFound:
        raise HTTPException(status_code=404, detail="Game not found")


def _game_error(e: GameError) -> HTTPException:
    if isinstance(e, (GameOverError, NoResponderError)):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _spotify_token(user: dict) -> str:
    tokens = database.get_documents("spotify_token", {"user_id": _user_id(user)}, limit=1)
    if not tokens or int(tokens[0].get("expires_at", 0)) < int(time.time()):
        raise HTTPException(status_code=401, detail="Spotify not connected")
    return tokens[0]["access_token"]


# Routes
@app.get("/")
def read_root():
    return {"message": "MusikMatch API running"}


@app.get("/test")
def test_database():
    """Test endpoint to check if database is available and accessible"""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }

    try:
        if database.db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            try:
                response["collections"] = database.list_collection_names()[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if config.DATABASE_URL else "❌ Not Set"
    response["database_name"] = "✅ Set" if config.DATABASE_NAME else "❌ Not Set"
    response["youtube_api_key"] = "✅ Set" if config.YOUTUBE_API_KEY else "❌ Not Set"
    response["spotify_client_id"] = "✅ Set" if config.SPOTIFY_CLIENT_ID else "❌ Not Set"
    response["active_games"] = len(games)

    return response


# Auth endpoints
@app.post("/auth/signup", response_model=TokenResponse)
def signup(payload: SignupRequest):
    username = _require_text(payload.username, "Please fill in all fields")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )

    email = str(payload.email).lower()
    if get_user_by_email(email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(email=email, username=username, password_hash=hash_password(payload.password))
    database.create_document("user", user)
    log.info("User profile created for %s", email)

    return TokenResponse(access_token=create_access_token({"sub": email}))


@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginRequest):
    email = str(payload.email).lower()
    user = get_user_by_email(email)
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return TokenResponse(access_token=create_access_token({"sub": email}))


# Profile
@app.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"user": public_profile(user)}


@app.patch("/me")
def update_me(payload: ProfileUpdate, user: dict = Depends(get_current_user)):
    changes = {}
    if payload.username is not None:
        changes["username"] = _require_text(payload.username, "Username cannot be empty")
    if payload.avatar_url is not None:
        changes["avatar_url"] = payload.avatar_url.strip()
    if changes:
        database.update_document("user", _user_id(user), changes)
    return {"user": public_profile(database.get_document("user", _user_id(user)))}


@app.post("/me/password")
def change_password(payload: PasswordChange, user: dict = Depends(get_current_user)):
    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Current password is incorrect")
    if len(payload.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    database.update_document("user", _user_id(user), {"password_hash": hash_password(payload.new_password)})
    return {"status": "ok"}


@app.get("/me/settings", response_model=UserSettings)
def get_settings(user: dict = Depends(get_current_user)):
    try:
        return UserSettings(**(user.get("settings") or {}))
    except ValidationError:
        log.warning("Stored settings for %s are invalid, using defaults", user.get("email"))
        return UserSettings()


@app.put("/me/settings", response_model=UserSettings)
def put_settings(payload: UserSettings, user: dict = Depends(get_current_user)):
    database.update_document("user", _user_id(user), {"settings": payload.model_dump()})
    return payload


@app.get("/me/games")
def my_games(limit: int = 50, user: dict = Depends(get_current_user)):
    return {"games": leaderboard.user_history(_user_id(user), limit=min(max(limit, 1), 200))}


# Playlists
@app.get("/playlists/preset")
def preset_playlists():
    return {"playlists": playlists.list_preset_playlists()}


@app.get("/playlists/preset/{playlist_id}/songs")
def preset_playlist_songs(playlist_id: str):
    try:
        playlist = playlists.get_preset_playlist(playlist_id)
    except playlists.PlaylistNotFound:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return {"playlist": playlist, "songs": playlists.get_playlist_songs(playlist_id, playlists.PRESET)}


@app.get("/playlists/mine")
def my_playlists(user: dict = Depends(get_current_user)):
    return {"playlists": playlists.list_user_playlists(_user_id(user))}


@app.get("/playlists/mine/{playlist_id}/songs")
def my_playlist_songs(playlist_id: str, user: dict = Depends(get_current_user)):
    try:
        playlist = playlists.get_user_playlist(_user_id(user), playlist_id)
    except playlists.PlaylistNotFound:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return {"playlist": playlist, "songs": playlists.get_playlist_songs(playlist_id, playlists.USER)}


@app.delete("/playlists/mine/{playlist_id}")
def delete_my_playlist(playlist_id: str, user: dict = Depends(get_current_user)):
    try:
        playlists.delete_user_playlist(_user_id(user), playlist_id)
    except playlists.PlaylistNotFound:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return {"status": "ok"}


# Admin: preset management
@app.post("/admin/playlists")
def admin_create_playlist(payload: PresetPlaylistCreate, admin: dict = Depends(require_admin)):
    name = _require_text(payload.name, "Name and genre are required")
    genre = _require_text(payload.genre, "Name and genre are required")
    playlist_id = playlists.create_preset_playlist(name, genre, payload.description, payload.cover_image_url)
    return {"id": playlist_id}


@app.post("/admin/playlists/{playlist_id}/songs")
def admin_add_song(playlist_id: str, payload: SongCreate, admin: dict = Depends(require_admin)):
    title = _require_text(payload.title, "Title, artist and audio URL are required")
    artist = _require_text(payload.artist, "Title, artist and audio URL are required")
    audio_url = _require_text(payload.audio_url, "Title, artist and audio URL are required")
    try:
        song_id = playlists.add_song_to_preset(
            playlist_id, title, artist, audio_url, duration=payload.duration, album_art=payload.album_art
        )
    except playlists.PlaylistNotFound:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return {"id": song_id}


@app.patch("/admin/playlists/{playlist_id}/songs/{song_id}")
def admin_update_song(playlist_id: str, song_id: str, payload: SongUpdate, admin: dict = Depends(require_admin)):
    changes = payload.model_dump()
    for name in ("title", "artist", "audio_url"):
        if changes[name] is not None:
            changes[name] = _require_text(changes[name], "Title, artist and audio URL cannot be empty")
    try:
        song = playlists.update_preset_song(playlist_id, song_id, changes)
    except playlists.PlaylistNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"song": song}


@app.delete("/admin/playlists/{playlist_id}/songs/{song_id}")
def admin_delete_song(playlist_id: str, song_id: str, admin: dict = Depends(require_admin)):
    try:
        playlists.delete_preset_song(playlist_id, song_id)
    except playlists.PlaylistNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "ok"}


@app.post("/admin/seed")
def admin_seed(admin: dict = Depends(require_admin)):
    created = presets.seed_presets()
    return {"created": created}


# Imports
@app.post("/playlists/import/youtube")
def import_youtube(
    payload: YouTubeImportRequest,
    user: dict = Depends(get_current_user),
    client: youtube.YouTubeClient = Depends(get_youtube_client),
):
    if not client.api_key:
        raise HTTPException(status_code=500, detail="YouTube API key not configured")
    try:
        playlist_id = playlists.import_youtube_playlist(_user_id(user), payload.url.strip(), client)
    except playlists.PlaylistImportError as e:
        log.error("YouTube import failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Import failed: {e}")
    return {"id": playlist_id, "playlist": playlists.get_user_playlist(_user_id(user), playlist_id)}


@app.get("/spotify/authorize")
def spotify_authorize(user: dict = Depends(get_current_user)):
    try:
        client_id = spotify.validate_client_id(config.SPOTIFY_CLIENT_ID)
    except spotify.SpotifyAuthError as e:
        raise HTTPException(status_code=500, detail=str(e))

    verifier = spotify.generate_code_verifier()
    state = secrets.token_urlsafe(16)
    redirect_uri = config.SPOTIFY_REDIRECT_URI
    database.delete_documents("spotify_auth", {"user_id": _user_id(user)})
    database.create_document("spotify_auth", SpotifyAuthRequest(
        user_id=_user_id(user),
        state=state,
        code_verifier=verifier,
        redirect_uri=redirect_uri,
    ))
    url = spotify.build_authorize_url(client_id, redirect_uri, spotify.code_challenge(verifier), state)
    return {"authorize_url": url, "state": state}


@app.post("/spotify/callback")
def spotify_callback(
    payload: SpotifyCallback,
    user: dict = Depends(get_current_user),
    client: spotify.SpotifyClient = Depends(get_spotify_client),
):
    pending = database.get_documents(
        "spotify_auth", {"user_id": _user_id(user), "state": payload.state}, limit=1
    )
    if not pending:
        raise HTTPException(status_code=400, detail="Code verifier not found, start the Spotify login again")

    try:
        client_id = spotify.validate_client_id(config.SPOTIFY_CLIENT_ID)
        token = client.exchange_code(
            payload.code, pending[0]["code_verifier"], pending[0]["redirect_uri"], client_id
        )
    except spotify.SpotifyAuthError as e:
        raise HTTPException(status_code=502, detail=str(e))
    finally:
        database.delete_documents("spotify_auth", {"user_id": _user_id(user)})

    expires_at = int(time.time()) + token["expires_in"]
    database.delete_documents("spotify_token", {"user_id": _user_id(user)})
    database.create_document("spotify_token", SpotifyToken(
        user_id=_user_id(user),
        access_token=token["access_token"],
        token_type=token["token_type"],
        expires_at=expires_at,
    ))
    log.info("Spotify connected for user %s", _user_id(user))
    return {"status": "connected", "expires_at": expires_at}


@app.get("/spotify/playlists")
def spotify_playlists(
    user: dict = Depends(get_current_user),
    client: spotify.SpotifyClient = Depends(get_spotify_client),
):
    token = _spotify_token(user)
    try:
        return {"playlists": client.get_playlists(token)}
    except spotify.SpotifyAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/playlists/import/spotify")
def import_spotify(
    payload: SpotifyImportRequest,
    user: dict = Depends(get_current_user),
    spotify_client: spotify.SpotifyClient = Depends(get_spotify_client),
    youtube_client: youtube.YouTubeClient = Depends(get_youtube_client),
):
    token = _spotify_token(user)
    if not youtube_client.api_key:
        raise HTTPException(status_code=500, detail="YouTube API key not configured")
    try:
        playlist_id = playlists.import_spotify_playlist(
            _user_id(user), payload.playlist_id, token, spotify_client, youtube_client
        )
    except playlists.PlaylistImportError as e:
        log.error("Spotify import failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Import failed: {e}")
    return {"id": playlist_id, "playlist": playlists.get_user_playlist(_user_id(user), playlist_id)}


# Games
def _load_playlist(playlist_id: str, playlist_type: str, user: dict):
    try:
        return playlists.load_for_game(playlist_id, playlist_type, _user_id(user))
    except playlists.PlaylistNotFound:
        raise HTTPException(status_code=404, detail="Playlist not found")


@app.post("/games/solo")
def create_solo_game(payload: SoloGameRequest, user: dict = Depends(get_current_user)):
    playlist, songs = _load_playlist(payload.playlist_id, payload.playlist_type, user)
    try:
        game = SoloGame(_user_id(user), playlist, songs, duration=payload.duration)
    except GameError as e:
        raise _game_error(e)
    games.add(game)
    return game.state()


@app.post("/games/multiplayer")
def create_multiplayer_game(payload: MultiplayerGameRequest, user: dict = Depends(get_current_user)):
    playlist, songs = _load_playlist(payload.playlist_id, payload.playlist_type, user)
    players = [p.model_dump() for p in payload.players] if payload.players else None
    try:
        game = MultiplayerGame(_user_id(user), playlist, songs, rounds=payload.rounds, players=players)
    except GameError as e:
        raise _game_error(e)
    games.add(game)
    return game.state()


@app.get("/games/{game_id}")
def game_state(game_id: str, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    leaderboard.record_game(game, user)
    return game.state()


@app.post("/games/{game_id}/guess")
def game_guess(game_id: str, payload: GuessRequest, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    try:
        outcome = game.guess(payload.guess)
    except InvalidGuessError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GameError as e:
        leaderboard.record_game(game, user)
        raise _game_error(e)
    leaderboard.record_game(game, user)
    return {"outcome": outcome.to_dict(), "state": game.state()}


@app.post("/games/{game_id}/skip")
def game_skip(game_id: str, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    try:
        game.skip()
    except GameError as e:
        leaderboard.record_game(game, user)
        raise _game_error(e)
    leaderboard.record_game(game, user)
    return game.state()


@app.post("/games/{game_id}/buzz")
def game_buzz(game_id: str, payload: BuzzRequest, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    if not isinstance(game, MultiplayerGame):
        raise HTTPException(status_code=400, detail="Buzzing is only available in multiplayer games")
    player = game.buzz(payload.key)
    return {"accepted": player is not None, "player": player.to_dict() if player else None, "state": game.state()}


@app.post("/games/{game_id}/end")
def game_end(game_id: str, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    game.end()
    leaderboard.record_game(game, user)
    return game.summary()


@app.get("/games/{game_id}/suggestions")
def game_suggestions(game_id: str, q: str = "", user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    return {"suggestions": game.suggestions(q)}


@app.get("/games/{game_id}/summary")
def game_summary(game_id: str, user: dict = Depends(get_current_user)):
    game = _get_game(game_id, user)
    if not game.is_over:
        raise HTTPException(status_code=409, detail="Game is still running")
    leaderboard.record_game(game, user)
    return game.summary()


# Leaderboard
@app.get("/leaderboard")
def global_board(mode: Literal["solo", "multiplayer"] = "solo", limit: int = 10):
    return {"entries": leaderboard.global_leaderboard(mode, min(max(limit, 1), 100))}


@app.get("/leaderboard/{playlist_id}")
def playlist_board(playlist_id: str, mode: Literal["solo", "multiplayer"] = "solo", limit: int = 10):
    return {"entries": leaderboard.playlist_leaderboard(playlist_id, mode, min(max(limit, 1), 100))}


@app.get("/leaderboard/{playlist_id}/me")
def my_playlist_scores(
    playlist_id: str,
    mode: Literal["solo", "multiplayer"] = "solo",
    user: dict = Depends(get_current_user),
):
    return {
        "scores": leaderboard.user_playlist_scores(_user_id(user), playlist_id, mode),
        "rank": leaderboard.user_playlist_rank(_user_id(user), playlist_id, mode),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
