"""
Database Schemas

MongoDB collection schemas as Pydantic models.
Model name is converted to snake_case for the collection name:
- User -> "user" collection
- PresetPlaylist -> "preset_playlist" collection
- LeaderboardEntry -> "leaderboard" collection (explicit)

Timestamps (created_at / updated_at) are added by database.create_document.
"""

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

PlaylistType = Literal["preset", "user"]
GameMode = Literal["solo", "multiplayer"]

MAX_USERNAME_LENGTH = 40


class UserSettings(BaseModel):
    """Game, display, audio and privacy preferences stored on the user"""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    auto_play: bool = True
    show_hints: bool = True
    dark_mode: bool = True
    show_animations: bool = True
    sound: bool = True
    music: bool = True
    volume: int = Field(75, ge=0, le=100)
    show_in_leaderboards: bool = True
    share_game_history: bool = True


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    email: EmailStr = Field(..., description="Email address")
    username: str = Field(..., min_length=1, max_length=MAX_USERNAME_LENGTH)
    avatar_url: str = Field("", description="Avatar URL")
    password_hash: str = Field(..., description="BCrypt hashed password")
    is_active: bool = Field(True, description="Whether user is active")
    settings: UserSettings = Field(default_factory=UserSettings)


class PresetPlaylist(BaseModel):
    """
    Curated playlists shipped by the operator
    Collection name: "preset_playlist"
    """
    name: str
    description: str = ""
    genre: str
    cover_image_url: Optional[str] = None
    is_preset: bool = True
    track_count: int = Field(0, ge=0)


class UserPlaylist(BaseModel):
    """
    Playlists imported by a user from a third-party service
    Collection name: "user_playlist"
    """
    user_id: str
    name: str
    description: str = ""
    source: Literal["spotify", "youtube", "manual"]
    source_id: str
    source_url: str
    cover_image_url: Optional[str] = None
    is_public: bool = False
    track_count: int = Field(0, ge=0)


class Song(BaseModel):
    """
    Songs of either playlist kind
    Collection name: "song"
    """
    playlist_id: str
    playlist_type: PlaylistType
    title: str
    artist: str
    audio_url: str = Field(..., description="YouTube watch URL used for playback")
    youtube_id: Optional[str] = None
    spotify_id: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Seconds")
    album_art: Optional[str] = None


class LeaderboardEntry(BaseModel):
    """
    Finished game results
    Collection name: "leaderboard"
    """
    user_id: str
    username: str
    playlist_id: str
    playlist_name: str
    mode: GameMode
    score: int = Field(..., ge=0)
    duration: int = Field(..., ge=0, description="Seconds")


class SpotifyAuthRequest(BaseModel):
    """
    Pending PKCE authorization requests
    Collection name: "spotify_auth"
    """
    user_id: str
    state: str
    code_verifier: str
    redirect_uri: str


class SpotifyToken(BaseModel):
    """
    Spotify access tokens per user
    Collection name: "spotify_token"
    """
    user_id: str
    access_token: str
    token_type: str = "Bearer"
    expires_at: int = Field(..., description="Unix timestamp of expiry")
