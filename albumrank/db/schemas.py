from datetime import date, datetime
from typing import Annotated, Any, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# --- Constrained types -------------------------------------------------------

Rank = Annotated[int, Field(ge=1)]
Score = Annotated[float, Field(ge=0, le=10)]
Username = Annotated[str, Field(min_length=3, max_length=30, pattern=r"^[a-z0-9_]+$")]
EntryStatus = Literal["reviewed", "listening", "archived"]
ActivityType = Literal["reviewed", "ranked", "reranked", "unranked", "score_updated"]


# --- Auth / users ------------------------------------------------------------

class UserCreate(BaseModel):
    username: Username
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    username: str
    display_name: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime

class UserPrivate(UserPublic):
    email: EmailStr
    role: str
    updated_at: datetime
    last_login_at: Optional[datetime] = None

class UserUpdate(BaseModel):
    username: Optional[Username] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    # new_password requires current_password
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8)

class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    username: str
    display_name: str
    avatar_url: Optional[str] = None


# --- Albums ------------------------------------------------------------------

class AlbumBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    title: str
    artist: str
    cover_url: Optional[str] = None
    release_year: Optional[int] = None
    dominant_color: Optional[str] = None

class Album(AlbumBrief):
    external_id: Optional[str] = None
    genres: List[str] = []
    track_count: Optional[int] = None
    duration_ms: Optional[int] = None
    palette_colors: List[str] = []
    created_at: datetime
    updated_at: datetime

class AlbumCreate(BaseModel):
    title: str = Field(min_length=1)
    artist: str = Field(min_length=1)
    external_id: Optional[str] = None
    cover_url: Optional[str] = None
    release_year: Optional[int] = None
    genres: List[str] = []
    track_count: Optional[int] = None
    duration_ms: Optional[int] = None

class AlbumUpdate(BaseModel):
    # external_id is an identity key and cannot be patched
    title: Optional[str] = Field(None, min_length=1)
    artist: Optional[str] = Field(None, min_length=1)
    cover_url: Optional[str] = None
    release_year: Optional[int] = None
    genres: Optional[List[str]] = None
    track_count: Optional[int] = None
    duration_ms: Optional[int] = None

class CatalogAlbum(BaseModel):
    """A search hit from the external catalog (not persisted)."""
    external_id: str
    title: str
    artist: str
    release_date: str = ""
    release_year: Optional[int] = None
    primary_type: str = "Album"
    genres: List[str] = []
    cover_url: Optional[str] = None


# --- Rank entries ------------------------------------------------------------

class EntryAnnotations(BaseModel):
    score: Optional[Score] = None
    short_blurb: Optional[str] = None
    review: Optional[str] = None
    listen_date: Optional[date] = None
    mood_tags: List[str] = []
    user_genre_tags: List[str] = []
    favorite_tracks: List[str] = []
    status: EntryStatus = "reviewed"

class EntryCreate(EntryAnnotations):
    """
    Album resolution, first match wins:
      album_id     -> existing canonical album (404 if missing)
      external_id  -> lookup-or-create by catalog id
      otherwise    -> manual album from title/artist
    """
    album_id: Optional[UUID] = None
    external_id: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    cover_url: Optional[str] = None
    release_year: Optional[int] = None
    genres: List[str] = []
    ranked: bool = True  # False leaves the entry unranked

class EntryUpdate(BaseModel):
    # rank: absent = untouched, null = unrank, int = move
    rank: Optional[Rank] = None
    score: Optional[Score] = None
    short_blurb: Optional[str] = None
    review: Optional[str] = None
    listen_date: Optional[date] = None
    mood_tags: Optional[List[str]] = None
    user_genre_tags: Optional[List[str]] = None
    favorite_tracks: Optional[List[str]] = None
    status: Optional[EntryStatus] = None

class Relisten(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    date: date
    notes: Optional[str] = None
    created_at: datetime

class RelistenCreate(BaseModel):
    date: date
    notes: Optional[str] = None

class Entry(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    album_id: UUID
    rank: Optional[int] = None
    score: Optional[float] = None
    short_blurb: Optional[str] = None
    review: Optional[str] = None
    listen_date: Optional[date] = None
    mood_tags: List[str] = []
    user_genre_tags: List[str] = []
    favorite_tracks: List[str] = []
    status: EntryStatus
    album: AlbumBrief
    created_at: datetime
    updated_at: datetime

class EntryDetail(Entry):
    relistens: List[Relisten] = []

class RerankRequest(BaseModel):
    ordered_ids: List[UUID]


# --- Global ranking ----------------------------------------------------------

class GlobalRank(BaseModel):
    album_id: UUID
    borda_score: float
    global_rank: int
    ranked_by_count: int

class RankedAlbum(GlobalRank):
    album: AlbumBrief


# --- Activity ----------------------------------------------------------------

class ActivityItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    type: ActivityType
    data: dict[str, Any] = {}
    created_at: datetime
    user: UserBrief
    album: AlbumBrief
