import uuid
import datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    role: Mapped[str] = mapped_column(sa.String(10), nullable=False, server_default="USER")
    username: Mapped[str] = mapped_column(sa.String(30), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(sa.String(320), unique=True, nullable=False)  # stored lower-case
    password_hash: Mapped[str] = mapped_column(sa.Text, nullable=False)
    display_name: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    bio: Mapped[str | None] = mapped_column(sa.Text)
    avatar_url: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False)
    last_login_at: Mapped[sa.DateTime | None] = mapped_column(sa.DateTime(timezone=True))

    entries: Mapped[list["RankEntry"]] = relationship(
        "RankEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        sa.CheckConstraint("role in ('ADMIN','USER')", name="ck_users_role"),
    )


class Album(Base):
    __tablename__ = "albums"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # MusicBrainz release-group id; NULL for manually entered albums
    external_id: Mapped[str | None] = mapped_column(sa.String(64), unique=True, index=True)

    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    artist: Mapped[str] = mapped_column(sa.Text, nullable=False)
    cover_url: Mapped[str | None] = mapped_column(sa.Text)
    release_year: Mapped[int | None] = mapped_column(sa.Integer)
    genres: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    track_count: Mapped[int | None] = mapped_column(sa.Integer)
    duration_ms: Mapped[int | None] = mapped_column(sa.Integer)

    # filled in after commit by the colour extractor; NULL when it fails
    dominant_color: Mapped[str | None] = mapped_column(sa.String(7))
    palette_colors: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False)

    entries: Mapped[list["RankEntry"]] = relationship(
        "RankEntry",
        back_populates="album",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        sa.Index("ix_albums_artist_title", "artist", "title"),
    )


class RankEntry(Base):
    """One user's inclusion of one album, with its position in that user's list."""
    __tablename__ = "rank_entries"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    album_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), ForeignKey("albums.id", ondelete="CASCADE"), nullable=False)

    # NULL = in the collection but not ordered yet
    rank: Mapped[int | None] = mapped_column(sa.Integer)

    score: Mapped[float | None] = mapped_column(sa.Float)  # 0..10
    short_blurb: Mapped[str | None] = mapped_column(sa.Text)
    review: Mapped[str | None] = mapped_column(sa.Text)
    listen_date: Mapped[datetime.date | None] = mapped_column(sa.Date)
    mood_tags: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    user_genre_tags: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    favorite_tracks: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="reviewed")

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="entries")
    album: Mapped["Album"] = relationship("Album", back_populates="entries")
    relistens: Mapped[list["Relisten"]] = relationship(
        "Relisten",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Relisten.date.desc()",
    )

    __table_args__ = (
        sa.UniqueConstraint("user_id", "album_id", name="uq_rank_entries_user_album"),
        # not unique: range shifts pass through duplicate ranks mid-transaction
        sa.Index("ix_rank_entries_user_rank", "user_id", "rank"),
        sa.CheckConstraint("rank IS NULL OR rank >= 1", name="ck_rank_entries_rank"),
        sa.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 10)", name="ck_rank_entries_score"),
        sa.CheckConstraint("status in ('reviewed','listening','archived')", name="ck_rank_entries_status"),
    )


class Relisten(Base):
    __tablename__ = "relistens"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entry_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), ForeignKey("rank_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    date: Mapped[datetime.date] = mapped_column(sa.Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(sa.Text)
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    entry: Mapped["RankEntry"] = relationship("RankEntry", back_populates="relistens")


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    album_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), ForeignKey("albums.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    data: Mapped[dict] = mapped_column(sa.JSON, nullable=False, default=dict)
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    user: Mapped["User"] = relationship("User")
    album: Mapped["Album"] = relationship("Album")

    __table_args__ = (
        sa.Index("ix_activities_created", "created_at"),
    )
