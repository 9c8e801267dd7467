from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.clients.musicbrainz import cover_art_url


class AlbumNotFound(LookupError):
    pass


def get_by_external_id(db: Session, external_id: str) -> Optional[m.Album]:
    return db.query(m.Album).filter(m.Album.external_id == external_id).first()


def create_album(db: Session, payload: s.AlbumCreate) -> m.Album:
    """Insert a canonical album. Does not commit; caller controls the transaction."""
    row = m.Album(**payload.model_dump())
    if row.external_id and not row.cover_url:
        row.cover_url = cover_art_url(row.external_id)
    db.add(row)
    db.flush()  # assign PK without committing
    return row


def resolve_album(db: Session, payload: s.EntryCreate) -> tuple[m.Album, bool]:
    """
    Find or create the album an entry points at.

    Returns ``(album, created)``:
      - ``album_id`` given     -> that album, or AlbumNotFound
      - ``external_id`` given  -> existing album with that catalog id, else a new one
      - neither                -> a new manual album from title/artist
    """
    if payload.album_id is not None:
        album = db.get(m.Album, payload.album_id)
        if album is None:
            raise AlbumNotFound(str(payload.album_id))
        return album, False

    if payload.external_id:
        found = get_by_external_id(db, payload.external_id)
        if found:
            return found, False

    album = create_album(
        db,
        s.AlbumCreate(
            title=payload.title or "Unknown Album",
            artist=payload.artist or "Unknown Artist",
            external_id=payload.external_id or None,
            cover_url=payload.cover_url,
            release_year=payload.release_year,
            genres=payload.genres,
        ),
    )
    return album, True
