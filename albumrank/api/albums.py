from __future__ import annotations

import uuid
from typing import Optional

import sqlalchemy as sa
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from albumrank.api.deps import get_db, require_admin, require_auth
from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.clients.musicbrainz import CatalogUnavailable, search_release_groups
from albumrank.services import ledger
from albumrank.services.albums import create_album, get_by_external_id
from albumrank.services.colors import enrich_album_colors

router = APIRouter(tags=["albums"])


# --- helpers -----------------------------------------------------------------

def _get_or_404(db: Session, album_id: uuid.UUID) -> m.Album:
    row = db.get(m.Album, album_id)
    if not row:
        raise HTTPException(status_code=404, detail="album_not_found")
    return row


# --- routes: CRUD ------------------------------------------------------------

@router.get("/albums", response_model=list[s.Album])
def list_albums(
    db: Session = Depends(get_db),
    q: Optional[str] = Query(None, description="case-insensitive search across title and artist"),
    skip: int = Query(0, ge=0),
    limit: int = Query(25, ge=1, le=100),
):
    query = db.query(m.Album)
    if q:
        like = f"%{q}%"
        query = query.filter(m.Album.title.ilike(like) | m.Album.artist.ilike(like))
    return query.order_by(m.Album.created_at.desc()).offset(skip).limit(limit).all()


@router.get("/albums/{album_id:uuid}", response_model=s.Album)
def get_album(album_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get_or_404(db, album_id)


@router.post("/albums", response_model=s.Album, status_code=status.HTTP_201_CREATED)
def post_album(
    payload: s.AlbumCreate,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    if payload.external_id and get_by_external_id(db, payload.external_id):
        raise HTTPException(status_code=409, detail="album_exists")

    row = create_album(db, payload)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="album_exists")
    db.refresh(row)

    if row.cover_url:
        background.add_task(enrich_album_colors, row.id, row.cover_url)
    return row


@router.patch("/albums/{album_id:uuid}", response_model=s.Album)
def patch_album(
    album_id: uuid.UUID,
    payload: s.AlbumUpdate,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    row = _get_or_404(db, album_id)
    data = payload.model_dump(exclude_unset=True)
    # explicit nulls on non-nullable columns mean "leave as is"
    for field in ("title", "artist", "genres"):
        if field in data and data[field] is None:
            data.pop(field)

    cover_changed = "cover_url" in data and data["cover_url"] != row.cover_url
    for field, value in data.items():
        setattr(row, field, value)
    if cover_changed:
        # stale swatches belong to the old artwork
        row.dominant_color = None
        row.palette_colors = []

    db.commit()
    db.refresh(row)

    if cover_changed and row.cover_url:
        background.add_task(enrich_album_colors, row.id, row.cover_url)
    return row


@router.delete("/albums/{album_id:uuid}", status_code=status.HTTP_204_NO_CONTENT)
def delete_album(
    album_id: uuid.UUID,
    db: Session = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    """Delete an album. Entries pointing at it go too, so ledgers are compacted first."""
    row = _get_or_404(db, album_id)
    owners = db.execute(
        sa.select(m.RankEntry.user_id, m.RankEntry.id).where(m.RankEntry.album_id == album_id)
    ).tuples().all()
    for user_id, entry_id in owners:
        ledger.remove_entry(db, user_id, entry_id)
    db.expire(row, ["entries"])
    db.delete(row)
    db.commit()
    return None


# --- routes: external catalog ------------------------------------------------

@router.get("/catalog/search", response_model=list[s.CatalogAlbum])
async def catalog_search(
    q: str = Query(..., min_length=1),
    limit: int = Query(25, ge=1, le=100),
    _claims: dict = Depends(require_auth),
):
    """Proxy a MusicBrainz release-group search. Nothing is persisted until an entry is created."""
    try:
        hits = await search_release_groups(q, limit=limit)
    except CatalogUnavailable:
        raise HTTPException(status_code=502, detail="catalog_unavailable")
    return hits
