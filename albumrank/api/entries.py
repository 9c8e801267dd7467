from __future__ import annotations

import uuid
from typing import Any, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from albumrank.api.deps import get_db, current_user_id
from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.services import ledger
from albumrank.services.activity import rank_change_activity, record_activity
from albumrank.services.albums import AlbumNotFound, resolve_album
from albumrank.services.colors import enrich_album_colors

router = APIRouter(prefix="/entries", tags=["entries"])

# ---------------------------------------------------------------------------
# helpers

_LEDGER_STATUS = {
    ledger.OwnerNotFound: status.HTTP_401_UNAUTHORIZED,
    ledger.EntryForbidden: status.HTTP_403_FORBIDDEN,
    ledger.EntryNotFound: status.HTTP_404_NOT_FOUND,
    ledger.DuplicateEntry: status.HTTP_409_CONFLICT,
    ledger.InvalidRank: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ledger.InvalidReorder: status.HTTP_422_UNPROCESSABLE_ENTITY,
}

_LIST_FIELDS = ("mood_tags", "user_genre_tags", "favorite_tracks")
_ANNOTATION_FIELDS = set(s.EntryAnnotations.model_fields)


def _ledger_http(db: Session, e: ledger.LedgerError) -> HTTPException:
    db.rollback()
    return HTTPException(status_code=_LEDGER_STATUS.get(type(e), 400), detail=e.code)


def _apply_annotations(entry: m.RankEntry, data: dict[str, Any]) -> None:
    for field, value in data.items():
        if field == "rank":
            continue
        if value is None and field in _LIST_FIELDS:
            value = []
        if value is None and field == "status":
            continue
        setattr(entry, field, value)


# ---------------------------------------------------------------------------
# routes

@router.get("", response_model=List[s.Entry])
def list_entries(
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """The caller's collection: ranked entries in order, then unranked newest first."""
    return ledger.collection(db, user_id)


@router.post("", response_model=s.Entry, status_code=201)
def create_entry(
    payload: s.EntryCreate,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Add an album to the caller's list, appended at the bottom; 409 if it is already there."""
    try:
        try:
            album, created = resolve_album(db, payload)
        except IntegrityError:
            db.rollback()
            # a concurrent request created the same catalog album first; use theirs
            album, created = resolve_album(db, payload)
    except AlbumNotFound:
        db.rollback()
        raise HTTPException(status_code=404, detail="album_not_found")
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="album_conflict")

    annotations = payload.model_dump(include=_ANNOTATION_FIELDS)
    try:
        entry = ledger.insert_entry(db, user_id, album.id, ranked=payload.ranked, **annotations)
        db.commit()
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)
    except IntegrityError:
        db.rollback()
        # two inserts for the same (user, album) raced past the existence check
        raise HTTPException(status_code=409, detail="entry_already_exists")
    db.refresh(entry)

    if created and album.cover_url:
        background.add_task(enrich_album_colors, album.id, album.cover_url)
    background.add_task(
        record_activity, user_id, album.id, "reviewed", {"rank": entry.rank, "blurb": entry.short_blurb}
    )
    return entry


@router.post("/rerank", response_model=List[s.Entry])
def rerank_entries(
    payload: s.RerankRequest,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Replace the caller's whole ordering (after a drag-and-drop reorder)."""
    try:
        entries = ledger.batch_reorder(db, user_id, payload.ordered_ids)
        db.commit()
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)
    return entries


@router.get("/{entry_id:uuid}", response_model=s.EntryDetail)
def get_entry(
    entry_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    try:
        return ledger.get_owned_entry(db, user_id, entry_id)
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)


@router.patch("/{entry_id:uuid}", response_model=s.Entry)
def update_entry(
    entry_id: uuid.UUID,
    payload: s.EntryUpdate,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """
    Update annotations and/or move the entry.
    ``rank`` omitted leaves the position alone, ``null`` unranks, an integer moves it
    (clamped to the list bounds). Everything commits together.
    """
    data = payload.model_dump(exclude_unset=True)
    try:
        entry = ledger.get_owned_entry(db, user_id, entry_id)
        prev_rank, prev_score = entry.rank, entry.score

        # ledger first: it reloads the row under the user lock
        if "rank" in data:
            if data["rank"] is None:
                entry = ledger.unrank(db, user_id, entry_id)
            else:
                entry = ledger.set_rank(db, user_id, entry_id, data["rank"])
        _apply_annotations(entry, data)
        db.commit()
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)
    db.refresh(entry)

    change = rank_change_activity(prev_rank, entry.rank)
    if change:
        background.add_task(record_activity, user_id, entry.album_id, *change)
    elif "score" in data and entry.score != prev_score:
        background.add_task(record_activity, user_id, entry.album_id, "score_updated", {"score": entry.score})
    return entry


@router.delete("/{entry_id:uuid}", status_code=204)
def delete_entry(
    entry_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Remove the entry and close the gap in the caller's ranking."""
    try:
        ledger.remove_entry(db, user_id, entry_id)
        db.commit()
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)
    return


@router.post("/{entry_id:uuid}/relistens", response_model=s.Relisten, status_code=201)
def add_relisten(
    entry_id: uuid.UUID,
    payload: s.RelistenCreate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(current_user_id),
):
    try:
        entry = ledger.get_owned_entry(db, user_id, entry_id)
    except ledger.LedgerError as e:
        raise _ledger_http(db, e)

    row = m.Relisten(entry_id=entry.id, date=payload.date, notes=payload.notes)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
