from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from albumrank.api.deps import get_db
from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.services.borda import global_rankings

router = APIRouter(prefix="/rankings", tags=["rankings"])


@router.get("", response_model=List[s.RankedAlbum])
def get_rankings(
    db: Session = Depends(get_db),
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    """
    Community ranking: normalised Borda count over every user's ordering.
    Computed fresh on each request from the current ledger state.
    """
    ranks = global_rankings(db)
    if limit is not None:
        ranks = ranks[:limit]
    if not ranks:
        return []

    albums = {
        a.id: a
        for a in db.query(m.Album).filter(m.Album.id.in_([r.album_id for r in ranks])).all()
    }
    return [
        s.RankedAlbum(**r.model_dump(), album=s.AlbumBrief.model_validate(albums[r.album_id]))
        for r in ranks
        if r.album_id in albums
    ]
