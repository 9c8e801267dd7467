from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from albumrank.api.deps import get_db
from albumrank.db import models as m
from albumrank.db import schemas as s

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=List[s.ActivityItem])
def list_activity(
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=100),
):
    """Latest activity across all users, newest first."""
    return (
        db.query(m.Activity)
          .options(selectinload(m.Activity.user), selectinload(m.Activity.album))
          .order_by(m.Activity.created_at.desc())
          .limit(limit)
          .all()
    )
