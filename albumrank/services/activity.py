"""Activity feed records. Writing one is best-effort and never affects the caller."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from albumrank.db.session import SessionLocal
from albumrank.db import models as m

logger = logging.getLogger(__name__)


def rank_change_activity(prev_rank: Optional[int], new_rank: Optional[int]) -> Optional[tuple[str, dict]]:
    """Activity type + payload for a rank transition, or None if nothing changed."""
    if prev_rank == new_rank:
        return None
    if new_rank is None:
        return "unranked", {"prev_rank": prev_rank}
    if prev_rank is None:
        return "ranked", {"rank": new_rank}
    return "reranked", {"rank": new_rank, "prev_rank": prev_rank}


def record_activity(user_id: uuid.UUID, album_id: uuid.UUID, type: str, data: Optional[dict[str, Any]] = None) -> None:
    """
    Background task: append one activity row in a fresh session.

    Dispatched after the ledger transaction committed; failures are logged and
    swallowed so they can never roll back or fail the originating request.
    """
    try:
        with SessionLocal() as db:
            db.add(m.Activity(user_id=user_id, album_id=album_id, type=type, data=data or {}))
            db.commit()
    except Exception:
        logger.warning("activity not recorded user=%s album=%s type=%s", user_id, album_id, type, exc_info=True)
