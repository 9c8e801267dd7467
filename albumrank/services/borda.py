"""
Global ranking by normalised Borda count.

Each user's ordering is rescaled to [0, 1] (first place 1.0, last place 0.0)
so every voter carries the same total weight however long their list is.
The result is a projection over the ledger, recomputed on every read.
"""
from __future__ import annotations

import uuid
from collections import Counter, defaultdict
from typing import Hashable, Iterable, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.orm import Session

from albumrank.db import models as m
from albumrank.db import schemas as s

# (user_id, album_id, rank); rank None rows are ignored
RankTriple = Tuple[Hashable, uuid.UUID, Optional[int]]

# float sums like 0.5 + 0.5 vs 1.0 must compare equal when ordering
SCORE_PRECISION = 9


def normalized_vote(rank: int, total: int) -> float:
    """Vote cast by a rank-``rank`` entry in a list of ``total`` ranked albums."""
    if total == 1:
        return 1.0
    return 1.0 - (rank - 1) / (total - 1)


def borda_rankings(rows: Iterable[RankTriple]) -> list[s.GlobalRank]:
    """
    Aggregate every user's personal ranking into one global ordering.

    Albums are ordered by score descending; equal scores fall back to album id
    ascending so the output is reproducible. ``global_rank`` is the 1-based
    position in that order. Albums nobody ranked are absent.
    """
    ranked = [(user_id, album_id, rank) for user_id, album_id, rank in rows if rank is not None]

    totals = Counter(user_id for user_id, _, _ in ranked)

    scores: dict[uuid.UUID, float] = defaultdict(float)
    voters: dict[uuid.UUID, set] = defaultdict(set)
    for user_id, album_id, rank in ranked:
        scores[album_id] += normalized_vote(rank, totals[user_id])
        voters[album_id].add(user_id)

    order = sorted(scores, key=lambda a: (-round(scores[a], SCORE_PRECISION), str(a)))
    return [
        s.GlobalRank(
            album_id=album_id,
            borda_score=round(scores[album_id], SCORE_PRECISION),
            global_rank=position,
            ranked_by_count=len(voters[album_id]),
        )
        for position, album_id in enumerate(order, start=1)
    ]


def load_ranked_triples(db: Session) -> list[RankTriple]:
    return list(
        db.execute(
            sa.select(m.RankEntry.user_id, m.RankEntry.album_id, m.RankEntry.rank)
              .where(m.RankEntry.rank.is_not(None))
        ).tuples()
    )


def global_rankings(db: Session) -> list[s.GlobalRank]:
    return borda_rankings(load_ranked_triples(db))
