"""
Personal rank ledger.

For every user, the non-null ``rank`` values of their entries are exactly
1..K with no gaps and no duplicates. Each operation here preserves that, and
none of them commit: the caller owns the transaction, so a route can bundle a
rank move with annotation edits and get all-or-nothing behaviour from a
single ``db.commit()`` (or ``db.rollback()`` on error).

Concurrent writers for the same user are serialised by locking that user's
row (``SELECT ... FOR UPDATE``) before reading any ranks. Writers for
different users never touch the same rows. SQLite has no row locks; there
the engine opens every transaction with ``BEGIN IMMEDIATE`` (see
``albumrank.db.session``), which serialises all writers.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

import sqlalchemy as sa
from sqlalchemy.orm import Session, selectinload

from albumrank.db import models as m

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    code = "ledger_error"

class OwnerNotFound(LedgerError):
    code = "user_not_found"

class EntryNotFound(LedgerError):
    code = "entry_not_found"

class EntryForbidden(LedgerError):
    code = "forbidden"

class DuplicateEntry(LedgerError):
    code = "entry_already_exists"

class InvalidRank(LedgerError):
    code = "invalid_rank"

class InvalidReorder(LedgerError):
    code = "invalid_reorder"


# ---------------------------------------------------------------------------
# helpers

def _lock_owner(db: Session, user_id: uuid.UUID) -> m.User:
    owner = db.execute(
        sa.select(m.User).where(m.User.id == user_id).with_for_update()
    ).scalar_one_or_none()
    if owner is None:
        raise OwnerNotFound(str(user_id))
    return owner


def _load_owned(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID) -> m.RankEntry:
    # populate_existing: ranks may have moved since this object was first loaded
    entry = db.execute(
        sa.select(m.RankEntry)
          .where(m.RankEntry.id == entry_id)
          .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if entry is None:
        raise EntryNotFound(str(entry_id))
    if entry.user_id != user_id:
        raise EntryForbidden(str(entry_id))
    return entry


def _check_rank(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidRank(f"rank must be a positive integer, got {value!r}")
    return value


def _ranked_count(db: Session, user_id: uuid.UUID) -> int:
    return db.scalar(
        sa.select(sa.func.count())
          .select_from(m.RankEntry)
          .where(m.RankEntry.user_id == user_id, m.RankEntry.rank.is_not(None))
    ) or 0


def _max_rank(db: Session, user_id: uuid.UUID) -> int:
    return db.scalar(
        sa.select(sa.func.max(m.RankEntry.rank)).where(m.RankEntry.user_id == user_id)
    ) or 0


def _shift(db: Session, user_id: uuid.UUID, delta: int, *conditions) -> int:
    """Add ``delta`` to the rank of every entry of ``user_id`` matching ``conditions``, in one UPDATE."""
    stmt = (
        sa.update(m.RankEntry)
          .where(m.RankEntry.user_id == user_id, *conditions)
          .values(rank=m.RankEntry.rank + delta)
          .execution_options(synchronize_session="fetch")
    )
    return db.execute(stmt).rowcount


# ---------------------------------------------------------------------------
# reads

def get_owned_entry(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID) -> m.RankEntry:
    entry = db.get(m.RankEntry, entry_id)
    if entry is None:
        raise EntryNotFound(str(entry_id))
    if entry.user_id != user_id:
        raise EntryForbidden(str(entry_id))
    return entry


def ranked_entries(db: Session, user_id: uuid.UUID) -> list[m.RankEntry]:
    return list(
        db.scalars(
            sa.select(m.RankEntry)
              .where(m.RankEntry.user_id == user_id, m.RankEntry.rank.is_not(None))
              .order_by(m.RankEntry.rank)
              .execution_options(populate_existing=True)
        )
    )


def collection(db: Session, user_id: uuid.UUID) -> list[m.RankEntry]:
    """All of a user's entries: ranked ones in order, then unranked newest first."""
    return list(
        db.scalars(
            sa.select(m.RankEntry)
              .options(selectinload(m.RankEntry.album))
              .where(m.RankEntry.user_id == user_id)
              .order_by(m.RankEntry.rank.asc().nulls_last(), m.RankEntry.created_at.desc())
        )
    )


def ranks_are_dense(db: Session, user_id: uuid.UUID) -> bool:
    ranks = sorted(
        db.scalars(
            sa.select(m.RankEntry.rank)
              .where(m.RankEntry.user_id == user_id, m.RankEntry.rank.is_not(None))
        )
    )
    return ranks == list(range(1, len(ranks) + 1))


# ---------------------------------------------------------------------------
# mutations

def insert_entry(
    db: Session,
    user_id: uuid.UUID,
    album_id: uuid.UUID,
    *,
    ranked: bool = True,
    **annotations: Any,
) -> m.RankEntry:
    """Append a new entry at the bottom of the user's list (or unranked). Existing ranks never move."""
    _lock_owner(db, user_id)

    exists = db.scalar(
        sa.select(m.RankEntry.id)
          .where(m.RankEntry.user_id == user_id, m.RankEntry.album_id == album_id)
    )
    if exists is not None:
        raise DuplicateEntry(f"{user_id}:{album_id}")

    rank = _max_rank(db, user_id) + 1 if ranked else None
    entry = m.RankEntry(user_id=user_id, album_id=album_id, rank=rank, **annotations)
    db.add(entry)
    db.flush()
    logger.debug("insert user=%s entry=%s rank=%s", user_id, entry.id, rank)
    return entry


def set_rank(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID, new_rank: int) -> m.RankEntry:
    """
    Move an entry to ``new_rank``, shifting the entries in between by one.

    ``new_rank`` is clamped to 1..K (1..K+1 when the entry is currently
    unranked) so the list stays dense; the entry's resulting rank is the
    clamped value.
    """
    _check_rank(new_rank)
    _lock_owner(db, user_id)
    entry = _load_owned(db, user_id, entry_id)

    old_rank = entry.rank
    total = _ranked_count(db, user_id)
    upper = total if old_rank is not None else total + 1
    new_rank = min(new_rank, upper)

    if new_rank == old_rank:
        return entry

    r = m.RankEntry.rank
    if old_rank is None:
        # make room: everything at or below the slot moves down
        _shift(db, user_id, +1, r >= new_rank)
    elif new_rank < old_rank:
        _shift(db, user_id, +1, r >= new_rank, r < old_rank)
    else:
        _shift(db, user_id, -1, r > old_rank, r <= new_rank)

    entry.rank = new_rank
    db.flush()
    logger.debug("set_rank user=%s entry=%s %s -> %s", user_id, entry_id, old_rank, new_rank)
    return entry


def unrank(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID) -> m.RankEntry:
    """Take an entry out of the ordering and close the gap it leaves."""
    _lock_owner(db, user_id)
    entry = _load_owned(db, user_id, entry_id)

    old_rank = entry.rank
    if old_rank is None:
        return entry

    entry.rank = None
    db.flush()
    _shift(db, user_id, -1, m.RankEntry.rank > old_rank)
    logger.debug("unrank user=%s entry=%s was=%s", user_id, entry_id, old_rank)
    return entry


def batch_reorder(db: Session, user_id: uuid.UUID, ordered_ids: Sequence[uuid.UUID]) -> list[m.RankEntry]:
    """
    Replace the user's ordering with ``ordered_ids`` (rank = position + 1).

    Fail-closed: every id must exist and belong to ``user_id``, and the list
    must cover every currently ranked entry. Unranked entries may be included
    and become ranked. Nothing is written unless all checks pass.
    """
    ids = list(ordered_ids)
    if len(set(ids)) != len(ids):
        raise InvalidReorder("ordered_ids contains duplicates")

    _lock_owner(db, user_id)

    owners = dict(
        db.execute(sa.select(m.RankEntry.id, m.RankEntry.user_id).where(m.RankEntry.id.in_(ids))).tuples().all()
    ) if ids else {}
    missing = [i for i in ids if i not in owners]
    if missing:
        raise EntryNotFound(", ".join(str(i) for i in missing))
    if any(owner != user_id for owner in owners.values()):
        raise EntryForbidden("ordered_ids references entries owned by another user")

    currently_ranked = set(
        db.scalars(
            sa.select(m.RankEntry.id)
              .where(m.RankEntry.user_id == user_id, m.RankEntry.rank.is_not(None))
        )
    )
    left_out = currently_ranked - set(ids)
    if left_out:
        raise InvalidReorder(f"ordered_ids is missing {len(left_out)} ranked entries")

    if ids:
        # ORM bulk UPDATE by primary key: one executemany, one transaction
        db.execute(
            sa.update(m.RankEntry),
            [{"id": entry_id, "rank": pos} for pos, entry_id in enumerate(ids, start=1)],
        )
    logger.debug("batch_reorder user=%s size=%d", user_id, len(ids))
    return ranked_entries(db, user_id)


def remove_entry(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID) -> None:
    """Delete an entry; if it was ranked, every rank below it moves up by one."""
    _lock_owner(db, user_id)
    entry = _load_owned(db, user_id, entry_id)

    old_rank = entry.rank
    db.delete(entry)
    db.flush()
    if old_rank is not None:
        _shift(db, user_id, -1, m.RankEntry.rank > old_rank)
    logger.debug("remove user=%s entry=%s was=%s", user_id, entry_id, old_rank)
