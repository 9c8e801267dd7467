"""
Tests for albumrank.services.borda: normalised Borda aggregation.
"""
import uuid

import pytest

from albumrank.services import ledger
from albumrank.services.borda import borda_rankings, global_rankings, normalized_vote

X = uuid.UUID("00000000-0000-0000-0000-00000000000a")
Y = uuid.UUID("00000000-0000-0000-0000-00000000000b")
Z = uuid.UUID("00000000-0000-0000-0000-00000000000c")


def _scores(result):
    return {r.album_id: r.borda_score for r in result}


class TestNormalizedVote:
    """Per-entry vote in [0, 1]."""

    def test_single_entry_list(self):
        assert normalized_vote(1, 1) == 1.0

    def test_first_and_last(self):
        assert normalized_vote(1, 5) == 1.0
        assert normalized_vote(5, 5) == 0.0

    def test_middle(self):
        assert normalized_vote(2, 3) == pytest.approx(0.5)
        assert normalized_vote(3, 5) == pytest.approx(0.5)


class TestBordaRankings:
    """Aggregation over (user, album, rank) rows."""

    def test_two_users_one_overlap(self):
        rows = [("a", X, 1), ("a", Y, 2), ("a", Z, 3), ("b", X, 1)]
        result = borda_rankings(rows)

        assert [r.album_id for r in result] == [X, Y, Z]
        assert _scores(result) == {X: 2.0, Y: 0.5, Z: 0.0}
        assert [r.global_rank for r in result] == [1, 2, 3]
        assert [r.ranked_by_count for r in result] == [2, 1, 1]

    def test_list_length_does_not_buy_weight(self):
        """A long list and a short list contribute the same total per position span."""
        long_list = [("long", uuid.UUID(int=1000 + i), i) for i in range(1, 11)]
        short_list = [("short", X, 1), ("short", Y, 2)]
        scores = _scores(borda_rankings(long_list + short_list))

        assert scores[uuid.UUID(int=1001)] == 1.0
        assert scores[uuid.UUID(int=1010)] == 0.0
        assert scores[X] == 1.0
        assert scores[Y] == 0.0

    def test_unranked_rows_are_ignored(self):
        rows = [("a", X, 1), ("a", Y, None), ("a", Z, 2)]
        result = borda_rankings(rows)
        assert {r.album_id for r in result} == {X, Z}
        # Y's row does not count toward a's list length
        assert _scores(result) == {X: 1.0, Z: 0.0}

    def test_ties_break_by_album_id(self):
        rows = [("a", Y, 1), ("a", X, 2), ("b", X, 1), ("b", Y, 2)]
        result = borda_rankings(rows)
        assert _scores(result) == {X: 1.0, Y: 1.0}
        assert [r.album_id for r in result] == [X, Y]

    def test_order_independent_of_input_order(self):
        rows = [("a", Z, 1), ("a", Y, 2), ("b", Y, 1), ("b", Z, 2), ("c", X, 1), ("c", Y, 2), ("c", Z, 3)]
        forward = borda_rankings(rows)
        backward = borda_rankings(list(reversed(rows)))
        assert [r.album_id for r in forward] == [r.album_id for r in backward]

    def test_float_noise_does_not_split_ties(self):
        # Y collects 2/3 + 1/3, which need not sum to exactly 1.0 in floating point
        f = [uuid.UUID(int=100 + i) for i in range(6)]
        rows = [
            ("a", X, 1),
            ("b", f[0], 1), ("b", Y, 2), ("b", f[1], 3), ("b", f[2], 4),
            ("c", f[3], 1), ("c", f[4], 2), ("c", Y, 3), ("c", f[5], 4),
        ]
        result = borda_rankings(rows)
        scores = _scores(result)
        assert scores[X] == scores[Y] == 1.0
        order = [r.album_id for r in result]
        assert order.index(X) < order.index(Y)

    def test_empty(self):
        assert borda_rankings([]) == []


class TestGlobalRankings:
    """Read path over the database."""

    def test_reflects_current_ledgers(self, db, alice, bob, make_album):
        x, y, z = (make_album(t) for t in "XYZ")
        for album in (x, y, z):
            ledger.insert_entry(db, alice.id, album.id)
        ledger.insert_entry(db, bob.id, x.id)
        db.commit()

        result = global_rankings(db)
        assert [r.album_id for r in result] == [x.id, y.id, z.id]
        assert [r.borda_score for r in result] == [2.0, 0.5, 0.0]

    def test_recomputed_after_a_move(self, db, alice, make_album):
        x, y = make_album("X"), make_album("Y")
        ex = ledger.insert_entry(db, alice.id, x.id)
        ledger.insert_entry(db, alice.id, y.id)
        db.commit()
        assert global_rankings(db)[0].album_id == x.id

        ledger.set_rank(db, alice.id, ex.id, 2)
        db.commit()
        assert global_rankings(db)[0].album_id == y.id

    def test_unranked_entries_absent(self, db, alice, make_album):
        x, y = make_album("X"), make_album("Y")
        ledger.insert_entry(db, alice.id, x.id)
        ledger.insert_entry(db, alice.id, y.id, ranked=False)
        db.commit()
        assert [r.album_id for r in global_rankings(db)] == [x.id]
