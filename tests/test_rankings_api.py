"""
HTTP tests for /rankings: the community ranking over every user's ledger.
"""
import pytest


@pytest.fixture
def ledgers(client, alice, bob, auth_headers, make_album):
    """Alice ranks X, Y, Z; Bob ranks only X."""
    albums = {t: make_album(t) for t in "XYZ"}
    for t in "XYZ":
        client.post("/entries", json={"album_id": str(albums[t].id)}, headers=auth_headers(alice))
    client.post("/entries", json={"album_id": str(albums["X"].id)}, headers=auth_headers(bob))
    return albums


class TestRankings:
    """GET /rankings"""

    def test_normalised_borda(self, client, ledgers):
        rows = client.get("/rankings").json()
        assert [r["album"]["title"] for r in rows] == ["X", "Y", "Z"]
        assert [r["borda_score"] for r in rows] == [2.0, 0.5, 0.0]
        assert [r["global_rank"] for r in rows] == [1, 2, 3]
        assert [r["ranked_by_count"] for r in rows] == [2, 1, 1]

    def test_limit(self, client, ledgers):
        rows = client.get("/rankings", params={"limit": 1}).json()
        assert [r["album"]["title"] for r in rows] == ["X"]

    def test_follows_ledger_changes(self, client, ledgers, alice, auth_headers):
        entries = client.get("/entries", headers=auth_headers(alice)).json()
        z = next(e for e in entries if e["album"]["title"] == "Z")
        client.patch(f"/entries/{z['id']}", json={"rank": 1}, headers=auth_headers(alice))

        rows = client.get("/rankings").json()
        # Alice: Z=1.0, X=0.5, Y=0.0; Bob: X=1.0
        assert [r["album"]["title"] for r in rows] == ["X", "Z", "Y"]
        assert [r["borda_score"] for r in rows] == [1.5, 1.0, 0.0]

    def test_empty(self, client):
        assert client.get("/rankings").json() == []
