"""
Tests for registration, login, token checks, profiles and the admin seed.
"""
import time

import jwt
import pytest

from albumrank.core.bootstrap import ensure_admin_user
from albumrank.core.config import settings
from albumrank.core.security import decode_access_token, verify_password
from albumrank.db import models as m


def _register(client, **overrides):
    body = {"username": "carol", "email": "Carol@Example.com", "password": "hunter22!"}
    body.update(overrides)
    return client.post("/auth/register", json=body)


class TestRegister:
    """POST /auth/register"""

    def test_creates_account(self, client):
        r = _register(client)
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "carol@example.com"
        assert body["display_name"] == "carol"
        assert body["role"] == "USER"
        assert "password_hash" not in body

    def test_email_in_use(self, client):
        _register(client)
        r = _register(client, username="carol2", email="carol@example.com")
        assert r.status_code == 409
        assert r.json()["detail"] == "email_in_use"

    def test_username_taken(self, client):
        _register(client)
        r = _register(client, email="other@example.com")
        assert r.status_code == 409
        assert r.json()["detail"] == "username_taken"

    @pytest.mark.parametrize("username", ["ab", "Carol", "has space", "x" * 31])
    def test_bad_username(self, client, username):
        assert _register(client, username=username).status_code == 422

    def test_short_password(self, client):
        assert _register(client, password="short").status_code == 422


class TestLogin:
    """POST /auth/login"""

    def test_returns_token(self, client):
        user_id = _register(client).json()["id"]
        r = client.post("/auth/login", json={"email": "carol@example.com", "password": "hunter22!"})
        assert r.status_code == 200
        claims = decode_access_token(r.json()["access_token"])
        assert claims["sub"] == user_id
        assert claims["role"] == "USER"

    def test_wrong_password(self, client):
        _register(client)
        r = client.post("/auth/login", json={"email": "carol@example.com", "password": "nope-nope"})
        assert r.status_code == 401
        assert r.json()["detail"] == "invalid_credentials"

    def test_unknown_email(self, client):
        r = client.post("/auth/login", json={"email": "ghost@example.com", "password": "whatever1"})
        assert r.status_code == 401

    def test_sets_last_login(self, client, db):
        _register(client)
        client.post("/auth/login", json={"email": "carol@example.com", "password": "hunter22!"})
        user = db.query(m.User).filter(m.User.username == "carol").one()
        assert user.last_login_at is not None


class TestTokens:
    """Bearer token validation"""

    def _token(self, **overrides):
        now = int(time.time())
        payload = {
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": now,
            "exp": now + 600,
            "sub": "00000000-0000-0000-0000-000000000001",
            "role": "USER",
        }
        payload.update(overrides)
        return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

    def _get_me(self, client, token):
        return client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

    def test_expired(self, client):
        r = self._get_me(client, self._token(exp=int(time.time()) - 3600))
        assert r.json()["detail"] == "token_expired"

    def test_wrong_audience(self, client):
        r = self._get_me(client, self._token(aud="someone-else"))
        assert r.json()["detail"] == "invalid_audience"

    def test_wrong_issuer(self, client):
        r = self._get_me(client, self._token(iss="https://evil.example"))
        assert r.json()["detail"] == "invalid_issuer"

    def test_bad_subject(self, client):
        r = self._get_me(client, self._token(sub="not-a-uuid"))
        assert r.json()["detail"] == "invalid_subject"

    def test_unknown_user(self, client):
        r = self._get_me(client, self._token())
        assert r.status_code == 401
        assert r.json()["detail"] == "user_not_found"

    def test_garbage(self, client):
        r = self._get_me(client, "abc.def.ghi")
        assert r.json()["detail"] == "invalid_token"


class TestUsers:
    """/users"""

    def test_me(self, client, alice, auth_headers):
        r = client.get("/users/me", headers=auth_headers(alice))
        assert r.json()["username"] == "alice"
        assert r.json()["email"] == "alice@example.com"

    def test_update_me(self, client, alice, auth_headers):
        r = client.patch("/users/me", json={"bio": "  vinyl only  "}, headers=auth_headers(alice))
        assert r.status_code == 200
        assert r.json()["bio"] == "vinyl only"
        assert r.json()["display_name"] == "Alice"

    def test_null_display_name_is_ignored(self, client, alice, auth_headers):
        r = client.patch("/users/me", json={"display_name": None, "bio": "hi"}, headers=auth_headers(alice))
        assert r.status_code == 200
        assert r.json()["display_name"] == "Alice"
        assert r.json()["bio"] == "hi"

    def test_blank_bio_clears(self, client, alice, auth_headers):
        h = auth_headers(alice)
        client.patch("/users/me", json={"bio": "hi"}, headers=h)
        assert client.patch("/users/me", json={"bio": "   "}, headers=h).json()["bio"] is None

    def test_change_username(self, client, alice, auth_headers):
        r = client.patch("/users/me", json={"username": "alice_v2"}, headers=auth_headers(alice))
        assert r.status_code == 200
        assert r.json()["username"] == "alice_v2"
        assert client.get("/users/alice_v2").status_code == 200
        assert client.get("/users/alice").status_code == 404

    def test_change_username_taken(self, client, alice, bob, auth_headers):
        r = client.patch("/users/me", json={"username": "bob"}, headers=auth_headers(alice))
        assert r.status_code == 409
        assert r.json()["detail"] == "username_taken"

    def test_change_username_bad_format(self, client, alice, auth_headers):
        r = client.patch("/users/me", json={"username": "Not Valid"}, headers=auth_headers(alice))
        assert r.status_code == 422

    def test_change_password(self, client, alice, auth_headers, db):
        r = client.patch(
            "/users/me",
            json={"current_password": "correct-horse", "new_password": "battery-staple"},
            headers=auth_headers(alice),
        )
        assert r.status_code == 200
        db.refresh(alice)
        assert verify_password("battery-staple", alice.password_hash)
        login = client.post("/auth/login", json={"email": "alice@example.com", "password": "battery-staple"})
        assert login.status_code == 200

    def test_change_password_needs_current(self, client, alice, auth_headers):
        r = client.patch("/users/me", json={"new_password": "battery-staple"}, headers=auth_headers(alice))
        assert r.status_code == 400
        assert r.json()["detail"] == "current_password_required"

    def test_change_password_wrong_current(self, client, alice, auth_headers, db):
        r = client.patch(
            "/users/me",
            json={"current_password": "wrong-horse", "new_password": "battery-staple"},
            headers=auth_headers(alice),
        )
        assert r.status_code == 400
        assert r.json()["detail"] == "invalid_current_password"
        db.refresh(alice)
        assert verify_password("correct-horse", alice.password_hash)

    def test_new_password_too_short(self, client, alice, auth_headers):
        r = client.patch(
            "/users/me",
            json={"current_password": "correct-horse", "new_password": "short"},
            headers=auth_headers(alice),
        )
        assert r.status_code == 422

    def test_public_profile_hides_email(self, client, alice):
        r = client.get("/users/alice")
        assert r.status_code == 200
        assert "email" not in r.json()

    def test_unknown_profile(self, client):
        assert client.get("/users/nobody").status_code == 404

    def test_public_collection(self, client, alice, auth_headers):
        h = auth_headers(alice)
        for t in "AB":
            client.post("/entries", json={"title": t, "artist": "Band"}, headers=h)
        client.post("/entries", json={"title": "C", "artist": "Band", "ranked": False}, headers=h)

        rows = client.get("/users/alice/collection").json()
        assert [(e["album"]["title"], e["rank"]) for e in rows] == [("A", 1), ("B", 2), ("C", None)]


class TestAdminSeed:
    """ensure_admin_user"""

    def test_creates_admin(self, db):
        admin = ensure_admin_user(db, email="Admin@Example.com", username="admin", password="s3cret-pass")
        assert admin.role == "ADMIN"
        assert admin.email == "admin@example.com"
        assert verify_password("s3cret-pass", admin.password_hash)

    def test_idempotent_and_promotes(self, db, make_user):
        user = make_user("admin")
        ensure_admin_user(db, email="admin@example.com", username="admin", password="ignored-pass")
        ensure_admin_user(db, email="admin@example.com", username="admin", password="ignored-pass")
        db.refresh(user)
        assert user.role == "ADMIN"
        assert db.query(m.User).count() == 1


class TestHealth:
    def test_healthz(self, client):
        r = client.get("/healthz")
        assert r.json() == {"status": "ok", "service": settings.service_name}
