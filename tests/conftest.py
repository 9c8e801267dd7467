"""
Pytest configuration and shared fixtures for albumrank tests.

The app is pointed at a single-connection in-memory SQLite database before any
albumrank module is imported; the schema is rebuilt for every test.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_ADMIN_SEED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

import io
import itertools

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from albumrank.core.security import create_access_token, hash_password
from albumrank.db import models as m
from albumrank.db.session import SessionLocal, engine
from albumrank.main import app

_seq = itertools.count(1)


@pytest.fixture(autouse=True)
def schema():
    """Fresh tables for each test."""
    m.Base.metadata.create_all(engine)
    yield
    m.Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def offline_covers(monkeypatch):
    """Cover downloads never hit the network; tests that need artwork patch this again."""
    def _offline(url: str) -> bytes:
        raise httpx.ConnectError(f"offline: {url}")

    monkeypatch.setattr("albumrank.services.colors.fetch_cover", _offline)


@pytest.fixture
def db(schema):
    with SessionLocal() as session:
        yield session


@pytest.fixture
def client(schema):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    """Factory: persist a user and return it."""
    def _make(username: str | None = None, *, role: str = "USER", password: str = "correct-horse") -> m.User:
        username = username or f"user{next(_seq)}"
        user = m.User(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(password),
            display_name=username.title(),
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_album(db):
    """Factory: persist a manual album (no cover, so no colour task) and return it."""
    def _make(title: str | None = None, artist: str = "Various", **fields) -> m.Album:
        album = m.Album(title=title or f"Album {next(_seq)}", artist=artist, **fields)
        db.add(album)
        db.commit()
        return album

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: m.User) -> dict:
        token = create_access_token(sub=str(user.id), role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def cover_png():
    """A 40x40 PNG: three quarters red, one quarter blue."""
    img = Image.new("RGB", (40, 40), (255, 0, 0))
    img.paste((0, 0, 255), (0, 30, 40, 40))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
