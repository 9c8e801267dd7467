"""
Tests for albumrank.services.colors: palette extraction and the background task.
"""
import io
import uuid

import httpx
import pytest
from PIL import Image

from albumrank.db import models as m
from albumrank.services import colors

# captured before the autouse fixture swaps in an offline stub
_real_fetch_cover = colors.fetch_cover


def _png(size, fill, stripe=None) -> bytes:
    img = Image.new("RGB", size, fill)
    if stripe:
        img.paste(stripe, (0, 0, size[0], size[1] // 4))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class TestPalette:
    """palette_from_image"""

    def test_most_common_colour_wins(self, cover_png):
        dominant, palette = colors.palette_from_image(cover_png)
        assert dominant == "#ff0000"
        assert palette[0] == "#ff0000"
        assert "#0000ff" in palette

    def test_skips_near_white(self):
        dominant, palette = colors.palette_from_image(_png((40, 40), (255, 255, 255), stripe=(0, 128, 0)))
        assert palette[0] == "#ffffff"
        assert dominant == "#008000"

    def test_falls_back_to_black(self):
        dominant, palette = colors.palette_from_image(_png((16, 16), (0, 0, 0)))
        assert dominant == "#000000"
        assert palette == ["#000000"]

    def test_not_an_image(self):
        with pytest.raises(OSError):
            colors.palette_from_image(b"definitely not a png")


class TestEnrichAlbumColors:
    """enrich_album_colors never raises"""

    def test_stores_colours(self, db, make_album, cover_png, monkeypatch):
        album = make_album("X")
        monkeypatch.setattr(colors, "fetch_cover", lambda url: cover_png)

        colors.enrich_album_colors(album.id, "https://img.example/x.png")

        db.expire_all()
        stored = db.get(m.Album, album.id)
        assert stored.dominant_color == "#ff0000"
        assert stored.palette_colors[0] == "#ff0000"

    def test_download_failure_is_logged(self, db, make_album, caplog):
        album = make_album("X")
        # offline_covers makes the download raise httpx.ConnectError
        colors.enrich_album_colors(album.id, "https://img.example/x.png")

        db.expire_all()
        assert db.get(m.Album, album.id).dominant_color is None
        assert "colour extraction failed" in caplog.text

    def test_missing_album_is_ignored(self, cover_png, monkeypatch):
        monkeypatch.setattr(colors, "fetch_cover", lambda url: cover_png)
        colors.enrich_album_colors(uuid.uuid4(), "https://img.example/x.png")

    def test_fetch_cover_raises_for_status(self, monkeypatch):
        real_client = httpx.Client

        def _client(**kwargs):
            return real_client(transport=httpx.MockTransport(lambda req: httpx.Response(404)), **kwargs)

        monkeypatch.setattr(colors.httpx, "Client", _client)
        with pytest.raises(httpx.HTTPStatusError):
            _real_fetch_cover("https://img.example/missing.png")
