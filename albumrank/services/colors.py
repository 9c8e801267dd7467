"""Dominant-colour extraction for album covers (best-effort enrichment)."""
from __future__ import annotations

import io
import logging
import uuid

import httpx
from PIL import Image

from albumrank.core.config import settings
from albumrank.db.session import SessionLocal
from albumrank.db import models as m

logger = logging.getLogger(__name__)

PALETTE_SIZE = 6
THUMBNAIL = (96, 96)
# near-white / near-black swatches make poor accents; skip them for the dominant pick
_MIN_LUMA, _MAX_LUMA = 0.08, 0.92


def _hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def _luma(rgb: tuple[int, int, int]) -> float:
    r, g, b = (c / 255.0 for c in rgb)
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def palette_from_image(data: bytes, n: int = PALETTE_SIZE) -> tuple[str, list[str]]:
    """
    Quantise an encoded image and return ``(dominant, palette)`` as ``#rrggbb``.

    The palette is ordered by pixel share, largest first. The dominant colour
    is the most common swatch that is neither near-black nor near-white,
    falling back to the most common swatch overall.
    """
    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB")
        img.thumbnail(THUMBNAIL)
        quant = img.quantize(colors=n)
        raw = quant.getpalette() or []
        counts = sorted(quant.getcolors() or [], reverse=True)  # [(count, index), ...]

    swatches: list[tuple[int, int, int]] = []
    for _count, idx in counts:
        rgb = tuple(raw[idx * 3: idx * 3 + 3])
        if len(rgb) == 3 and rgb not in swatches:
            swatches.append(rgb)  # type: ignore[arg-type]
    if not swatches:
        raise ValueError("image has no colours")

    dominant = next((c for c in swatches if _MIN_LUMA <= _luma(c) <= _MAX_LUMA), swatches[0])
    return _hex(dominant), [_hex(c) for c in swatches]


def fetch_cover(url: str) -> bytes:
    with httpx.Client(timeout=settings.cover_fetch_timeout_sec, follow_redirects=True) as client:
        r = client.get(url)
        r.raise_for_status()
        return r.content


def enrich_album_colors(album_id: uuid.UUID, cover_url: str) -> None:
    """
    Background task: fill ``dominant_color``/``palette_colors`` for an album.

    Runs after the creating request has committed, in its own session. Any
    failure is logged and dropped; the album simply keeps NULL colours.
    """
    try:
        dominant, palette = palette_from_image(fetch_cover(cover_url))
    except Exception as e:
        logger.warning("colour extraction failed album=%s url=%s: %s", album_id, cover_url, e)
        return

    try:
        with SessionLocal() as db:
            album = db.get(m.Album, album_id)
            if album is None:
                return
            album.dominant_color = dominant
            album.palette_colors = palette
            db.commit()
    except Exception:
        logger.warning("could not store colours album=%s", album_id, exc_info=True)
