# Lightweight MusicBrainz release-group client (httpx)
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from albumrank.core.config import settings

COVER_ART_URL = "https://coverartarchive.org/release-group/{mbid}/front-500"

# Only long-form releases are rankable albums
_ALBUM_TYPES = {"Album", "EP"}


class CatalogUnavailable(RuntimeError):
    pass


def cover_art_url(mbid: str) -> str:
    return COVER_ART_URL.format(mbid=mbid)


def _artist_name(rg: Dict[str, Any]) -> str:
    credits = rg.get("artist-credit") or []
    if not credits:
        return "Unknown Artist"
    first = credits[0] or {}
    return first.get("name") or (first.get("artist") or {}).get("name") or "Unknown Artist"


def _top_genres(rg: Dict[str, Any], limit: int = 5) -> List[str]:
    tags = sorted(rg.get("tags") or [], key=lambda t: t.get("count", 0), reverse=True)
    return [t["name"] for t in tags[:limit] if t.get("name")]


def parse_release_year(release_date: Optional[str]) -> Optional[int]:
    """'1997-05-21' / '1997-05' / '1997' -> 1997; anything else -> None."""
    if not release_date:
        return None
    head = release_date[:4]
    return int(head) if head.isdigit() else None


def map_release_group(rg: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "external_id": rg["id"],
        "title": rg.get("title") or "Unknown Album",
        "artist": _artist_name(rg),
        "release_date": rg.get("first-release-date") or "",
        "release_year": parse_release_year(rg.get("first-release-date")),
        "primary_type": rg.get("primary-type") or "Album",
        "genres": _top_genres(rg),
        "cover_url": cover_art_url(rg["id"]),
    }


async def search_release_groups(query: str, *, limit: int = 25) -> List[Dict[str, Any]]:
    """
    GET /release-group?query=<q>&fmt=json
    Returns mapped Album/EP hits; raises CatalogUnavailable on any transport or HTTP error.
    """
    params = {"query": query, "fmt": "json", "limit": str(limit)}
    headers = {"User-Agent": settings.musicbrainz_user_agent, "Accept": "application/json"}
    try:
        async with httpx.AsyncClient(timeout=settings.musicbrainz_timeout_sec) as client:
            r = await client.get(f"{settings.musicbrainz_base_url}/release-group", params=params, headers=headers)
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise CatalogUnavailable(str(e)) from e

    groups = data.get("release-groups") or []
    return [
        map_release_group(rg)
        for rg in groups
        if rg.get("id") and (rg.get("primary-type") or "") in _ALBUM_TYPES
    ]
