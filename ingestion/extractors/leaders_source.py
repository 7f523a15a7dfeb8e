"""
Statistics-site leaders page and player universe resolution
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from bs4 import BeautifulSoup
from core.config import settings
from core.exceptions import EmptyUniverseError, PipelineException
from core.storage import BlobStore
from ingestion.fetcher import HttpFetcher
from ingestion.extractors.tables import (
    LEADER_KINDS,
    PLAYER_HREF_RE,
    parse_leaders,
    player_ids_from_rows,
    squash,
)
import json
import logging

logger = logging.getLogger(__name__)

LEADERS_KEY = "stats/lideres.json"


class LeadersSource:
    """Scrape the leaders page into ``stats/lideres.json``."""

    def __init__(self, fetcher: HttpFetcher, store: BlobStore, url: Optional[str] = None):
        self.fetcher = fetcher
        self.store = store
        self.url = url or settings.LIDOM_STATS_URL

    def build_payload(self, html: str) -> Dict[str, Any]:
        tables = parse_leaders(html)
        return {
            "meta": {
                "source": self.url,
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "counts": {kind: len(tables[kind]) for kind in LEADER_KINDS},
            },
            **tables,
        }

    async def run(self) -> Dict[str, Any]:
        html = await self.fetcher.fetch(self.url)
        payload = self.build_payload(html)
        self.store.write_blob(
            LEADERS_KEY,
            json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        )
        counts = payload["meta"]["counts"]
        logger.info(f"Wrote {LEADERS_KEY} ({counts['bateo']} bateo, {counts['pitcheo']} pitcheo)")
        return counts


def ids_from_leaders_file(store: BlobStore) -> Dict[int, Optional[str]]:
    if not store.exists(LEADERS_KEY):
        return {}
    try:
        payload = json.loads(store.read_blob(LEADERS_KEY).decode("utf-8"))
    except ValueError as e:
        logger.warning(f"{LEADERS_KEY} is not valid JSON: {e}")
        return {}
    rows: List[Dict[str, Any]] = []
    for kind in LEADER_KINDS:
        rows.extend(payload.get(kind) or [])
    return player_ids_from_rows(rows)


def ids_from_leaders_page(html: str) -> Dict[int, Optional[str]]:
    """Every player link on the page, whatever table it sits in."""
    soup = BeautifulSoup(html, "html.parser")
    ids: Dict[int, Optional[str]] = {}
    for anchor in soup.find_all("a", href=PLAYER_HREF_RE):
        player_id = int(PLAYER_HREF_RE.search(anchor["href"]).group(1))
        if player_id and player_id not in ids:
            ids[player_id] = squash(anchor.get_text(" ")) or None
    return ids


def ids_from_env(value: Optional[str]) -> Dict[int, Optional[str]]:
    ids: Dict[int, Optional[str]] = {}
    for token in (value or "").split(","):
        token = token.strip()
        if token.isascii() and token.isdigit() and int(token):
            ids.setdefault(int(token), None)
    return ids


async def resolve_player_universe(
    store: BlobStore,
    fetcher: HttpFetcher,
    leaders_url: Optional[str] = None,
    force_ids: Optional[str] = None
) -> Dict[int, Optional[str]]:
    """
    Player id -> fallback display name.

    Sources, first non-empty wins: stored leaders file, the live leaders
    page, then the FORCE_IDS list.

    Raises:
        EmptyUniverseError: no source produced any id
    """
    ids = ids_from_leaders_file(store)
    if ids:
        logger.info(f"Player universe: {len(ids)} id(s) from {LEADERS_KEY}")
        return ids

    url = leaders_url or settings.LIDOM_STATS_URL
    try:
        ids = ids_from_leaders_page(await fetcher.fetch(url))
    except PipelineException as e:
        logger.warning(f"Leaders page scrape failed: {e.message}")
        ids = {}
    if ids:
        logger.info(f"Player universe: {len(ids)} id(s) from {url}")
        return ids

    ids = ids_from_env(force_ids if force_ids is not None else settings.FORCE_IDS)
    if ids:
        logger.info(f"Player universe: {len(ids)} id(s) from FORCE_IDS")
        return ids

    raise EmptyUniverseError(
        "No player ids available (leaders file, leaders page and FORCE_IDS all empty)",
        context={"leaders_key": LEADERS_KEY, "leaders_url": url}
    )
