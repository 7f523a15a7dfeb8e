"""
Concrete batch jobs: game detail pages and player profile pages
"""

from typing import Any, Dict, Optional
from bs4 import BeautifulSoup
from core.config import settings
from core.exceptions import ExtractionError, PipelineException
from ingestion.base import BatchJob
from ingestion.fetcher import HttpFetcher
from ingestion.extractors.literal_extractor import extract, select_argument_list
from ingestion.extractors.viewmodel_source import locate_game
from ingestion.extractors.tables import (
    classify_player_tables,
    discover_season_urls,
    parse_player_page,
)
from ingestion.transformers.normalizer import normalize
from ingestion.transformers.reconciler import merge
from schemas.canonical import CanonicalRecord
from schemas.player import PlayerRecord
import asyncio
import logging

logger = logging.getLogger(__name__)


def _season_tables(html: str) -> Dict[str, Any]:
    return classify_player_tables(BeautifulSoup(html, "html.parser"))


class GameDetailJob(BatchJob):
    """
    Fetch a game's detail page and reconcile it with the snapshot observation.

    ``seeds`` maps identity keys to records from ``latest.json``; the detail
    observation is merged with its seed so fields only the snapshot lists
    carry (round text, probable pitchers) survive.
    """

    source_name = "games"
    record_prefix = "games"

    def __init__(
        self,
        fetcher: HttpFetcher,
        seeds: Optional[Dict[str, CanonicalRecord]] = None,
        url_template: Optional[str] = None,
        marker: Optional[str] = None
    ):
        self.fetcher = fetcher
        self.seeds = seeds or {}
        self.url_template = url_template or settings.GAME_DETAIL_URL_TEMPLATE
        self.marker = marker or settings.VIEWMODEL_MARKER

    async def fetch_record(self, identity: Any) -> CanonicalRecord:
        url = self.url_template.format(id=identity)
        html = await self.fetcher.fetch(url)
        record = await asyncio.to_thread(self._parse, html, identity, url)

        seed = self.seeds.get(str(identity))
        if seed is not None:
            record = merge(record, seed)
        return record

    def _parse(self, html: str, identity: Any, url: str) -> CanonicalRecord:
        args = select_argument_list(extract(html, self.marker))
        raw = locate_game(args, identity)
        if raw is None:
            raise ExtractionError(
                "Detail page has no game object",
                context={"url": url, "identity": identity}
            )

        record = normalize(raw, "detail")
        if not record.identity:
            record.identity = identity
        return record

    def display_name(self, identity: Any) -> Optional[str]:
        seed = self.seeds.get(str(identity))
        return seed.display_name if seed is not None else None


class PlayerProfileJob(BatchJob):
    """Fetch a player's detail page (and optionally per-season views)."""

    source_name = "players"
    record_prefix = "players"

    def __init__(
        self,
        fetcher: HttpFetcher,
        names: Optional[Dict[int, Optional[str]]] = None,
        url_template: Optional[str] = None,
        max_seasons: Optional[int] = None,
        request_delay: Optional[float] = None
    ):
        self.fetcher = fetcher
        self.names = names or {}
        self.url_template = url_template or settings.PLAYER_DETAIL_URL_TEMPLATE
        self.max_seasons = settings.MAX_SEASONS_PER_PLAYER if max_seasons is None else max_seasons
        self.request_delay = settings.REQUEST_DELAY_SECONDS if request_delay is None else request_delay

    async def fetch_record(self, identity: Any) -> PlayerRecord:
        player_id = int(identity)
        url = self.url_template.format(id=player_id)
        html = await self.fetcher.fetch(url)

        record = await asyncio.to_thread(
            parse_player_page, html, player_id, self.names.get(player_id), url
        )
        if self.max_seasons > 0:
            record.seasons = await self._fetch_seasons(html, url, player_id)
        return record

    async def _fetch_seasons(self, html: str, detail_url: str, player_id: int) -> Dict[str, Any]:
        seasons = {}
        for label, url in discover_season_urls(html, detail_url)[:self.max_seasons]:
            try:
                page = await self.fetcher.fetch(url)
                seasons[label] = await asyncio.to_thread(_season_tables, page)
            except PipelineException as e:
                logger.warning(f"Season view failed for player {player_id} [{label}]: {e.message}")
            if self.request_delay:
                await asyncio.sleep(self.request_delay)
        return seasons

    def display_name(self, identity: Any) -> Optional[str]:
        try:
            return self.names.get(int(identity))
        except (TypeError, ValueError):
            return None
