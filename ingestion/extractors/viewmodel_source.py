"""
League snapshot from the home page's embedded ViewModel.

The home page carries ``new ViewModel([series, ...], ...)``. The first
series holds the league block, the standings and four game lists. Every
game in every list is normalized with the list name as its source hint,
then all observations are folded per identity into ``latest.json``.
"""

from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone
from core.config import settings
from core.exceptions import ExtractionError, NotFoundError, StorageError
from core.storage import BlobStore
from ingestion.fetcher import HttpFetcher
from ingestion.extractors.literal_extractor import (
    extract,
    select_argument_list,
    HOME_KEYS,
    AWAY_KEYS,
)
from ingestion.extractors.tables import results_rows
from ingestion.transformers.normalizer import normalize
from ingestion.transformers.reconciler import dedupe, identity_key
from schemas.canonical import CanonicalRecord
import json
import logging

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "latest.json"

# ViewModel list name -> snapshot list name
GAME_LISTS: Dict[str, str] = {
    "todayGames": "today",
    "nearestGames": "nearest",
    "previousGames": "previous",
    "previousRoundGames": "previous_round",
}
MARKUP_LIST = "results"


def first_series(args: List[Any]) -> Dict[str, Any]:
    """The first series object of the ViewModel's first argument."""
    if not args:
        raise ExtractionError("ViewModel call has no arguments")
    head = args[0]
    if isinstance(head, list):
        head = head[0] if head else None
    if not isinstance(head, dict):
        raise ExtractionError(
            "ViewModel carries no series object",
            context={"first_argument_type": type(args[0]).__name__}
        )
    return head


def _is_game(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and any(k in value for k in HOME_KEYS)
        and any(k in value for k in AWAY_KEYS)
    )


def locate_game(value: Any, identity: Any = None, depth: int = 6) -> Optional[Dict[str, Any]]:
    """
    Find the game object in an extracted argument list.

    Returns the object whose ``id`` matches ``identity`` when one exists,
    otherwise the first object exposing both participants (document order).
    """
    candidates: List[Dict[str, Any]] = []

    def walk(node: Any, remaining: int):
        if remaining < 0:
            return
        if _is_game(node):
            candidates.append(node)
        if isinstance(node, dict):
            for child in node.values():
                walk(child, remaining - 1)
        elif isinstance(node, list):
            for child in node:
                walk(child, remaining - 1)

    walk(value, depth)
    if identity is not None:
        for game in candidates:
            if str(game.get("id")) == str(identity):
                return game
    return candidates[0] if candidates else None


def _dump(record: CanonicalRecord) -> Dict[str, Any]:
    return record.model_dump(mode="json")


class LeagueSnapshotSource:
    """Fetch the league home page and persist the reconciled snapshot."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        store: BlobStore,
        url: Optional[str] = None,
        marker: Optional[str] = None
    ):
        self.fetcher = fetcher
        self.store = store
        self.url = url or settings.SOURCE_HOME_URL
        self.marker = marker or settings.VIEWMODEL_MARKER

    def _observations(self, html: str) -> Tuple[Dict[str, Any], Dict[str, List[Any]]]:
        """(series extras, raw games per snapshot list)"""
        try:
            args = select_argument_list(extract(html, self.marker))
        except NotFoundError:
            logger.warning(f"No ViewModel in {self.url}; falling back to results table markup")
            return {"league": None, "standings": []}, {MARKUP_LIST: results_rows(html)}

        series = first_series(args)
        lists = {}
        for raw_name, name in GAME_LISTS.items():
            games = series.get(raw_name)
            lists[name] = games if isinstance(games, list) else []
        extras = {
            "league": series.get("league"),
            "standings": series.get("standings") if isinstance(series.get("standings"), list) else [],
        }
        return extras, lists

    def build_snapshot(self, html: str) -> Dict[str, Any]:
        extras, lists = self._observations(html)

        games: Dict[str, List[Dict[str, Any]]] = {}
        observations: List[CanonicalRecord] = []
        for name, raw_games in lists.items():
            hint = "markup" if name == MARKUP_LIST else name
            normalized = [normalize(raw, hint) for raw in raw_games]
            observations.extend(normalized)
            games[name] = [_dump(record) for record in dedupe(normalized)]

        records = dedupe(observations)
        logger.info(
            f"Snapshot: {len(observations)} observation(s) across {len(lists)} list(s) "
            f"-> {len(records)} game(s)"
        )
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "source": self.url,
            "league": extras["league"],
            "standings": extras["standings"],
            "games": games,
            "records": [_dump(record) for record in records],
        }

    def _previous(self) -> Optional[Dict[str, Any]]:
        if not self.store.exists(SNAPSHOT_KEY):
            return None
        try:
            return json.loads(self.store.read_blob(SNAPSHOT_KEY).decode("utf-8"))
        except (StorageError, ValueError) as e:
            logger.warning(f"Ignoring unreadable {SNAPSHOT_KEY}: {e}")
            return None

    def save_if_changed(self, snapshot: Dict[str, Any]) -> bool:
        """Write the snapshot unless its content (ignoring generated_at) is unchanged."""
        previous = self._previous()
        if previous is not None:
            old = {k: v for k, v in previous.items() if k != "generated_at"}
            new = {k: v for k, v in snapshot.items() if k != "generated_at"}
            if old == new:
                logger.info("Snapshot unchanged; nothing written")
                return False

        data = json.dumps(snapshot, indent=2, ensure_ascii=False).encode("utf-8")
        self.store.write_blob(SNAPSHOT_KEY, data)
        logger.info(f"Wrote {SNAPSHOT_KEY} ({len(data)} bytes)")
        return True

    async def run(self) -> Dict[str, Any]:
        html = await self.fetcher.fetch(self.url)
        snapshot = self.build_snapshot(html)
        changed = self.save_if_changed(snapshot)
        return {"changed": changed, "games": len(snapshot["records"])}


def load_snapshot_records(store: BlobStore) -> Dict[str, CanonicalRecord]:
    """Reconciled snapshot records keyed by identity key; empty when no snapshot exists."""
    if not store.exists(SNAPSHOT_KEY):
        return {}
    payload = json.loads(store.read_blob(SNAPSHOT_KEY).decode("utf-8"))
    records = [CanonicalRecord.model_validate(item) for item in payload.get("records", [])]
    return {identity_key(record): record for record in records}


def game_universe(seeds: Dict[str, CanonicalRecord]) -> List[Any]:
    """Identities of snapshot games that carry a primary id."""
    return [record.identity for record in seeds.values() if record.identity]
