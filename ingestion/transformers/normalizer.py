"""
Transform raw game observations into the canonical record schema
"""

from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime, timezone
from schemas.canonical import (
    CanonicalRecord,
    GameStatus,
    Identifier,
    InningScore,
    Participant,
    PitcherInfo,
)
from ingestion.transformers.markup_fallback import participants_from_row
import logging
import re

logger = logging.getLogger(__name__)

# Canonical field -> raw field names, tried in order.
GAME_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    "identity": ("id", "gameId", "game_id", "idJuego"),
    "status": ("status", "statusId", "gameStatus", "estado"),
    "date": ("date", "gameDate", "startDate", "start_time", "fecha"),
    "round_text": ("roundText", "round", "phase", "ronda"),
    "current_inning": ("currentInningNum", "currentInning", "inning"),
    "last_play": ("lastPlayByPlay", "lastPlay"),
    "at_bat": ("atBat",),
    "batting_team": ("battingTeam",),
    "balls": ("balls",),
    "strikes": ("strikes",),
    "outs": ("outs",),
    "bases": ("base", "bases"),
    "venue": ("venue", "stadium", "estadio"),
    "home": ("homeTeam", "home", "home_team"),
    "away": ("awayTeam", "away", "away_team"),
    "innings": ("innings", "lineScore", "linescore"),
    "plays": ("playByPlay", "plays"),
    "betting_lines": ("odds", "lines", "bettingLines"),
}

PARTICIPANT_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "teamId", "idEquipo"),
    "name": ("name", "teamName", "nombre"),
    "abbreviation": ("abbreviation", "abbr", "shortName"),
    "runs": ("runs", "R", "score"),
    "hits": ("hits", "H"),
    "errors": ("errors", "E"),
    "pitcher": ("pitcher", "probablePitcher", "startingPitcher"),
}

PITCHER_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "playerId", "idMiembro"),
    "name": ("name", "fullName", "nombre"),
    "wins": ("wins", "W"),
    "losses": ("losses", "L"),
    "era": ("era", "ERA"),
}

# Per-page differences. Entries replace the defaults above for that source.
SOURCE_FIELD_OVERRIDES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "detail": {
        "innings": ("lineScore", "innings", "linescore"),
        "plays": ("playByPlay", "plays", "events"),
    },
    "markup": {
        "date": ("date", "fecha"),
    },
}

STATUS_NAMES: Dict[str, GameStatus] = {
    "not_started": GameStatus.NOT_STARTED,
    "scheduled": GameStatus.NOT_STARTED,
    "live": GameStatus.LIVE,
    "in_progress": GameStatus.LIVE,
    "preview": GameStatus.PREVIEW,
    "delayed": GameStatus.DELAYED,
    "suspended": GameStatus.SUSPENDED,
    "final": GameStatus.FINAL,
    "postponed": GameStatus.POSTPONED,
}

ROW_MARKUP_FIELD = "rowHtml"

_MS_DATE_RE = re.compile(r"/Date\((-?\d+)\)/")


class GameNormalizer:
    """
    Normalize game observations from the different league pages.

    Handles:
    - Schema mapping through explicit alias tables
    - Best-effort type conversion (bad values become None)
    - Participant fallback from results-table markup

    Never raises; unknown raw fields are dropped.
    """

    def __init__(
        self,
        field_map: Optional[Dict[str, Tuple[str, ...]]] = None,
        source_overrides: Optional[Dict[str, Dict[str, Tuple[str, ...]]]] = None
    ):
        self.field_map = dict(field_map or GAME_FIELD_MAP)
        self.source_overrides = source_overrides if source_overrides is not None else SOURCE_FIELD_OVERRIDES

    def normalize(self, raw: Any, source_hint: Optional[str] = None) -> CanonicalRecord:
        """
        Normalize a raw observation into a CanonicalRecord.

        Args:
            raw: Mapping as found in the page (anything else yields an empty record)
            source_hint: Page/list the observation came from ("todayGames", "detail", ...)
        """
        if not isinstance(raw, dict):
            logger.debug(f"Ignoring non-mapping observation from {source_hint}: {type(raw).__name__}")
            return CanonicalRecord()

        table = self._table_for(source_hint)

        def pick(field: str) -> Any:
            return self._pick(raw, table[field])

        lines = pick("betting_lines")
        record = CanonicalRecord(
            identity=self._parse_identifier(pick("identity")),
            status=self._parse_status(pick("status")),
            date=self._parse_datetime(pick("date")),
            round_text=self._parse_text(pick("round_text")),
            current_inning=self._parse_int(pick("current_inning")),
            last_play=self._parse_text(pick("last_play")),
            at_bat=self._parse_text(pick("at_bat")),
            batting_team=self._parse_text(pick("batting_team")),
            balls=self._parse_int(pick("balls")),
            strikes=self._parse_int(pick("strikes")),
            outs=self._parse_int(pick("outs")),
            bases=self._parse_int(pick("bases")),
            venue=self._parse_text(pick("venue")),
            home=self._parse_participant(pick("home")),
            away=self._parse_participant(pick("away")),
            innings=self._parse_innings(pick("innings")),
            plays=self._parse_plays(pick("plays")),
            betting_lines=lines if isinstance(lines, dict) else {},
        )

        markup = raw.get(ROW_MARKUP_FIELD)
        if isinstance(markup, str) and (record.home.id is None or record.away.id is None):
            self._apply_markup_fallback(record, markup)

        return record

    def _table_for(self, source_hint: Optional[str]) -> Dict[str, Tuple[str, ...]]:
        table = dict(self.field_map)
        if source_hint and source_hint in self.source_overrides:
            table.update(self.source_overrides[source_hint])
        return table

    @staticmethod
    def _pick(raw: Dict[str, Any], aliases: Tuple[str, ...]) -> Any:
        """First alias whose value is not None/empty string"""
        for name in aliases:
            value = raw.get(name)
            if value is not None and value != "":
                return value
        return None

    def _parse_participant(self, value: Any) -> Participant:
        if isinstance(value, str):
            return Participant(name=self._parse_text(value))
        if not isinstance(value, dict):
            return Participant()

        def pick(field: str) -> Any:
            return self._pick(value, PARTICIPANT_FIELD_MAP[field])

        return Participant(
            id=self._parse_identifier(pick("id")),
            name=self._parse_text(pick("name")),
            abbreviation=self._parse_text(pick("abbreviation")),
            runs=self._parse_int(pick("runs")),
            hits=self._parse_int(pick("hits")),
            errors=self._parse_int(pick("errors")),
            pitcher=self._parse_pitcher(pick("pitcher")),
        )

    def _parse_pitcher(self, value: Any) -> Optional[PitcherInfo]:
        if isinstance(value, str):
            name = self._parse_text(value)
            return PitcherInfo(name=name) if name else None
        if not isinstance(value, dict):
            return None

        def pick(field: str) -> Any:
            return self._pick(value, PITCHER_FIELD_MAP[field])

        pitcher = PitcherInfo(
            id=self._parse_identifier(pick("id")),
            name=self._parse_text(pick("name")),
            wins=self._parse_int(pick("wins")),
            losses=self._parse_int(pick("losses")),
            era=self._parse_float(pick("era")),
        )
        if pitcher.id is None and pitcher.name is None:
            return None
        return pitcher

    def _parse_innings(self, value: Any) -> List[InningScore]:
        if not isinstance(value, list):
            return []
        innings = []
        for position, item in enumerate(value, start=1):
            if isinstance(item, dict):
                innings.append(InningScore(
                    number=self._parse_int(self._pick(item, ("number", "inning", "num"))) or position,
                    away=self._parse_int(self._pick(item, ("away", "awayRuns", "visitante"))),
                    home=self._parse_int(self._pick(item, ("home", "homeRuns", "local"))),
                ))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                innings.append(InningScore(
                    number=position,
                    away=self._parse_int(item[0]),
                    home=self._parse_int(item[1]),
                ))
        return innings

    def _parse_plays(self, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        plays = []
        for item in value:
            if isinstance(item, str):
                text = self._parse_text(item)
                if text:
                    plays.append(text)
            elif isinstance(item, dict) and item:
                plays.append(item)
        return plays

    def _apply_markup_fallback(self, record: CanonicalRecord, markup: str):
        """Fill missing participant id/name from the positions of hyperlinked team cells."""
        away, home = participants_from_row(markup)
        for side, found in (("away", away), ("home", home)):
            if not found:
                continue
            participant = getattr(record, side)
            if participant.id is None:
                participant.id = found.get("id")
            if participant.name is None:
                participant.name = found.get("name")

    @staticmethod
    def _parse_identifier(value: Any) -> Optional[Identifier]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            return int(text) if text.isascii() and text.isdigit() else text
        return None

    @staticmethod
    def _parse_status(value: Any) -> Optional[GameStatus]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            text = value.strip().lower().replace(" ", "_").replace("-", "_")
            if text in STATUS_NAMES:
                return STATUS_NAMES[text]
            value = text
        try:
            return GameStatus(int(value))
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _parse_text(value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list, bool)):
            return None
        text = " ".join(str(value).split())
        return text or None

    @staticmethod
    def _parse_float(value: Any) -> Optional[float]:
        """Safely parse float value"""
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            return float(str(value).replace(",", "").strip())
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _parse_int(value: Any) -> Optional[int]:
        """Safely parse int value"""
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            return int(float(str(value).replace(",", "").strip()))  # Handle "10.0" strings
        except (ValueError, TypeError, OverflowError):
            return None

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        """Safely parse datetime value (ISO text, epoch seconds/ms, /Date(ms)/, dd/mm/yyyy)"""
        if value is None or value == "" or isinstance(value, bool):
            return None
        if isinstance(value, datetime):
            return value
        try:
            if isinstance(value, (int, float)):
                seconds = value / 1000 if abs(value) > 1e11 else value
                return datetime.fromtimestamp(seconds, tz=timezone.utc)
            text = str(value).strip()
            match = _MS_DATE_RE.search(text)
            if match:
                return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return datetime.strptime(text, "%d/%m/%Y")
        except (ValueError, TypeError, OverflowError, OSError):
            return None


_default_normalizer = GameNormalizer()


def normalize(raw: Any, source_hint: Optional[str] = None) -> CanonicalRecord:
    """Module-level shortcut using the default alias tables."""
    return _default_normalizer.normalize(raw, source_hint)
