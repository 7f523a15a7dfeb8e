"""
Identity keys, richness scoring and field-level merge of game observations.

Several pages describe the same game with different freshness: the home
page's "today" list may show a game live while "nearest games" still shows
it as not started, and only the detail page carries innings. ``merge``
picks the more authoritative observation as base and backfills its gaps
from the other; ``dedupe`` folds every observation of one identity into a
single record.
"""

from typing import Any, Dict, Iterable, List, Optional
from schemas.canonical import CanonicalRecord, GameStatus, Participant, PitcherInfo
from ingestion.ordering import natural_key
import copy
import json
import logging

logger = logging.getLogger(__name__)

# Each tier is worth more than every bonus combined (7), so status stays authoritative.
STATUS_TIER_STEP = 8
STATUS_TIERS: Dict[GameStatus, int] = {
    GameStatus.LIVE: 5,
    GameStatus.FINAL: 4,
    GameStatus.DELAYED: 3,
    GameStatus.SUSPENDED: 3,
    GameStatus.PREVIEW: 2,
    GameStatus.NOT_STARTED: 1,
    GameStatus.POSTPONED: 1,
}

COLLECTION_FIELDS = ("innings", "plays", "betting_lines")
PARTICIPANT_FIELDS = ("home", "away")
TOP_LEVEL_FIELDS = tuple(
    name for name in CanonicalRecord.model_fields
    if name not in COLLECTION_FIELDS + PARTICIPANT_FIELDS
)
PARTICIPANT_SCALARS = tuple(name for name in Participant.model_fields if name != "pitcher")


def identity_key(record: CanonicalRecord) -> str:
    """Primary id when present and truthy, else day|home id|away id."""
    if record.identity:
        return str(record.identity)
    return record.fallback_key


def richness(record: CanonicalRecord) -> int:
    score = STATUS_TIERS.get(record.status, 0) * STATUS_TIER_STEP

    home, away = record.home, record.away
    if home.runs is not None and away.runs is not None:
        score += 1
    if home.hits is not None and away.hits is not None:
        score += 1
    if home.errors is not None and away.errors is not None:
        score += 1
    if record.innings:
        score += 1
    if record.last_play:
        score += 1
    if record.round_text:
        score += 1
    if record.current_inning is not None:
        score += 1
    return score


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _backfill(target, source, fields: Iterable[str]):
    for field in fields:
        if _is_empty(getattr(target, field)) and not _is_empty(getattr(source, field)):
            setattr(target, field, copy.deepcopy(getattr(source, field)))


def _merge_pitcher(base: Optional[PitcherInfo], other: Optional[PitcherInfo]) -> Optional[PitcherInfo]:
    if base is None:
        return other
    if other is not None:
        _backfill(base, other, PitcherInfo.model_fields)
    return base


def merge(a: CanonicalRecord, b: CanonicalRecord) -> CanonicalRecord:
    """
    Merge two observations of the same game.

    The strictly richer operand is the base (``a`` on ties). Empty fields on
    the base, including nested participant fields, are backfilled from the
    other operand; populated base fields are never overwritten. Collections
    are taken whole from the base when non-empty, else from the other side.
    Neither operand is mutated.

    Conflicting populated values within one status tier (DELAYED vs
    SUSPENDED, different run counts) resolve to whichever side ends up as
    the base, so a raw fold of such observations depends on its order. Use
    ``reconcile`` to fold a group deterministically.
    """
    if richness(b) > richness(a):
        base, other = b, a
    else:
        base, other = a, b

    result = base.model_copy(deep=True)
    _backfill(result, other, TOP_LEVEL_FIELDS)
    _backfill(result, other, COLLECTION_FIELDS)

    for side in PARTICIPANT_FIELDS:
        target = getattr(result, side)
        source = getattr(other, side)
        _backfill(target, source, PARTICIPANT_SCALARS)
        target.pitcher = _merge_pitcher(target.pitcher, copy.deepcopy(source.pitcher))

    return result


def _fingerprint(record: CanonicalRecord) -> str:
    return json.dumps(record.model_dump(mode="json"), sort_keys=True, ensure_ascii=False)


def reconcile(observations: List[CanonicalRecord]) -> CanonicalRecord:
    """
    Fold every observation of one identity into a single record.

    Observations are folded richest first, ties broken by content, so the
    result does not depend on the order the pages were read in.
    """
    if not observations:
        raise ValueError("reconcile() needs at least one observation")
    ordered = sorted(observations, key=lambda r: (-richness(r), _fingerprint(r)))
    merged = ordered[0].model_copy(deep=True)
    for record in ordered[1:]:
        merged = merge(merged, record)
    return merged


def dedupe(records: Iterable[CanonicalRecord]) -> List[CanonicalRecord]:
    """One reconciled record per distinct identity key, ordered by key."""
    groups: Dict[str, List[CanonicalRecord]] = {}
    for record in records:
        groups.setdefault(identity_key(record), []).append(record)

    merged = [reconcile(groups[key]) for key in sorted(groups, key=natural_key)]
    logger.debug(f"Deduplicated observations into {len(merged)} record(s)")
    return merged
