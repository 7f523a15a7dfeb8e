"""
Pydantic schemas for canonical (reconciled) game records
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
import enum

Identifier = Union[int, str]


class GameStatus(enum.IntEnum):
    """Game status codes as published by the league site"""
    NOT_STARTED = 1
    LIVE = 2
    PREVIEW = 3
    DELAYED = 4
    SUSPENDED = 5
    FINAL = 6
    POSTPONED = 7


class PitcherInfo(BaseModel):
    """Probable, current or decision pitcher attached to one side"""
    id: Optional[Identifier] = None
    name: Optional[str] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    era: Optional[float] = None


class Participant(BaseModel):
    """One side (home or away) of a game"""
    id: Optional[Identifier] = None
    name: Optional[str] = None
    abbreviation: Optional[str] = None
    runs: Optional[int] = None
    hits: Optional[int] = None
    errors: Optional[int] = None
    pitcher: Optional[PitcherInfo] = None


class InningScore(BaseModel):
    """Runs scored by each side in one inning"""
    number: Optional[int] = None
    away: Optional[int] = None
    home: Optional[int] = None


class CanonicalRecord(BaseModel):
    """
    Reconciled view of one logical game.

    ``identity`` is globally unique when present; ``fallback_key`` stands in
    for it otherwise. Detail blocks (innings, plays, betting_lines) are only
    populated when a detail page was fetched.
    """

    identity: Optional[Identifier] = None
    status: Optional[GameStatus] = None
    date: Optional[datetime] = None

    round_text: Optional[str] = None
    current_inning: Optional[int] = None
    last_play: Optional[str] = None
    at_bat: Optional[str] = None
    batting_team: Optional[str] = None
    balls: Optional[int] = None
    strikes: Optional[int] = None
    outs: Optional[int] = None
    bases: Optional[int] = None
    venue: Optional[str] = None

    home: Participant = Field(default_factory=Participant)
    away: Participant = Field(default_factory=Participant)

    innings: List[InningScore] = Field(default_factory=list)
    plays: List[Any] = Field(default_factory=list)
    betting_lines: Dict[str, Any] = Field(default_factory=dict)

    @property
    def fallback_key(self) -> str:
        """Day + both participant ids; "?" marks a missing piece."""
        day = self.date.date().isoformat() if self.date else "?"
        home_id = self.home.id if self.home.id not in (None, "") else "?"
        away_id = self.away.id if self.away.id not in (None, "") else "?"
        return f"{day}|{home_id}|{away_id}"

    @property
    def display_name(self) -> str:
        away = self.away.abbreviation or self.away.name or "?"
        home = self.home.abbreviation or self.home.name or "?"
        return f"{away} @ {home}"
