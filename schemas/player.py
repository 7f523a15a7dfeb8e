"""
Pydantic schemas for player profile records scraped from the stats site
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class PlayerProfile(BaseModel):
    """Labelled profile block from a player detail page"""
    name: Optional[str] = None
    nationality: Optional[str] = None
    debut: Optional[str] = None
    team: Optional[str] = None
    birth_date: Optional[str] = None
    weight: Optional[str] = None
    positions: Optional[str] = None
    birth_place: Optional[str] = None
    height: Optional[str] = None
    bats_throws: Optional[str] = None


class PlayerRecord(BaseModel):
    """Everything persisted for one player id"""
    player_id: int
    name: Optional[str] = None
    profile: PlayerProfile = Field(default_factory=PlayerProfile)
    tables: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    seasons: Dict[str, Dict[str, List[Dict[str, Any]]]] = Field(default_factory=dict)
    source: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.profile.name or str(self.player_id)
