"""
Pydantic schemas for data validation and serialization.

Schemas:
    canonical: Canonical game record (participants, innings, plays, lines)
    player: Player profile records from the stats site
    pipeline: Batch run summaries and export artifacts (manifest, index, root pointer)

Usage:
    from schemas.canonical import CanonicalRecord, GameStatus
    from schemas.pipeline import RunSummary, Manifest

Example:
    record = CanonicalRecord(identity=101, status=GameStatus.LIVE)
    record.home.runs = 3
    assert record.model_dump(mode="json")["status"] == 2
"""

__all__ = [
    "CanonicalRecord",
    "GameStatus",
    "Participant",
    "PitcherInfo",
    "InningScore",
    "PlayerProfile",
    "PlayerRecord",
    "RunSummary",
    "ChunkDescriptor",
    "Manifest",
    "IndexItem",
    "ExportIndex",
    "RootPointer",
]
