"""
Pydantic schemas for run summaries and export artifacts
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from schemas.canonical import Identifier


class RunSummary(BaseModel):
    """Counts reported at the end of one batch invocation"""
    source_name: str
    total: int = 0
    shard_size: int = 0
    already_done: int = 0
    pending: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_ids: List[Identifier] = Field(default_factory=list)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "success"
        if self.succeeded == 0:
            return "failed"
        return "partial_success"


class ChunkDescriptor(BaseModel):
    file: str
    size: int
    count: int
    first_id: Identifier
    last_id: Identifier


class Manifest(BaseModel):
    generated_at: datetime
    chunk_target_bytes: int
    total_chunks: int
    total_records: int
    chunks: List[ChunkDescriptor] = Field(default_factory=list)


class IndexItem(BaseModel):
    id: Identifier
    name: Optional[str] = None
    path: str
    chunk: Optional[str] = None


class ExportIndex(BaseModel):
    generated_at: datetime
    total: int
    items: List[IndexItem] = Field(default_factory=list)


class RootPointer(BaseModel):
    """Small fixed-shape entry point; size does not grow with the corpus"""
    generated_at: datetime
    total_records: int
    index_path: str
    manifest_path: str
