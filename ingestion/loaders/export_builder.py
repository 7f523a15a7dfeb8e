"""
Chunked export of the per-identity record store.

Rebuilds three derived artifacts from scratch on every run:

    export/<prefix>/chunk-0001.json ...   JSON arrays of records, each within the byte budget
    export/<prefix>/manifest.json         per-chunk file, size, count, first/last id
    export/<prefix>/index.json            per-record id, display name, record path, chunk
    <prefix>.json                         small root pointer to the index and manifest

Records are read in ascending identity order and serialized the same way
every time, so re-running against an unchanged store reproduces the chunk
files byte for byte.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from core.config import settings
from core.exceptions import ExportError, StorageError
from core.storage import BlobStore
from ingestion.loaders.record_writer import RecordWriter, serialize_record
from schemas.pipeline import (
    ChunkDescriptor,
    ExportIndex,
    IndexItem,
    Manifest,
    RootPointer,
)
import json
import logging

logger = logging.getLogger(__name__)

ARRAY_OVERHEAD = 2  # "[" and "]"
SEPARATOR = b","


def default_display_name(record: Dict[str, Any]) -> Optional[str]:
    """``name`` when present, else "AWAY @ HOME" for game records."""
    name = record.get("name")
    if name:
        return str(name)
    home, away = record.get("home"), record.get("away")
    if isinstance(home, dict) and isinstance(away, dict):
        away_name = away.get("abbreviation") or away.get("name")
        home_name = home.get("abbreviation") or home.get("name")
        if away_name or home_name:
            return f"{away_name or '?'} @ {home_name or '?'}"
    return None


def _identifier(identity: str) -> Any:
    return int(identity) if identity.isascii() and identity.isdigit() else identity


@dataclass
class _OpenChunk:
    parts: List[bytes] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)
    size: int = ARRAY_OVERHEAD

    def size_with(self, part: bytes) -> int:
        return self.size + len(part) + (len(SEPARATOR) if self.parts else 0)

    def add(self, identity: str, part: bytes):
        self.size = self.size_with(part)
        self.parts.append(part)
        self.ids.append(identity)

    def encode(self) -> bytes:
        return b"[" + SEPARATOR.join(self.parts) + b"]"


@dataclass
class ExportResult:
    root_key: str
    manifest: Manifest
    index: ExportIndex
    chunk_keys: List[str]
    removed_keys: List[str] = field(default_factory=list)


class ExportBuilder:
    """
    Rebuild index, chunks and manifest for one record prefix.

    Must only run after every batch worker has finished; it is the single
    writer of the export files.
    """

    def __init__(
        self,
        store: BlobStore,
        prefix: str,
        chunk_target_bytes: Optional[int] = None,
        display_name: Callable[[Dict[str, Any]], Optional[str]] = default_display_name
    ):
        self.store = store
        self.writer = RecordWriter(store, prefix)
        self.prefix = self.writer.prefix
        self.chunk_target_bytes = chunk_target_bytes or settings.CHUNK_TARGET_BYTES
        self.display_name = display_name
        if self.chunk_target_bytes <= ARRAY_OVERHEAD:
            raise ExportError(
                "Chunk target is too small to hold any record",
                context={"chunk_target_bytes": self.chunk_target_bytes}
            )

    @property
    def export_dir(self) -> str:
        return f"export/{self.prefix}"

    @property
    def root_key(self) -> str:
        return f"{self.prefix}.json"

    @property
    def manifest_key(self) -> str:
        return f"{self.export_dir}/manifest.json"

    @property
    def index_key(self) -> str:
        return f"{self.export_dir}/index.json"

    def chunk_key(self, number: int) -> str:
        return f"{self.export_dir}/chunk-{number:04d}.json"

    def _write_json(self, key: str, payload: Any):
        self.store.write_blob(key, json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8"))

    def _flush(self, chunk: _OpenChunk, chunks: List[ChunkDescriptor]) -> str:
        key = self.chunk_key(len(chunks) + 1)
        data = chunk.encode()
        if len(data) != chunk.size:
            raise ExportError(
                "Chunk size accounting mismatch",
                context={"key": key, "expected": chunk.size, "actual": len(data)}
            )
        self.store.write_blob(key, data)
        chunks.append(ChunkDescriptor(
            file=key,
            size=len(data),
            count=len(chunk.ids),
            first_id=_identifier(chunk.ids[0]),
            last_id=_identifier(chunk.ids[-1]),
        ))
        if len(data) > self.chunk_target_bytes:
            logger.warning(f"{key} holds a single record of {len(data)} bytes (over budget)")
        return key

    def export(self) -> ExportResult:
        generated_at = datetime.now(timezone.utc)
        chunks: List[ChunkDescriptor] = []
        items: List[IndexItem] = []
        current = _OpenChunk()

        try:
            for identity, record in self.writer.iter_records():
                part = serialize_record(record)
                if current.parts and current.size_with(part) > self.chunk_target_bytes:
                    self._flush(current, chunks)
                    current = _OpenChunk()
                current.add(identity, part)
                items.append(IndexItem(
                    id=_identifier(identity),
                    name=self.display_name(record),
                    path=self.writer.key_for(identity),
                    chunk=self.chunk_key(len(chunks) + 1),
                ))
            if current.parts:
                self._flush(current, chunks)
        except (StorageError, ValueError) as e:
            raise ExportError(
                f"Failed to export {self.prefix}",
                context={"prefix": self.prefix, "chunks_written": len(chunks)},
                original_exception=e
            )

        chunk_keys = [chunk.file for chunk in chunks]
        removed = self._remove_stale_chunks(set(chunk_keys))

        manifest = Manifest(
            generated_at=generated_at,
            chunk_target_bytes=self.chunk_target_bytes,
            total_chunks=len(chunks),
            total_records=len(items),
            chunks=chunks,
        )
        index = ExportIndex(generated_at=generated_at, total=len(items), items=items)
        pointer = RootPointer(
            generated_at=generated_at,
            total_records=len(items),
            index_path=self.index_key,
            manifest_path=self.manifest_key,
        )

        self._write_json(self.manifest_key, manifest.model_dump(mode="json"))
        self._write_json(self.index_key, index.model_dump(mode="json"))
        self._write_json(self.root_key, pointer.model_dump(mode="json"))

        if not items:
            logger.warning(f"No {self.prefix} records to export")
        logger.info(
            f"Exported {len(items)} {self.prefix} record(s) into {len(chunks)} chunk(s) "
            f"(target {self.chunk_target_bytes} bytes)"
        )
        return ExportResult(
            root_key=self.root_key,
            manifest=manifest,
            index=index,
            chunk_keys=chunk_keys,
            removed_keys=removed,
        )

    def _remove_stale_chunks(self, keep: set) -> List[str]:
        removed = []
        for key in self.store.list_keys(f"{self.export_dir}/chunk-"):
            if key not in keep:
                self.store.delete_blob(key)
                removed.append(key)
        if removed:
            logger.info(f"Removed {len(removed)} stale chunk file(s)")
        return removed
