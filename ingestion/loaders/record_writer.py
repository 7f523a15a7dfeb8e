"""
Per-identity record persistence in the blob store
"""

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple
from pydantic import BaseModel
from core.storage import BlobStore
from ingestion.ordering import natural_key
from urllib.parse import quote, unquote
import json
import logging

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


def serialize_record(record: Any) -> bytes:
    """Stable JSON bytes for one record (sorted keys, UTF-8, no indentation)."""
    payload = record.model_dump(mode="json") if isinstance(record, BaseModel) else record
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class RecordWriter:
    """
    Stores one blob per identity at ``<prefix>/<identity>.json``.

    Each write is atomic, so a run interrupted at any point leaves only
    complete records behind and a later run can resume from them.
    """

    def __init__(self, store: BlobStore, prefix: str):
        self.store = store
        self.prefix = prefix.strip("/")

    def key_for(self, identity: Any) -> str:
        # one flat key per identity; "/" and "%" in text ids are escaped
        return f"{self.prefix}/{quote(str(identity), safe='')}{RECORD_SUFFIX}"

    def identity_from_key(self, key: str) -> Optional[str]:
        head = f"{self.prefix}/"
        if not key.startswith(head) or not key.endswith(RECORD_SUFFIX):
            return None
        name = key[len(head):-len(RECORD_SUFFIX)]
        if not name or "/" in name:
            return None
        return unquote(name)

    def write(self, identity: Any, record: Any) -> str:
        key = self.key_for(identity)
        self.store.write_blob(key, serialize_record(record))
        logger.debug(f"Persisted {key}")
        return key

    def processed_ids(self) -> Set[str]:
        """String form of every identity already persisted."""
        ids = set()
        for key in self.store.list_keys(f"{self.prefix}/"):
            identity = self.identity_from_key(key)
            if identity is not None:
                ids.add(identity)
        return ids

    def read(self, identity: Any) -> Dict[str, Any]:
        return json.loads(self.store.read_blob(self.key_for(identity)).decode("utf-8"))

    def iter_records(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """(identity, record) for every persisted record, ascending by identity."""
        identities: List[str] = sorted(self.processed_ids(), key=natural_key)
        for identity in identities:
            yield identity, self.read(identity)
