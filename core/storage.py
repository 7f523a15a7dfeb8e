"""
Durable key -> blob storage backed by the local filesystem
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from core.config import settings
from core.exceptions import StorageError
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """
    Minimal durable store used by the pipeline.

    Keys are forward-slash separated relative paths ("games/123.json").
    Writes must be atomic: readers never observe a partially written blob.
    """

    @abstractmethod
    def write_blob(self, key: str, data: bytes) -> None:
        pass

    @abstractmethod
    def read_blob(self, key: str) -> bytes:
        pass

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        """Return every key starting with ``prefix``, sorted."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def delete_blob(self, key: str) -> None:
        pass


class LocalBlobStore(BlobStore):
    """Filesystem store: write to a temp file in the target directory, then os.replace."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        clean = key.strip("/")
        if not clean or ".." in clean.split("/"):
            raise StorageError(
                f"Invalid storage key: {key!r}",
                context={"key": key, "operation": "resolve"}
            )
        return self.root.joinpath(*clean.split("/"))

    def write_blob(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StorageError(
                f"Failed to write {key}",
                context={"key": key, "operation": "write", "bytes": len(data)},
                original_exception=e
            )
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)

    def read_blob(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(
                f"Failed to read {key}",
                context={"key": key, "operation": "read"},
                original_exception=e
            )

    def list_keys(self, prefix: str = "") -> List[str]:
        if not self.root.exists():
            return []
        keys = []
        for path in self.root.rglob("*"):
            if not path.is_file() or path.name.endswith(".tmp"):
                continue
            key = path.relative_to(self.root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete_blob(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"delete_blob: {key} already absent")
        except OSError as e:
            raise StorageError(
                f"Failed to delete {key}",
                context={"key": key, "operation": "delete"},
                original_exception=e
            )


def get_store() -> BlobStore:
    """Get the durable store configured for this process"""
    return LocalBlobStore(settings.DATA_DIR)
