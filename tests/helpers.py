"""
Test doubles shared by unit and integration tests
"""

import json
from typing import Dict, List, Optional, Union
from core.exceptions import StorageError, TransportError
from core.storage import BlobStore


class FakeFetcher:
    """In-memory stand-in for HttpFetcher: url -> text, or url -> exception to raise."""

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None):
        self.pages = dict(pages or {})
        self.calls: List[str] = []

    async def fetch(self, url: str, headers=None) -> str:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise TransportError(f"HTTP 404 for {url}", status_code=404, context={"url": url})
        if isinstance(page, Exception):
            raise page
        return page


def viewmodel_page(first_argument, *rest) -> str:
    """Wrap values in a ``new ViewModel(...)`` call inside a script tag."""
    args = ", ".join(json.dumps(value) for value in (first_argument,) + rest)
    return (
        "<html><head><title>LIDOM</title></head><body>"
        "<div id='app'></div>"
        f"<script>var vm = new ViewModel({args});\nko.applyBindings(vm);</script>"
        "</body></html>"
    )


class MemoryBlobStore(BlobStore):
    """Dict-backed store for tests that would otherwise write thousands of files"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    def write_blob(self, key: str, data: bytes) -> None:
        self.blobs[key] = bytes(data)

    def read_blob(self, key: str) -> bytes:
        if key not in self.blobs:
            raise StorageError(f"Failed to read {key}", context={"key": key, "operation": "read"})
        return self.blobs[key]

    def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self.blobs if key.startswith(prefix))

    def exists(self, key: str) -> bool:
        return key in self.blobs

    def delete_blob(self, key: str) -> None:
        self.blobs.pop(key, None)
