"""Content provider keeping blobs in process memory."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from flowregistry.domain.errors import ContentNotFoundError

if TYPE_CHECKING:
    from flowregistry.domain.ports import ContentVersion

log = getLogger(__name__)


class InMemoryContentProvider:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[tuple[str, str], bytes] = {}

    def save_content(self, entity_id: str, version: ContentVersion, content: bytes) -> None:
        with self._lock:
            self._blobs[(entity_id, str(version))] = bytes(content)

    def get_content(self, entity_id: str, version: ContentVersion) -> bytes:
        with self._lock:
            content = self._blobs.get((entity_id, str(version)))
        if content is None:
            raise ContentNotFoundError(f"No content exists for {entity_id} version {version}")
        return content

    def delete_content(self, entity_id: str, version: ContentVersion) -> None:
        with self._lock:
            removed = self._blobs.pop((entity_id, str(version)), None)
        if removed is None:
            log.warning("Content does not exist for %s version %s", entity_id, version)

    def delete_all_content(self, entity_id: str) -> None:
        with self._lock:
            for key in [key for key in self._blobs if key[0] == entity_id]:
                del self._blobs[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
