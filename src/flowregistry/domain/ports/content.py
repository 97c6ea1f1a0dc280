"""Port for durable, byte-oriented storage of snapshot and bundle content."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

type ContentVersion = int | str


@runtime_checkable
class ContentProvider(Protocol):
    """Blob store keyed by ``(entity_id, version)``.

    Failures surface as ``PersistenceError``; reading a missing blob raises
    ``ContentNotFoundError``; deleting a missing blob is a no-op.
    """

    def save_content(self, entity_id: str, version: ContentVersion, content: bytes) -> None: ...

    def get_content(self, entity_id: str, version: ContentVersion) -> bytes: ...

    def delete_content(self, entity_id: str, version: ContentVersion) -> None: ...

    def delete_all_content(self, entity_id: str) -> None: ...
