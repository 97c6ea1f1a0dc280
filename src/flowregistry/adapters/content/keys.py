"""Storage key derivation shared by the content providers.

Segments are percent-encoded without case folding, so distinct ids and versions
always map to distinct keys and every key decodes back to its value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final
from urllib.parse import quote

from flowregistry.domain.errors import PersistenceError

if TYPE_CHECKING:
    from flowregistry.domain.ports import ContentVersion

_SAFE_CHARACTERS: Final = "-_."


def sanitize(value: ContentVersion) -> str:
    """Percent-encode ``value`` into a single path segment.

    A leading ``.`` is encoded too, which rules out ``.``/``..`` segments and
    hidden file names.
    """

    raw = str(value)
    if not raw:
        raise PersistenceError(f"Cannot derive a storage key from {value!r}")
    encoded = quote(raw, safe=_SAFE_CHARACTERS)
    if encoded.startswith("."):
        return "%2E" + encoded[1:]
    return encoded


def content_segments(entity_id: str, version: ContentVersion, suffix: str) -> tuple[str, str, str]:
    """Return ``(entity dir, version dir, file name)`` for one stored blob."""

    entity = sanitize(entity_id)
    revision = sanitize(version)
    return entity, revision, f"{entity}-{revision}{suffix}"
