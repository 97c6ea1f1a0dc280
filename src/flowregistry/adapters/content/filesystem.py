"""Content provider storing each blob as a file under a root directory.

Layout: ``<root>/<entity>/<version>/<entity>-<version><suffix>`` with every
segment percent-encoded. Empty version and entity directories are removed on
delete.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from flowregistry.domain.errors import ContentNotFoundError, PersistenceError

from .keys import content_segments, sanitize

if TYPE_CHECKING:
    from flowregistry.domain.ports import ContentVersion

log = getLogger(__name__)


class FilesystemContentProvider:
    def __init__(self, root: Path, *, suffix: str = ".bin") -> None:
        self._root = root.expanduser()
        self._suffix = suffix
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def content_path(self, entity_id: str, version: ContentVersion) -> Path:
        entity, revision, filename = content_segments(entity_id, version, self._suffix)
        return self._root / entity / revision / filename

    def save_content(self, entity_id: str, version: ContentVersion, content: bytes) -> None:
        path = self.content_path(entity_id, version)
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    dir=path.parent, prefix=".tmp-", delete=False
                ) as handle:
                    handle.write(content)
                os.replace(handle.name, path)
            except OSError as exc:
                raise PersistenceError(f"Unable to write content to {path}: {exc}") from exc
        log.debug("Saved %d bytes to %s", len(content), path)

    def get_content(self, entity_id: str, version: ContentVersion) -> bytes:
        path = self.content_path(entity_id, version)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise ContentNotFoundError(
                f"No content exists for {entity_id} version {version} at {path}"
            ) from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read content from {path}: {exc}") from exc

    def delete_content(self, entity_id: str, version: ContentVersion) -> None:
        path = self.content_path(entity_id, version)
        with self._lock:
            if not path.exists():
                log.warning("Content does not exist at %s", path)
                return
            try:
                path.unlink()
            except OSError as exc:
                raise PersistenceError(f"Unable to delete content at {path}: {exc}") from exc
            self._prune(path.parent)

    def delete_all_content(self, entity_id: str) -> None:
        entity_dir = self._root / sanitize(entity_id)
        with self._lock:
            if not entity_dir.exists():
                log.warning("Content directory does not exist at %s", entity_dir)
                return
            try:
                shutil.rmtree(entity_dir)
            except OSError as exc:
                raise PersistenceError(
                    f"Unable to delete content directory {entity_dir}: {exc}"
                ) from exc

    def _prune(self, directory: Path) -> None:
        """Remove ``directory`` and its parents while they are empty, stopping at the root."""

        while directory != self._root and self._root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # not empty, or already gone
                return
            directory = directory.parent
