"""Current process-group codec, data model version 2.

Payload layout: a UTF-8 JSON document ``{"header": {"dataModelVersion": 2},
"content": {...}}`` with camelCase keys. Unknown keys are ignored on read.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from flowregistry.domain.errors import SerializationError

from .schema import HeaderEnvelope, ProcessGroupDocument, SnapshotHeader
from .translator import from_process_group, to_process_group

if TYPE_CHECKING:
    from flowregistry.domain.model import VersionedProcessGroup

log = getLogger(__name__)


class JsonProcessGroupCodec:
    version: Final = 2

    def read_data_model_version(self, data: bytes) -> int | None:
        try:
            envelope = HeaderEnvelope.model_validate_json(data)
        except ValidationError:
            return None
        return envelope.header.data_model_version

    def encode(self, obj: VersionedProcessGroup) -> bytes:
        document = ProcessGroupDocument(
            header=SnapshotHeader(data_model_version=self.version),
            content=from_process_group(obj),
        )
        return document.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    def decode(self, data: bytes) -> VersionedProcessGroup:
        try:
            document = ProcessGroupDocument.model_validate_json(data)
        except ValidationError as exc:
            raise SerializationError(
                f"Malformed version {self.version} snapshot document: "
                f"{exc.error_count()} validation error(s)"
            ) from exc
        if document.header.data_model_version != self.version:
            raise SerializationError(
                f"Expected a data model version {self.version} payload, "
                f"found {document.header.data_model_version}"
            )
        log.debug("Decoded process group %s", document.content.identifier)
        return to_process_group(document.content)
