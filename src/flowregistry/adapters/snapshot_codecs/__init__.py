"""Codecs for persisted flow snapshot contents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from flowregistry.domain.serialization import MultiVersionSerializer

from .json_codec import JsonProcessGroupCodec
from .xml_codec import MAGIC_HEADER, XmlProcessGroupCodec

if TYPE_CHECKING:
    from flowregistry.domain.model import VersionedProcessGroup

CURRENT_DATA_MODEL_VERSION: Final = JsonProcessGroupCodec.version


def build_process_group_serializer() -> MultiVersionSerializer[VersionedProcessGroup]:
    """Serializer that writes version 2 and still reads legacy version 1 snapshots."""

    return MultiVersionSerializer(
        (XmlProcessGroupCodec(), JsonProcessGroupCodec()),
        current_version=CURRENT_DATA_MODEL_VERSION,
    )


__all__ = [
    "CURRENT_DATA_MODEL_VERSION",
    "MAGIC_HEADER",
    "JsonProcessGroupCodec",
    "XmlProcessGroupCodec",
    "build_process_group_serializer",
]
