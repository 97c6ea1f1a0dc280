"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class BucketItemType(StrEnum):
    FLOW = "flow"
    BUNDLE = "bundle"


class BundleType(StrEnum):
    NIFI_NAR = "nifi-nar"
    MINIFI_CPP = "minifi-cpp"

    @property
    def file_extension(self) -> str:
        return ".nar" if self is BundleType.NIFI_NAR else ".cpp"


class PortType(StrEnum):
    INPUT_PORT = "INPUT_PORT"
    OUTPUT_PORT = "OUTPUT_PORT"
