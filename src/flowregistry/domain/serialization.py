"""Multi-version serialization of persisted payloads.

Writers always emit the current data model version; readers dispatch on the
version stamped in the payload header, so every registered historical format
stays readable. Decoding never upgrades: it returns the object model the
payload was written with.

How to change safely:
    - Add a codec under a new, higher version number and make it current.
    - Never modify or drop a registered codec once data has been written with it.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from flowregistry.domain.errors import SerializationError, UnsupportedDataModelVersionError

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)


@runtime_checkable
class VersionedCodec[T](Protocol):
    """Encoder/decoder for exactly one data model version."""

    @property
    def version(self) -> int: ...

    def encode(self, obj: T) -> bytes:
        """Encode ``obj`` with this codec's version stamped into the header."""
        ...

    def decode(self, data: bytes) -> T: ...

    def read_data_model_version(self, data: bytes) -> int | None:
        """Return the stamped version if ``data`` has this codec's header layout, else ``None``."""
        ...


class MultiVersionSerializer[T]:
    """Registry of codecs keyed by data model version."""

    def __init__(
        self,
        codecs: Iterable[VersionedCodec[T]] = (),
        *,
        current_version: int | None = None,
    ) -> None:
        self._codecs: dict[int, VersionedCodec[T]] = {}
        self._current_version: int | None = None
        for codec in codecs:
            self.register(codec)
        if current_version is not None:
            self.current_version = current_version
        elif self._codecs:
            self.current_version = max(self._codecs)

    def register(self, codec: VersionedCodec[T], *, make_current: bool = False) -> None:
        version = codec.version
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise ValueError(f"Data model versions must be positive integers, got {version!r}")
        if version in self._codecs:
            raise ValueError(f"A codec is already registered for data model version {version}")
        self._codecs[version] = codec
        if make_current:
            self.current_version = version

    @property
    def versions(self) -> tuple[int, ...]:
        return tuple(sorted(self._codecs))

    @property
    def current_version(self) -> int:
        if self._current_version is None:
            raise SerializationError("No codec has been registered")
        return self._current_version

    @current_version.setter
    def current_version(self, version: int) -> None:
        if version not in self._codecs:
            raise ValueError(f"No codec registered for data model version {version}")
        if self._current_version is not None and version < self._current_version:
            raise ValueError(
                f"Current data model version cannot move backwards "
                f"({self._current_version} -> {version})"
            )
        self._current_version = version

    def codec_for(self, version: int) -> VersionedCodec[T]:
        codec = self._codecs.get(version)
        if codec is None:
            raise UnsupportedDataModelVersionError(version, self.versions)
        return codec

    def serialize(self, obj: T) -> bytes:
        codec = self._codecs[self.current_version]
        try:
            return codec.encode(obj)
        except SerializationError:
            raise
        except (TypeError, ValueError, AttributeError) as exc:
            raise SerializationError(
                f"Unable to serialize object with data model version {codec.version}: {exc}"
            ) from exc

    def read_data_model_version(self, data: bytes) -> int:
        """Return the version stamped in ``data`` without checking it is registered."""

        if not data:
            raise SerializationError("Cannot deserialize empty content")
        for version in sorted(self._codecs, reverse=True):
            stamped = self._codecs[version].read_data_model_version(data)
            if stamped is not None:
                return stamped
            log.debug("Codec for version %s did not recognise the payload header", version)
        raise SerializationError("Unable to find a serializer compatible with the input.")

    def deserialize(self, data: bytes) -> T:
        stamped = self.read_data_model_version(data)
        codec = self.codec_for(stamped)
        try:
            return codec.decode(data)
        except SerializationError:
            raise
        except (TypeError, ValueError, KeyError) as exc:
            raise SerializationError(
                f"Unable to deserialize content with data model version {stamped}: {exc}"
            ) from exc
