"""Error taxonomy shared by the revision core, serializers and providers."""

from __future__ import annotations

from typing import Final


class RegistryError(RuntimeError):
    """Base class for every error raised by the registry core."""


class NotFoundError(RegistryError, LookupError):
    """Raised when an entity, revision, or snapshot does not exist."""


class AlreadyExistsError(RegistryError):
    """Raised when creating something whose identity is already taken."""


class ConstraintViolationError(RegistryError):
    """Raised when a mutation would break a registry invariant (names, ordering, ownership)."""


class InvalidRequestError(RegistryError, ValueError):
    """Raised when a request is malformed before any state is consulted."""


class StaleRevisionError(RegistryError):
    """Raised when the claimed revision no longer matches the stored revision.

    Always recoverable: re-read the current revision and retry.
    """

    def __init__(self, entity_id: str, claimed_version: int, current_version: int | None) -> None:
        self.entity_id = entity_id
        self.claimed_version = claimed_version
        self.current_version = current_version
        super().__init__(
            f"Revision {claimed_version} for entity {entity_id} is stale "
            f"(current revision is {current_version}); fetch the latest revision and retry"
        )


class SerializationError(RegistryError):
    """Raised for malformed payload bytes or objects that cannot be encoded."""


class UnsupportedDataModelVersionError(RegistryError):
    """Raised when a payload is stamped with a data model version nobody can read."""

    def __init__(self, version: int, supported: tuple[int, ...] = ()) -> None:
        self.version = version
        self.supported = supported
        listed = ", ".join(str(value) for value in supported) or "none"
        super().__init__(
            f"Data model version {version} is not supported (registered versions: {listed})"
        )


class PersistenceError(RegistryError):
    """Raised when a content provider fails to read or write."""


class ContentNotFoundError(PersistenceError):
    """Raised when no stored content exists for the requested key."""


_STATUS_BY_ERROR: Final[tuple[tuple[type[RegistryError], int], ...]] = (
    (StaleRevisionError, 409),
    (AlreadyExistsError, 409),
    (ConstraintViolationError, 409),
    (NotFoundError, 404),
    (InvalidRequestError, 400),
    (UnsupportedDataModelVersionError, 500),
    (SerializationError, 500),
    (PersistenceError, 500),
)


def http_status_for(error: RegistryError) -> int:
    """Return the HTTP status an API layer should answer with for ``error``."""

    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500
