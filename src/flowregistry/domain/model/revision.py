"""Optimistic-concurrency tokens and the records describing a committed mutation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Revision:
    """Optimistic-lock token guarding one revisable entity.

    ``version`` only ever moves forward, one step per successful mutation. It is
    unrelated to the sequential version number of a flow snapshot.
    """

    entity_id: str
    version: int = 0
    client_id: str | None = None

    def __post_init__(self) -> None:
        if not self.entity_id or not self.entity_id.strip():
            raise ValueError("Revision requires an entity id")
        if self.version < 0:
            raise ValueError(f"Revision version must be non-negative, got {self.version}")

    def increment(self, client_id: str | None = None) -> Revision:
        return Revision(entity_id=self.entity_id, version=self.version + 1, client_id=client_id)

    def __str__(self) -> str:
        return f"[{self.version}, {self.client_id}, {self.entity_id}]"


@dataclass(frozen=True, slots=True)
class EntityModification:
    """Who last changed an entity and the revision that change produced."""

    revision: Revision
    last_modifier: str

    def __str__(self) -> str:
        return f"Last Modified by '{self.last_modifier}' with Revision {self.revision}"


@dataclass(frozen=True, slots=True)
class RevisionUpdate[T]:
    """Result of a revision-checked mutation."""

    entity: T
    modification: EntityModification

    @property
    def revision(self) -> Revision:
        return self.modification.revision
