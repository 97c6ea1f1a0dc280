"""Optimistic revision control for revisable registry entities.

Every mutation names the revision it believes is current. The manager compares
that claim with the stored revision and, only on a match, runs the mutation and
advances the stored version by one inside the same unit of work.

Invariants:
    - Exactly one of several concurrent claims on the same version succeeds.
    - A failed or rejected mutation never advances the stored revision.
    - Claims on different entities never wait on each other.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from flowregistry.domain.errors import (
    AlreadyExistsError,
    InvalidRequestError,
    NotFoundError,
    StaleRevisionError,
)
from flowregistry.domain.model import Revision

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from flowregistry.domain.ports.persistence import RevisionRepository
    from flowregistry.domain.ports.unit_of_work import RegistryRepositories, RegistryUnitOfWork

type Mutation[T] = Callable[[RegistryRepositories], T]

log = getLogger(__name__)


@dataclass(slots=True)
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class KeyedLocks:
    """Mutual exclusion per key; entries disappear once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class RevisionManager:
    """Owns the current revision of every revisable entity."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], RegistryUnitOfWork],
        *,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._locks = locks or KeyedLocks()

    def get_revision(self, entity_id: str) -> Revision:
        with self._unit_of_work_factory() as uow:
            revision = uow.repositories.revisions.get(entity_id)
        if revision is None:
            raise NotFoundError(f"No revision exists for entity {entity_id}")
        return revision

    def create_revision[T](self, claim: Revision, mutation: Mutation[T]) -> tuple[T, Revision]:
        """Run ``mutation`` and start tracking ``claim.entity_id`` at version 0."""

        if claim.version != 0:
            raise InvalidRequestError(
                "A revision version of 0 must be specified when creating a new entity"
            )

        with self._locks.hold(claim.entity_id), self._unit_of_work_factory() as uow:
            revisions = uow.repositories.revisions
            if revisions.get(claim.entity_id) is not None:
                raise AlreadyExistsError(f"Entity {claim.entity_id} already exists")
            result = mutation(uow.repositories)
            created = Revision(entity_id=claim.entity_id, version=0, client_id=claim.client_id)
            revisions.add(created)
            uow.commit()

        log.debug("Created revision %s", created)
        return result, created

    def update_revision[T](self, claim: Revision, mutation: Mutation[T]) -> tuple[T, Revision]:
        """Validate ``claim``, advance the stored version by one and run ``mutation``.

        The conditional update runs before ``mutation`` inside the same unit of
        work, so a claim that lost a race in another process is rejected before
        the mutation writes anything. A raising mutation rolls the advance back.
        """

        with self._locks.hold(claim.entity_id), self._unit_of_work_factory() as uow:
            revisions = uow.repositories.revisions
            current = self._require_current(revisions.get(claim.entity_id), claim)
            updated = current.increment(claim.client_id)
            if not revisions.compare_and_set(updated, expected_version=current.version):
                raise self._lost_race(revisions, claim)
            result = mutation(uow.repositories)
            uow.commit()

        log.debug("Advanced revision %s -> %s", current, updated)
        return result, updated

    def delete_with_revision[T](
        self,
        claim: Revision,
        deletion: Mutation[T],
        *,
        before_delete: Mutation[None] | None = None,
    ) -> tuple[T, Revision]:
        """Validate ``claim`` and delete the entity together with its revision.

        The revision row is removed conditionally first, then ``before_delete``
        (content removal) runs, then ``deletion``; all of it commits together.
        If ``before_delete`` raises, ``deletion`` never runs and the revision is
        kept. If the commit fails the revision is kept as well, so the delete
        can be retried once content removal has already happened.
        """

        with self._locks.hold(claim.entity_id), self._unit_of_work_factory() as uow:
            revisions = uow.repositories.revisions
            current = self._require_current(revisions.get(claim.entity_id), claim)
            if not revisions.remove(claim.entity_id, expected_version=current.version):
                raise self._lost_race(revisions, claim)
            if before_delete is not None:
                before_delete(uow.repositories)
            result = deletion(uow.repositories)
            uow.commit()

        log.debug("Deleted revision %s", current)
        return result, current

    def delete_revision(self, entity_id: str) -> bool:
        """Stop tracking ``entity_id``; returns ``False`` when it was not tracked."""

        with self._locks.hold(entity_id), self._unit_of_work_factory() as uow:
            removed = uow.repositories.revisions.remove(entity_id)
            uow.commit()
        return removed

    @staticmethod
    def _require_current(current: Revision | None, claim: Revision) -> Revision:
        if current is None:
            raise NotFoundError(f"No revision exists for entity {claim.entity_id}")
        if current.version != claim.version:
            log.info(
                "Rejecting stale revision for %s: claimed %s, current %s",
                claim.entity_id,
                claim.version,
                current.version,
            )
            raise StaleRevisionError(claim.entity_id, claim.version, current.version)
        return current

    @staticmethod
    def _lost_race(revisions: RevisionRepository, claim: Revision) -> StaleRevisionError:
        latest = revisions.get(claim.entity_id)
        current_version = None if latest is None else latest.version
        log.info(
            "Revision of %s moved after it was read: claimed %s, current %s",
            claim.entity_id,
            claim.version,
            current_version,
        )
        return StaleRevisionError(claim.entity_id, claim.version, current_version)
