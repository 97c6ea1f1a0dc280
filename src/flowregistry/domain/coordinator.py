"""Entry point for every revision-checked mutation of a registry entity."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from flowregistry.domain.errors import InvalidRequestError
from flowregistry.domain.model import EntityModification, RevisionUpdate

if TYPE_CHECKING:
    from flowregistry.domain.model import Revision
    from flowregistry.domain.revision import Mutation, RevisionManager

log = getLogger(__name__)


class MutationCoordinator:
    """Runs create/update/delete requests through the revision manager.

    Every request names an actor and a claimed revision; the result pairs the
    mutated entity with the revision the change produced.
    """

    def __init__(self, revisions: RevisionManager) -> None:
        self._revisions = revisions

    @property
    def revisions(self) -> RevisionManager:
        return self._revisions

    def create_entity[T](
        self, claim: Revision, actor: str, mutation: Mutation[T]
    ) -> RevisionUpdate[T]:
        _require_actor(actor)
        entity, revision = self._revisions.create_revision(claim, mutation)
        log.info("%s created entity %s", actor, claim.entity_id)
        return RevisionUpdate(entity, EntityModification(revision, actor))

    def update_entity[T](
        self, claim: Revision, actor: str, mutation: Mutation[T]
    ) -> RevisionUpdate[T]:
        _require_actor(actor)
        entity, revision = self._revisions.update_revision(claim, mutation)
        log.info("%s updated entity %s to revision %s", actor, claim.entity_id, revision.version)
        return RevisionUpdate(entity, EntityModification(revision, actor))

    def delete_entity[T](
        self,
        claim: Revision,
        actor: str,
        *,
        delete_content: Mutation[None],
        delete_record: Mutation[T],
    ) -> RevisionUpdate[T]:
        """Delete durable content first, then the record and its revision together.

        ``delete_content`` gets the repositories of the claim's transaction and
        must treat missing content as a no-op, so that a delete whose commit
        failed can be retried with the same claim.
        """

        _require_actor(actor)
        entity, revision = self._revisions.delete_with_revision(
            claim, delete_record, before_delete=delete_content
        )
        log.info("%s deleted entity %s", actor, claim.entity_id)
        return RevisionUpdate(entity, EntityModification(revision, actor))


def _require_actor(actor: str) -> None:
    if not actor or not actor.strip():
        raise InvalidRequestError("An actor identity is required for every mutation")
