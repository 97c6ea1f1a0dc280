from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from flowregistry.domain.errors import (
    AlreadyExistsError,
    InvalidRequestError,
    NotFoundError,
    StaleRevisionError,
)
from flowregistry.domain.model import Revision
from flowregistry.domain.revision import KeyedLocks, RevisionManager

if TYPE_CHECKING:
    from flowregistry.domain.ports import RegistryRepositories
    from tests.support.fake_unit_of_work import InMemoryRegistryStore


def _noop(repos: RegistryRepositories) -> str:
    _ = repos
    return "done"


@pytest.fixture
def manager(registry_store: InMemoryRegistryStore) -> RevisionManager:
    return RevisionManager(registry_store.unit_of_work_factory())


def test_create_revision_starts_at_zero(
    manager: RevisionManager, registry_store: InMemoryRegistryStore
) -> None:
    result, revision = manager.create_revision(Revision("flow1", 0, "client-a"), _noop)

    assert result == "done"
    assert revision == Revision("flow1", 0, "client-a")
    assert registry_store.revision_version("flow1") == 0
    assert manager.get_revision("flow1").version == 0


def test_create_revision_requires_version_zero(manager: RevisionManager) -> None:
    with pytest.raises(InvalidRequestError):
        manager.create_revision(Revision("flow1", 3), _noop)


def test_create_revision_rejects_existing_entity(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)

    with pytest.raises(AlreadyExistsError):
        manager.create_revision(Revision("flow1"), _noop)


def test_update_revision_advances_by_one(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)

    _, first = manager.update_revision(Revision("flow1", 0, "client-a"), _noop)
    _, second = manager.update_revision(first, _noop)

    assert first == Revision("flow1", 1, "client-a")
    assert second.version == 2
    assert manager.get_revision("flow1") == second


def test_stale_claim_is_rejected_without_running_mutation(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    manager.update_revision(Revision("flow1", 0), _noop)
    calls: list[int] = []

    def mutation(repos: RegistryRepositories) -> None:
        _ = repos
        calls.append(1)

    with pytest.raises(StaleRevisionError) as excinfo:
        manager.update_revision(Revision("flow1", 0), mutation)

    assert calls == []
    assert excinfo.value.claimed_version == 0
    assert excinfo.value.current_version == 1
    assert manager.get_revision("flow1").version == 1


def test_revision_is_claimed_before_mutation_runs(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    seen: list[Revision | None] = []

    def mutation(repos: RegistryRepositories) -> None:
        seen.append(repos.revisions.get("flow1"))

    manager.update_revision(Revision("flow1", 0, "client-a"), mutation)

    assert seen == [Revision("flow1", 1, "client-a")]


def test_delete_removes_revision_before_content(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    seen: list[Revision | None] = []

    manager.delete_with_revision(
        Revision("flow1", 0),
        _noop,
        before_delete=lambda repos: seen.append(repos.revisions.get("flow1")),
    )

    assert seen == [None]


def test_failed_mutation_does_not_advance_revision(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)

    def failing(repos: RegistryRepositories) -> None:
        _ = repos
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        manager.update_revision(Revision("flow1", 0), failing)

    assert manager.get_revision("flow1").version == 0
    _, revision = manager.update_revision(Revision("flow1", 0), _noop)
    assert revision.version == 1


def test_failed_commit_does_not_advance_revision(
    manager: RevisionManager, registry_store: InMemoryRegistryStore
) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    registry_store.fail_next_commit = RuntimeError("database unavailable")

    with pytest.raises(RuntimeError, match="database unavailable"):
        manager.update_revision(Revision("flow1", 0), _noop)

    assert manager.get_revision("flow1").version == 0


def test_unknown_entity_raises_not_found(manager: RevisionManager) -> None:
    with pytest.raises(NotFoundError):
        manager.get_revision("missing")
    with pytest.raises(NotFoundError):
        manager.update_revision(Revision("missing", 0), _noop)


def test_exactly_one_concurrent_claim_succeeds(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    contenders = 8
    barrier = threading.Barrier(contenders)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def contend(client: int) -> None:
        barrier.wait()
        try:
            manager.update_revision(Revision("flow1", 0, f"client-{client}"), _noop)
        except StaleRevisionError:
            outcome = "stale"
        else:
            outcome = "ok"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=contend, args=(index,)) for index in range(contenders)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("stale") == contenders - 1
    assert manager.get_revision("flow1").version == 1


def test_different_entities_do_not_block_each_other(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow-a"), _noop)
    manager.create_revision(Revision("flow-b"), _noop)
    inside_a = threading.Event()
    release_a = threading.Event()
    results: dict[str, int] = {}

    def slow(repos: RegistryRepositories) -> None:
        _ = repos
        inside_a.set()
        assert release_a.wait(timeout=5)

    def update_a() -> None:
        _, revision = manager.update_revision(Revision("flow-a", 0), slow)
        results["flow-a"] = revision.version

    worker = threading.Thread(target=update_a)
    worker.start()
    assert inside_a.wait(timeout=5)

    _, revision_b = manager.update_revision(Revision("flow-b", 0), _noop)
    results["flow-b"] = revision_b.version
    release_a.set()
    worker.join()

    assert results == {"flow-a": 1, "flow-b": 1}


def test_delete_with_revision_removes_revision(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    order: list[str] = []

    def deletion(repos: RegistryRepositories) -> str:
        _ = repos
        order.append("record")
        return "deleted"

    result, revision = manager.delete_with_revision(
        Revision("flow1", 0), deletion, before_delete=lambda _repos: order.append("content")
    )

    assert result == "deleted"
    assert revision.version == 0
    assert order == ["content", "record"]
    with pytest.raises(NotFoundError):
        manager.get_revision("flow1")


def test_delete_with_stale_claim_runs_nothing(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)
    manager.update_revision(Revision("flow1", 0), _noop)
    calls: list[str] = []

    with pytest.raises(StaleRevisionError):
        manager.delete_with_revision(
            Revision("flow1", 0), _noop, before_delete=lambda _repos: calls.append("content")
        )

    assert calls == []
    assert manager.get_revision("flow1").version == 1


def test_delete_revision_is_idempotent(manager: RevisionManager) -> None:
    manager.create_revision(Revision("flow1"), _noop)

    assert manager.delete_revision("flow1") is True
    assert manager.delete_revision("flow1") is False


def test_keyed_locks_release_entries() -> None:
    locks = KeyedLocks()

    with locks.hold("a"):
        assert len(locks) == 1
        with locks.hold("b"):
            assert len(locks) == 2

    assert len(locks) == 0


def test_revision_rejects_invalid_values() -> None:
    with pytest.raises(ValueError, match="entity id"):
        Revision("  ")
    with pytest.raises(ValueError, match="non-negative"):
        Revision("flow1", -1)
    assert Revision("flow1", 4).increment("client-b") == Revision("flow1", 5, "client-b")
