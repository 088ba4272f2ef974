import threading

import pytest

from cloudauth.models.errors import LockError
from cloudauth.services.verifier_store import VerifierStore


class TestVerifierStore:
    def test_take_returns_value_exactly_once(self) -> None:
        # Arrange
        store = VerifierStore()
        store.set("v1")

        # Act
        first = store.take()
        second = store.take()

        # Assert
        assert first == "v1"
        assert second is None

    def test_take_on_empty_store(self) -> None:
        assert VerifierStore().take() is None

    def test_set_overwrites_pending_value(self) -> None:
        # Arrange
        store = VerifierStore()
        store.set("first")

        # Act
        store.set("second")

        # Assert
        assert store.take() == "second"
        assert store.take() is None

    def test_peek_does_not_clear(self) -> None:
        store = VerifierStore()
        store.set("v1")

        assert store.peek() == "v1"
        assert store.peek() == "v1"
        assert store.take() == "v1"

    def test_discard_only_clears_matching_value(self) -> None:
        # Arrange
        store = VerifierStore()
        store.set("old")
        store.set("new")

        # Act
        cleared_old = store.discard("old")
        remaining = store.peek()
        cleared_new = store.discard("new")

        # Assert
        assert cleared_old is False
        assert remaining == "new"
        assert cleared_new is True
        assert store.peek() is None

    def test_concurrent_takes_hand_out_value_once(self) -> None:
        # Arrange
        store = VerifierStore()
        store.set("only")
        results: list[str | None] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            results.append(store.take())

        threads = [threading.Thread(target=worker) for _ in range(8)]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert results.count("only") == 1
        assert results.count(None) == 7


class TestPoisonedStore:
    def test_aborted_update_poisons_store(self) -> None:
        # Arrange
        store = VerifierStore()
        store.set("v1")

        # Act - abort a critical section mid-update
        with pytest.raises(RuntimeError):
            with store._guard():
                raise RuntimeError("interrupted")

        # Assert
        assert store.poisoned
        with pytest.raises(LockError):
            store.take()
        with pytest.raises(LockError):
            store.peek()

    def test_set_recovers_poisoned_store(self) -> None:
        # Arrange
        store = VerifierStore()
        store._poisoned = True

        # Act
        store.set("fresh")

        # Assert
        assert not store.poisoned
        assert store.take() == "fresh"
