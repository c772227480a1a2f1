from __future__ import annotations

import threading
from typing import List

import pytest

from cartstore.errors import PermanentStorageError
from cartstore.schemas.cart import Cart
from tests.conftest import insert_rows, stored_rows


class TestAddItem:
    def test_add_new_item(self, store):
        store.add_item("u1", "p1", 3)

        assert stored_rows(store, "u1") == [("p1", 3)]

    def test_sequential_adds_aggregate(self, store):
        store.add_item("u1", "p1", 3)
        store.add_item("u1", "p1", 2)

        store.add_item("u2", "p1", 5)

        assert stored_rows(store, "u1") == [("p1", 5)]
        assert stored_rows(store, "u1") == stored_rows(store, "u2")

    def test_products_are_kept_apart(self, store):
        store.add_item("u1", "p1", 1)
        store.add_item("u1", "p2", 4)
        store.add_item("u2", "p1", 7)

        assert stored_rows(store, "u1") == [("p1", 1), ("p2", 4)]
        assert stored_rows(store, "u2") == [("p1", 7)]

    def test_duplicate_rows_collapse_into_one(self, store):
        insert_rows(store, ("u1", "p1", 2), ("u1", "p1", 3), ("u1", "p2", 1))

        store.add_item("u1", "p1", 1)

        assert stored_rows(store, "u1") == [("p1", 6), ("p2", 1)]

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_rejects_non_positive_quantity(self, store, quantity):
        with pytest.raises(ValueError):
            store.add_item("u1", "p1", quantity)

        assert stored_rows(store, "u1") == []

    def test_concurrent_adds_do_not_lose_updates(self, store):
        """10 threads adding 1 each must end with exactly 10 on top of the start value."""
        num_threads = 10
        insert_rows(store, ("u1", "p1", 4))

        errors: List[BaseException] = []
        errors_lock = threading.Lock()
        start = threading.Barrier(num_threads)

        def add_one():
            start.wait()
            try:
                store.add_item("u1", "p1", 1)
            except BaseException as e:
                with errors_lock:
                    errors.append(e)

        threads = [threading.Thread(target=add_one) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert stored_rows(store, "u1") == [("p1", 4 + num_threads)]


class TestGetCart:
    def test_unknown_user_gets_empty_cart(self, store):
        cart = store.get_cart("nobody")

        assert isinstance(cart, Cart)
        assert cart.user_id == "nobody"
        assert cart.items == []

    def test_returns_one_item_per_row(self, store):
        store.add_item("u1", "p1", 2)
        store.add_item("u1", "p2", 1)
        insert_rows(store, ("u1", "p3", 1), ("u1", "p3", 1))

        cart = store.get_cart("u1")

        assert cart.user_id == "u1"
        assert sorted((item.product_id, item.quantity) for item in cart.items) == [
            ("p1", 2),
            ("p2", 1),
            ("p3", 1),
            ("p3", 1),
        ]

    def test_other_users_are_not_visible(self, store):
        store.add_item("u2", "p1", 1)

        assert store.get_cart("u1").items == []


class TestEmptyCart:
    def test_empty_removes_all_rows(self, store):
        store.add_item("u1", "p1", 2)
        insert_rows(store, ("u1", "p2", 1), ("u1", "p2", 5))
        store.add_item("u2", "p1", 1)

        store.empty_cart("u1")

        assert store.get_cart("u1").items == []
        assert stored_rows(store, "u2") == [("p1", 1)]

    def test_empty_is_idempotent(self, store):
        store.empty_cart("u1")
        store.empty_cart("u1")

        assert stored_rows(store, "u1") == []

    def test_add_after_empty_starts_from_zero(self, store):
        store.add_item("u1", "p1", 5)
        store.empty_cart("u1")

        store.add_item("u1", "p1", 1)

        assert stored_rows(store, "u1") == [("p1", 1)]


class TestUnreachableStore:
    @pytest.mark.parametrize(
        "operation, args",
        [
            ("add_item", ("u1", "p1", 1)),
            ("get_cart", ("u1",)),
            ("empty_cart", ("u1",)),
        ],
    )
    def test_operations_fail_with_uniform_error(self, unreachable_store, operation, args):
        with pytest.raises(PermanentStorageError) as exc_info:
            getattr(unreachable_store, operation)(*args)

        error = exc_info.value
        assert error.operation == operation
        assert error.descriptor == str(unreachable_store.descriptor)
        assert "missing-dir" in error.descriptor
        assert error.cause is not None
        assert error.__cause__ is error.cause
        assert str(error).startswith(f"Can't access cart storage at {error.descriptor}.")

    def test_ping_still_reports_alive(self, unreachable_store):
        assert unreachable_store.ping() is True


def test_ping(store):
    assert store.ping() is True
