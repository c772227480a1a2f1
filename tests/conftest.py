"""Shared pytest fixtures for store-backed tests."""
from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy import insert, select
from sqlalchemy.engine import make_url

from cartstore.config import Settings
from cartstore.database import Base, ConnectionDescriptor
from cartstore.models.cart_item import CartItem
from cartstore.services.cart_store import SqlCartStore


@pytest.fixture()
def settings() -> Settings:
    """Settings with short backoff so conflict retries stay fast."""
    return Settings(
        _env_file=None,
        transaction_max_attempts=10,
        transaction_initial_backoff=0.01,
        transaction_max_backoff=0.2,
    )


@pytest.fixture()
def descriptor(tmp_path) -> ConnectionDescriptor:
    return ConnectionDescriptor(make_url(f"sqlite:///{tmp_path / 'carts.db'}"))


@pytest.fixture()
def store(descriptor: ConnectionDescriptor, settings: Settings) -> Iterator[SqlCartStore]:
    cart_store = SqlCartStore(descriptor, settings)
    Base.metadata.create_all(bind=cart_store.engine)
    try:
        yield cart_store
    finally:
        cart_store.dispose()


@pytest.fixture()
def unreachable_store(tmp_path, settings: Settings) -> Iterator[SqlCartStore]:
    """Store pointing at a database file that can never be opened."""
    url = make_url(f"sqlite:///{tmp_path / 'missing-dir' / 'carts.db'}")
    cart_store = SqlCartStore(ConnectionDescriptor(url), settings)
    try:
        yield cart_store
    finally:
        cart_store.dispose()


def insert_rows(store: SqlCartStore, *rows: tuple[str, str, int]) -> None:
    """Write raw rows, bypassing add_item, to set up duplicate keys."""
    with store.session_factory.begin() as session:
        for user_id, product_id, quantity in rows:
            session.execute(
                insert(CartItem).values(user_id=user_id, product_id=product_id, quantity=quantity)
            )


def stored_rows(store: SqlCartStore, user_id: str) -> list[tuple[str, int]]:
    with store.session_factory() as session:
        result = session.execute(
            select(CartItem.product_id, CartItem.quantity).where(CartItem.user_id == user_id)
        )
        return sorted((product_id, quantity) for product_id, quantity in result)
