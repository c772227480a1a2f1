from fastapi import Request

from ..services.cart_store import CartStore


def get_cart_store(request: Request) -> CartStore:
    """Dependency для получения хранилища корзин"""
    return request.app.state.cart_store
