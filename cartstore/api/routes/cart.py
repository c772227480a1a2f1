from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from ...errors import PermanentStorageError
from ...schemas.cart import Cart
from ...schemas.cart_item import CartItemCreate
from ...services.cart_store import CartStore
from ..dependencies import get_cart_store

router = APIRouter()


@router.get("/carts/{user_id}", response_model=Cart)
async def get_cart(user_id: str, store: CartStore = Depends(get_cart_store)):
    """Получение корзины пользователя"""
    try:
        return await run_in_threadpool(store.get_cart, user_id)
    except PermanentStorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.post("/carts/{user_id}/items", status_code=status.HTTP_201_CREATED)
async def add_item_to_cart(
        user_id: str,
        item: CartItemCreate,
        store: CartStore = Depends(get_cart_store)
):
    """Добавление товара в корзину"""
    try:
        await run_in_threadpool(store.add_item, user_id, item.product_id, item.quantity)
    except PermanentStorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return {"message": "Item added to cart"}


@router.delete("/carts/{user_id}")
async def empty_cart(user_id: str, store: CartStore = Depends(get_cart_store)):
    """Очистка корзины"""
    try:
        await run_in_threadpool(store.empty_cart, user_id)
    except PermanentStorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return {"message": "Cart cleared successfully"}
