import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import (
    ConnectionDescriptor,
    create_cart_engine,
    make_session_factory,
    resolve_connection_descriptor,
)
from ..errors import translate_storage_error
from ..models.cart_item import CartItem
from ..schemas.cart import Cart
from ..schemas.cart_item import CartItem as CartItemSchema
from .transaction import TransactionRunner

logger = logging.getLogger(__name__)


class CartStore(ABC):
    """Интерфейс хранилища корзин"""

    @abstractmethod
    def add_item(self, user_id: str, product_id: str, quantity: int) -> None:
        ...

    @abstractmethod
    def get_cart(self, user_id: str) -> Cart:
        ...

    @abstractmethod
    def empty_cart(self, user_id: str) -> None:
        ...

    @abstractmethod
    def ping(self) -> bool:
        ...


class SqlCartStore(CartStore):
    """Хранилище корзин в реляционной БД"""

    def __init__(self, descriptor: ConnectionDescriptor, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.descriptor = descriptor
        self.engine = create_cart_engine(descriptor, settings)
        self.session_factory = make_session_factory(self.engine)
        self.transactions = TransactionRunner(
            make_session_factory(self.engine, settings.isolation_level),
            max_attempts=settings.transaction_max_attempts,
            initial_backoff=settings.transaction_initial_backoff,
            max_backoff=settings.transaction_max_backoff,
            backoff_multiplier=settings.transaction_backoff_multiplier,
        )

    def add_item(self, user_id: str, product_id: str, quantity: int) -> None:
        """Добавить quantity единиц товара в корзину (суммируется с текущим)"""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"quantity must be a positive integer, got {quantity!r}")

        logger.info(f"add_item called for user_id={user_id}, product_id={product_id}, quantity={quantity}")

        def merge_quantity(session: Session) -> int:
            current = session.execute(
                select(func.coalesce(func.sum(CartItem.quantity), 0)).where(
                    CartItem.user_id == user_id,
                    CartItem.product_id == product_id,
                )
            ).scalar_one()
            current = int(current)
            new_quantity = current + quantity

            # Все строки ключа заменяются одной канонической
            session.execute(
                delete(CartItem).where(
                    CartItem.user_id == user_id,
                    CartItem.product_id == product_id,
                )
            )
            session.execute(
                insert(CartItem).values(
                    user_id=user_id,
                    product_id=product_id,
                    quantity=new_quantity,
                )
            )
            return new_quantity

        try:
            new_quantity = self.transactions.run(merge_quantity)
        except Exception as e:
            logger.error(f"❌ Failed to add item to cart for user_id={user_id}: {e}")
            raise translate_storage_error(e, self.descriptor, "add_item") from e

        logger.info(f"Cart {user_id}: product {product_id} quantity is now {new_quantity}")

    def get_cart(self, user_id: str) -> Cart:
        """Получить корзину пользователя; нет строк - пустая корзина"""
        logger.info(f"get_cart called for user_id={user_id}")

        try:
            with self.session_factory() as session:
                rows = session.execute(
                    select(CartItem.product_id, CartItem.quantity).where(CartItem.user_id == user_id)
                ).all()
        except Exception as e:
            logger.error(f"❌ Failed to retrieve cart for user_id={user_id}: {e}")
            raise translate_storage_error(e, self.descriptor, "get_cart") from e

        return Cart(
            user_id=user_id,
            items=[CartItemSchema(product_id=product_id, quantity=quantity) for product_id, quantity in rows],
        )

    def empty_cart(self, user_id: str) -> None:
        """Удалить все товары пользователя; пустая корзина - не ошибка"""
        logger.info(f"empty_cart called for user_id={user_id}")

        try:
            with self.session_factory.begin() as session:
                result = session.execute(delete(CartItem).where(CartItem.user_id == user_id))
        except Exception as e:
            logger.error(f"❌ Failed to empty cart for user_id={user_id}: {e}")
            raise translate_storage_error(e, self.descriptor, "empty_cart") from e

        logger.info(f"🧹 Cart cleared for user_id={user_id}: {result.rowcount} rows removed")

    def ping(self) -> bool:
        """Базовая проверка живости: к БД не обращается"""
        logger.debug("ping called")
        return True

    def dispose(self) -> None:
        """Закрыть пул соединений"""
        self.engine.dispose()


def create_cart_store(settings: Settings) -> SqlCartStore:
    """Собрать хранилище из настроек"""
    return SqlCartStore(resolve_connection_descriptor(settings), settings)
