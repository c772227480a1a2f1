"""Ошибки хранилища корзин.

Любая ошибка драйвера или SQLAlchemy на границе публичной операции
переводится в PermanentStorageError, чтобы вызывающий код видел ровно один
вид ошибки. Транзиентные ошибки (конфликты сериализации, блокировки)
обрабатываются внутри TransactionRunner и наружу не выходят.
"""

from typing import Optional, Union

from sqlalchemy.exc import DBAPIError

from .database import ConnectionDescriptor

# serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})

SQLITE_TRANSIENT_MESSAGES = ("database is locked", "database table is locked")


class StorageError(Exception):
    """Базовая ошибка хранилища корзин"""


class TransientStorageError(StorageError):
    """Конфликт или конкуренция - операцию можно повторить целиком"""


class RetryExhaustedError(StorageError):
    """Исчерпан лимит повторов транзакции"""

    def __init__(self, attempts: int, cause: BaseException):
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Transaction failed after {attempts} attempts: {cause}")
        self.__cause__ = cause


class PermanentStorageError(StorageError):
    """Единая ошибка для вызывающего кода: хранилище недоступно или отказало"""

    def __init__(self, *, descriptor: str, operation: str, cause: BaseException):
        self.descriptor = descriptor
        self.operation = operation
        self.cause = cause
        super().__init__(f"Can't access cart storage at {descriptor}. {cause}")
        self.__cause__ = cause


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    # psycopg2 - pgcode, psycopg 3 - sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient_error(exc: BaseException) -> bool:
    """Можно ли повторить транзакцию после этой ошибки"""
    if isinstance(exc, TransientStorageError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return False
    if _sqlstate(exc) in TRANSIENT_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(text in message for text in SQLITE_TRANSIENT_MESSAGES)


def translate_storage_error(
        exc: BaseException,
        descriptor: Union[str, ConnectionDescriptor],
        operation: str,
) -> PermanentStorageError:
    """Переводит любую ошибку хранилища в PermanentStorageError"""
    if isinstance(exc, PermanentStorageError):
        return exc
    return PermanentStorageError(descriptor=str(descriptor), operation=operation, cause=exc)
