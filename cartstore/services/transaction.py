import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from ..errors import RetryExhaustedError, is_transient_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Единица работы: получает сессию внутри открытой транзакции и возвращает результат
UnitOfWork = Callable[[Session], T]


class TransactionRunner:
    """
    Выполняет единицу работы в транзакции с повторами.

    При транзиентной ошибке транзакция откатывается и единица работы
    выполняется заново целиком: чтение и запись всегда повторяются вместе.
    """

    def __init__(
            self,
            session_factory: sessionmaker,
            max_attempts: int = 5,
            initial_backoff: float = 0.05,
            max_backoff: float = 1.0,
            backoff_multiplier: float = 2.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.session_factory = session_factory
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.backoff_multiplier = backoff_multiplier

    def backoff(self, attempt: int) -> float:
        """Пауза после неудачной попытки с номером attempt (с единицы)"""
        delay = self.initial_backoff * self.backoff_multiplier ** (attempt - 1)
        return min(self.max_backoff, delay)

    def run(self, unit_of_work: UnitOfWork) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.session_factory.begin() as session:
                    return unit_of_work(session)
            except Exception as e:
                if not is_transient_error(e):
                    raise
                if attempt >= self.max_attempts:
                    logger.error(f"❌ Transaction failed after {attempt} attempts: {e}")
                    raise RetryExhaustedError(attempt, e) from e

                delay = self.backoff(attempt)
                logger.warning(
                    f"Transaction conflict, retrying in {delay:.3f}s "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )
                time.sleep(delay)
