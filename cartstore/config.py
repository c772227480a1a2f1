from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки приложения"""

    # Основные настройки приложения
    app_name: str = "Cart Store"
    debug: bool = False
    log_level: str = "INFO"

    # Полная строка подключения имеет приоритет над отдельными параметрами
    database_url: Optional[str] = None

    # Отдельные параметры подключения
    database_driver: str = "postgresql+psycopg2"
    database_host: Optional[str] = None
    database_port: int = 5432
    database_user: Optional[str] = None
    database_password: Optional[str] = None
    database_instance: str = "onlineboutique"
    database_name: str = "carts"

    # Настройки пула соединений
    pool_size: int = 10
    max_overflow: int = 20

    # Настройки транзакций
    isolation_level: str = "SERIALIZABLE"
    transaction_max_attempts: int = 5
    transaction_initial_backoff: float = 0.05
    transaction_max_backoff: float = 1.0
    transaction_backoff_multiplier: float = 2.0

    # Запуск
    create_tables: bool = True
    db_wait_retries: int = 30
    db_wait_delay: float = 2

    class Config:
        env_prefix = "CART_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Настройки процесса, читаются один раз"""
    return Settings()
