import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Неизменяемое описание целевой БД корзин"""

    url: URL

    def render(self) -> str:
        """Строка подключения без пароля - безопасна для логов и ошибок"""
        return self.url.render_as_string(hide_password=True)

    def __str__(self) -> str:
        return self.render()

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"


def resolve_connection_descriptor(settings: Settings) -> ConnectionDescriptor:
    """
    Строит дескриптор подключения из настроек.

    Полная строка подключения (CART_DATABASE_URL) имеет приоритет. Иначе URL
    собирается из отдельных параметров; instance и database по умолчанию
    "onlineboutique" и "carts". Instance задаёт схему через search_path.
    """
    if settings.database_url:
        descriptor = ConnectionDescriptor(make_url(settings.database_url))
        logger.info(f"Using provided connection string: {descriptor}")
        return descriptor

    if not settings.database_host:
        raise ValueError("CART_DATABASE_URL or CART_DATABASE_HOST must be set")

    instance = settings.database_instance or "onlineboutique"
    database = settings.database_name or "carts"

    url = URL.create(
        settings.database_driver,
        username=settings.database_user,
        password=settings.database_password,
        host=settings.database_host,
        port=settings.database_port,
        database=database,
        query={"options": f"-csearch_path={instance}"},
    )
    descriptor = ConnectionDescriptor(url)
    logger.info(f"Built connection string: {descriptor}")
    return descriptor


def create_cart_engine(descriptor: ConnectionDescriptor, settings: Settings) -> Engine:
    """Создаёт движок SQLAlchemy для дескриптора"""
    if descriptor.is_sqlite:
        engine = create_engine(
            descriptor.url,
            connect_args={"check_same_thread": False, "timeout": 15},
            echo=settings.debug,
        )
        _enable_sqlite_transactions(engine)
        return engine

    return create_engine(
        descriptor.url,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        echo=settings.debug,
    )


def _enable_sqlite_transactions(engine: Engine) -> None:
    # pysqlite сам откладывает BEGIN до первого DML, из-за чего SELECT в
    # read-modify-write выполняется вне транзакции. Начинаем транзакцию сами;
    # для SERIALIZABLE берём блокировку записи сразу (BEGIN IMMEDIATE).
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        if conn.get_execution_options().get("isolation_level") == "SERIALIZABLE":
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def make_session_factory(engine: Engine, isolation_level: Optional[str] = None) -> sessionmaker:
    """Фабрика коротких сессий; isolation_level применяется к каждой транзакции"""
    if isolation_level:
        engine = engine.execution_options(isolation_level=isolation_level)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
