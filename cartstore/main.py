import logging
import time
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from .config import get_settings
from .database import Base
from .api.dependencies import get_cart_store
from .api.routes.cart import router as cart_router
from .services.cart_store import CartStore, create_cart_store

settings = get_settings()

# Настройка логирования
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def wait_for_db(engine: Engine, max_retries: int = 30, delay: float = 2):
    """Ожидает готовности базы данных с повторными попытками"""
    retries = 0
    while retries < max_retries:
        try:
            logger.info(f"Attempting to connect to database (attempt {retries + 1}/{max_retries})...")

            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))

            logger.info("✅ Database connection successful!")
            return True

        except OperationalError as e:
            retries += 1
            if retries >= max_retries:
                logger.error(f"❌ Failed to connect to database after {max_retries} attempts")
                raise e

            logger.warning(f"Database not ready, waiting {delay} seconds... (attempt {retries}/{max_retries})")
            time.sleep(delay)

    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    logger.info("Starting Cart Store...")

    store = create_cart_store(settings)
    try:
        logger.info("Waiting for database to be ready...")
        wait_for_db(store.engine, settings.db_wait_retries, settings.db_wait_delay)

        if settings.create_tables:
            logger.info("Creating database tables...")
            Base.metadata.create_all(bind=store.engine)
            logger.info("Database tables created successfully")

        app.state.cart_store = store
        logger.info("✅ Cart Store started successfully!")

        yield

    except Exception as e:
        logger.error(f"❌ Failed to start Cart Store: {e}")
        raise
    finally:
        logger.info("Shutting down Cart Store...")
        store.dispose()
        logger.info("✅ Cart Store shut down successfully!")


app = FastAPI(
    title=settings.app_name,
    description="Хранилище корзин покупок",
    version=VERSION,
    debug=settings.debug,
    lifespan=lifespan
)

app.include_router(cart_router, prefix="/api/v1", tags=["cart"])


@app.get("/health")
async def health_check(store: CartStore = Depends(get_cart_store)):
    """Проверка живости сервиса (без обращения к БД)"""
    if store.ping():
        return {"status": "healthy", "service": settings.app_name, "version": VERSION}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "service": settings.app_name, "version": VERSION}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cartstore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info"
    )
