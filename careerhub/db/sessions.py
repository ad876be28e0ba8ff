import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from careerhub.core.config import settings
from careerhub.db.base import Base

logger = logging.getLogger("careerhub.db.session")
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

DATABASE_URL = settings.DATABASE_URL
if not DATABASE_URL:
    logger.error("DATABASE_URL is not configured. Set the DATABASE_URL env var.")
    raise RuntimeError("DATABASE_URL is not configured. Set the DATABASE_URL env var.")


def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # TestClient and uvicorn workers share connections across threads
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
logger.info("Database engine ready (%s)", engine.url.get_backend_name())


def init_db() -> None:
    """Create any missing tables for the registered models."""
    import careerhub.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured (%d tables)", len(Base.metadata.tables))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
