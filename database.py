import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from models import Base
from settings import DATABASE_URL

logger = logging.getLogger(__name__)

# ─── SQLAlchemy setup
engine = create_engine(
    DATABASE_URL,
    connect_args=(
        {"check_same_thread": False}
        if DATABASE_URL.startswith("sqlite")
        else {"connect_timeout": 5}
    ),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(attempts: int = 10, delay: float = 2.0) -> None:
    """Create all tables, waiting for the database to come up."""
    for attempt in range(attempts):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("✅ Tables are ready")
            return
        except OperationalError:
            logger.warning(
                "⚠️ DB not ready (attempt %d/%d)… retrying in %ss",
                attempt + 1,
                attempts,
                delay,
            )
            time.sleep(delay)
    raise RuntimeError("❌ Could not initialize DB")
