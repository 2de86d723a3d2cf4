from typing import Callable, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from core.config import settings
from core.exceptions import StorageUnavailable
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def run_atomic(db: Session, fn: Callable[[], T]) -> T:
    """
    Run `fn` in one transaction: commit on success, roll back on any error.

    Raises:
        StorageUnavailable: The database rejected or could not run the work
    """
    try:
        result = fn()
        db.commit()
        return result
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Database transaction failed",
            extra={"error_type": type(e).__name__},
            exc_info=True
        )
        raise StorageUnavailable() from e
    except Exception:
        db.rollback()
        raise
