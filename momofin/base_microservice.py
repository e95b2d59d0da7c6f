import logging
from datetime import datetime
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from momofin.config import get_settings

settings = get_settings()

# Setup logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("momofin")

# SQLAlchemy async setup
engine = create_async_engine(settings.database_url, echo=False, future=True)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()

_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"}


class LogEntry(Base):
    __tablename__ = "logs"
    id = Column(Integer, primary_key=True, index=True)
    level = Column(String(16), nullable=False)
    message = Column(Text, nullable=False)
    path = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting a database session."""
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables():
    """Create every table registered on ``Base`` that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class BaseMicroservice:
    """
    Base class for the service routers. Provides:
    - Error/event logging
    - Config from environment variables
    """
    def __init__(self):
        self.logger = logger
        self.settings = settings

    def log_event(self, event: str, details: Dict[str, Any] = None):
        self.logger.info(f"EVENT: {event} | Details: {details}")

    def log_error(self, error: Exception, context: str = ""):
        self.logger.error(f"ERROR: {str(error)} | Context: {context}")


class LoggingService(BaseMicroservice):
    """
    Audit log for request handlers.

    Every entry goes to the process logger and is persisted as a ``logs``
    row. A failure to persist is reported through the logger and never
    propagates to the caller.
    """

    async def log(self, db: AsyncSession, level: str, message: str, path: str = None) -> None:
        level = level.upper()
        self.logger.log(logging.getLevelName(level) if level in _LEVELS else logging.INFO, message)
        try:
            db.add(LogEntry(level=level, message=message, path=path))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            self.log_error(e, context=f"Persisting log entry for {path}")
