from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
import logging
import redis
from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Cardiology",
    "Dermatology",
    "Neurology",
    "Orthopedics",
    "Pediatrics",
    "Psychiatry",
    "Radiology",
    "Oncology",
]

def _engine_options(url: str) -> dict:
    """Connection pool settings for the configured backend."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside a single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
    }

engine = create_engine(settings.get_database_url, **_engine_options(settings.get_database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Connections are opened lazily, on the first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client

# Database initialization
def init_db():
    """Initialize database tables."""
    from ..models import user, patient, doctor, provider, consultation  # noqa: F401

    Base.metadata.create_all(bind=engine)

def seed_categories(db: Session) -> int:
    """Insert the default doctor categories that are missing. Returns the number added."""
    from ..models.doctor import Category

    existing = {name for (name,) in db.query(Category.name).all()}
    missing = [name for name in DEFAULT_CATEGORIES if name not in existing]
    for name in missing:
        db.add(Category(name=name))
    db.commit()

    if missing:
        logger.info(f"Seeded {len(missing)} categories")
    return len(missing)
