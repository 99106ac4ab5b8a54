from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from adintel.config import DATABASE_URL, DATA_DIR

if DATABASE_URL.startswith("sqlite"):
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Yield a database session and make sure it is closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables."""
    # Import models so they register on Base.metadata
    from adintel.models import search_run  # noqa: F401

    Base.metadata.create_all(bind=engine)
