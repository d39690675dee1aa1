import logging
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from bookshare.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets a busy timeout and enforced foreign keys."""
    if url.startswith("sqlite"):
        new_engine = create_engine(
            url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.db_busy_timeout,
            },
        )

        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return new_engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=10,
        max_overflow=20,
        echo=echo,
    )


engine = build_engine(DATABASE_URL, echo=settings.db_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = None, session_factory=None):
    """Create tables and insert the configured default locations that are missing."""
    from bookshare.models import Location

    bind = bind or engine
    session_factory = session_factory or SessionLocal
    Base.metadata.create_all(bind=bind)

    db = session_factory()
    try:
        existing = {name for (name,) in db.query(Location.name).all()}
        missing = [name for name in settings.default_locations if name not in existing]
        for name in missing:
            db.add(Location(name=name))
        if missing:
            db.commit()
            logger.info(f"Seeded locations: {', '.join(missing)}")
    finally:
        db.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
