from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from shared.core.config import LEASING_DATABASE_URL

Base = declarative_base()

POOL_SIZE = 2
MAX_OVERFLOW = 2


def build_engine(url: str):
    if url.startswith("sqlite"):
        # sqlite pools take no sizing arguments
        return create_engine(
            url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=POOL_SIZE,          # max idle connections
        max_overflow=MAX_OVERFLOW,      # max temporary extra connections
        pool_timeout=30       # wait time before failing
    )


# Leasing DB
leasing_engine = build_engine(LEASING_DATABASE_URL)
LeasingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=leasing_engine)


# Dependency
def get_leasing_db():
    db = LeasingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# billing runs open one session per lease
def get_leasing_session_factory():
    return LeasingSessionLocal
