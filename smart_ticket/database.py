from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from smart_ticket.config import settings

connect_args = {}
if settings.database_url.startswith("sqlite"):
    # Sessions are handed across FastAPI's threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Yield a database session for the duration of a request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables that do not exist yet"""
    # Models must be imported so they register on Base.metadata
    from smart_ticket import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
