from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from rs_credit.core.config import settings

# SQLite connections are shared with the request threadpool
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """One session per request; TimesheetService owns commit and rollback."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the tenant tables. Called from the application lifespan."""
    from rs_credit.models import employee, project, allocation, invoice  # noqa: F401
    Base.metadata.create_all(bind=engine)
