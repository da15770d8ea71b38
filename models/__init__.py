from sqlalchemy import create_engine
from sqlalchemy.orm import (
    sessionmaker,
    DeclarativeBase,
    scoped_session,
    Session as SqlalchemySession,
)


from settings import DATABASE_URL


if DATABASE_URL.startswith("sqlite"):
    # sessions are handed across the request threadpool
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=20,
        max_overflow=0,
        pool_timeout=300,
    )
db = sessionmaker(engine, future=True)
factory_session = scoped_session(db)


def get_db_sync():
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db_sync_for_test(db: SqlalchemySession):
    def inner():
        yield db

    return inner


class Base(DeclarativeBase):
    pass


# define all model for alembic migration
from models.User import User  # NOQA
from models.Token import Token  # NOQA
from models.Event import Event  # NOQA
from models.Ticket import Ticket  # NOQA
