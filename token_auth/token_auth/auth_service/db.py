from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    from .models import User  # Import here to avoid circular dependency

    Base.metadata.create_all(bind=engine)

    # The users index on normalized_username is declared on the model;
    # verify it exists since lookups depend on it
    inspector = inspect(engine)
    existing = [idx["name"] for idx in inspector.get_indexes(User.__tablename__)]
    if "ix_users_normalized_username" not in existing:
        logger.warning("Index ix_users_normalized_username missing on %s", User.__tablename__)
    logger.info("Database initialized successfully")


def check_db_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error("Database connectivity check failed: %s", e)
        return False


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
