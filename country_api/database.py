import logging
from typing import Any, Dict, Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger("country_api")

Base = declarative_base()


def build_engine(url: str) -> Engine:
    """Create the engine backing the country store.

    Called once per process from the application lifespan; the engine is kept on
    ``app.state`` and disposed at shutdown.
    """
    driver = make_url(url).drivername
    engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if driver.startswith("sqlite"):
        # Request handlers run in the threadpool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    elif driver.startswith("mysql"):
        engine_kwargs["pool_recycle"] = 3600
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20
    elif driver.startswith("postgresql"):
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 5

    engine = create_engine(url, **engine_kwargs)
    logger.info("Database engine created for %s", get_database_dsn(url))
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    from country_api import models  # noqa: F401  registers the mapped tables

    Base.metadata.create_all(bind=engine)


def get_database_dsn(url: str, hide_password: bool = True) -> str:
    """Return the DSN string with the password masked for logging."""
    return make_url(url).render_as_string(hide_password=hide_password)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
