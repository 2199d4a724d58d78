import logging

from sqlalchemy import Engine, create_engine, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass


def create_db_engine(database_url: str) -> Engine:
    url = make_url(database_url)

    # In-memory SQLite lives inside one connection, so every thread must share it
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(url, pool_pre_ping=True)


def init_db(engine: Engine, seed: bool = True) -> None:
    """Create the tables and, if asked, fill an empty users table with demo rows."""
    from query_service.core import models

    Base.metadata.create_all(engine)

    if not seed:
        return

    with Session(engine) as session:
        existing = session.scalar(select(func.count()).select_from(models.User))
        if existing:
            return

        session.add_all(
            [models.User(id=user_id, name=name) for user_id, name in models.DEMO_USERS]
        )
        session.commit()
        logger.info(f"Seeded {len(models.DEMO_USERS)} demo users")
