from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from budgetflow.config import settings
from budgetflow.utils.logger import app_logger


def build_database_url(db_config: dict) -> str:
    """An explicit url wins; otherwise a MySQL url is assembled from its parts"""
    if db_config.get('url'):
        return db_config['url']
    return (f"mysql+aiomysql://{db_config['username']}:{db_config['password']}"
            f"@{db_config['host']}:{db_config['port']}/{db_config['name']}")


def enable_sqlite_foreign_keys(async_engine):
    """SQLite ignores ON DELETE rules unless foreign keys are switched on per connection"""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_engine_from_config(db_config: dict):
    url = build_database_url(db_config)
    if url.startswith("sqlite"):
        kwargs = {"echo": False}
        if url.endswith("://") or ":memory:" in url:
            # one shared connection, otherwise every session sees an empty database
            kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        async_engine = create_async_engine(url, **kwargs)
        enable_sqlite_foreign_keys(async_engine)
        return async_engine

    return create_async_engine(url,
                               pool_size=db_config.get('pool_size', 10),
                               max_overflow=db_config.get('max_overflow', 20),
                               pool_pre_ping=True,
                               pool_recycle=db_config.get('pool_recycle', 3600),
                               echo=False)


db_config = settings['database']
engine = create_engine_from_config(db_config)

SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    """Yield one session per request"""
    async_session = SessionLocal()
    try:
        yield async_session
    except SQLAlchemyError as e:
        app_logger.error(f"Database operation error: {e}")
        raise
    finally:
        await async_session.close()


async def init_db(target_engine=None):
    """
    Create all tables
    """
    # models register themselves on Base.metadata when imported
    from budgetflow.models import user, budget, approval, timesheet, audit_log  # noqa: F401

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app_logger.info("Database tables created")
