# app/database.py
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.core.config import get_settings


# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients:
#   "MaxClientsInSessionMode: max clients reached"
#
# SQLite URLs (local runs, tests) get a single shared connection instead.
# ---------------------------------------------------------


def build_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        separator = "&" if "?" in db_url else "?"
        db_url = f"{db_url}{separator}sslmode=require"

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


@lru_cache
def get_engine() -> Engine:
    """
    Engine for the configured DATABASE_URL, created on first use.

    Raises:
        RuntimeError: if DATABASE_URL is not set.
    """
    settings = get_settings()
    if not settings.DATABASE_URL:
        raise RuntimeError("Missing DATABASE_URL in .env")
    return build_engine(settings.DATABASE_URL)


def create_db_and_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup in supabase mode.
    """
    # Import models so SQLModel metadata is populated before create_all()
    from app.models import book as _book_models  # noqa: F401
    from app.models import cart as _cart_models  # noqa: F401
    from app.models import order as _order_models  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())

