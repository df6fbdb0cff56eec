# storefront/database.py
from sqlmodel import SQLModel, create_engine, Session

from storefront.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients. If each backend
# process opens many connections (SQLAlchemy default pool_size 5+),
# you can easily hit:
#   "MaxClientsInSessionMode: max clients reached"
#
# Other URLs (local SQLite) are used as-is.
# ---------------------------------------------------------


def _is_postgres(url: str) -> bool:
    return url.startswith("postgres")


def _engine_url(url: str) -> str:
    """Append sslmode=require to Postgres URLs that don't set it."""
    if not _is_postgres(url) or "sslmode=" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}sslmode=require"


db_url = _engine_url(settings.DATABASE_URL)

engine_kwargs: dict = {"echo": False}
if _is_postgres(db_url):
    engine_kwargs.update(pool_pre_ping=True, pool_size=1, max_overflow=0)
elif db_url.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(db_url, **engine_kwargs)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    One session per request; repositories commit their own writes.
    """
    with Session(engine) as session:
        yield session
