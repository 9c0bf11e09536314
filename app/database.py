# app/database.py
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import Settings, get_settings

settings = get_settings()


# ---------------------------------------------------------
# Storage backend is picked exactly once, here, from settings:
#
# - memory   : in-process SQLite shared by every session
#              (StaticPool keeps the single connection alive,
#              otherwise each new connection would see an empty DB)
# - database : DATABASE_URL, with sslmode appended for Postgres
#
# Nothing else in the app knows which backend is active; handlers
# only ever see a Session coming from get_session().
# ---------------------------------------------------------


def _with_sslmode(db_url: str, sslmode: str | None) -> str:
    if not sslmode or not db_url.startswith("postgres") or "sslmode=" in db_url:
        return db_url
    separator = "&" if "?" in db_url else "?"
    return f"{db_url}{separator}sslmode={sslmode}"


def build_engine(cfg: Settings) -> Engine:
    if cfg.STORAGE_BACKEND == "memory":
        return create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if not cfg.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is required when STORAGE_BACKEND=database")

    db_url = _with_sslmode(cfg.DATABASE_URL, cfg.DATABASE_SSLMODE)
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
    )


engine = build_engine(settings)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Anything not committed when the request ends is rolled back
    when the session closes.
    """
    with Session(engine) as session:
        yield session
