# nft_ownership/db.py
from typing import Generator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from . import config

_engine = None
_SessionLocal = None

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS nft_claim (
        principal TEXT NOT NULL,
        network TEXT NOT NULL,
        contract_address TEXT NOT NULL,
        token_id TEXT NOT NULL,
        owner TEXT NOT NULL,
        valid BOOLEAN NOT NULL,
        PRIMARY KEY (principal, network, contract_address, token_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS address_challenge (
        principal TEXT NOT NULL,
        address TEXT NOT NULL,
        message TEXT NOT NULL,
        expires_at BIGINT NOT NULL,
        PRIMARY KEY (principal, address)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS verified_address (
        principal TEXT NOT NULL,
        address TEXT NOT NULL,
        verified_at BIGINT NOT NULL,
        PRIMARY KEY (principal, address)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_storage (
        session_id TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (session_id, key)
    )
    """,
)


def init_engine(url: Optional[str] = None):
    """(Re)bind the module engine, e.g. to a throwaway SQLite file in tests."""
    global _engine, _SessionLocal
    url = url or config.DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)
    _SessionLocal = None
    return _engine

def get_engine():
    if _engine is None:
        init_engine()
    return _engine

def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)
    return _SessionLocal

def get_db() -> Generator[Session, None, None]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()

def ensure_tables(db: Session) -> None:
    for ddl in _TABLES:
        db.execute(text(ddl))
    db.commit()
