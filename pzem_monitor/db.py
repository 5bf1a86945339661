# pzem_monitor/db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import urllib.parse
from pathlib import Path

from .config import DB_URL, SQL_ECHO

def _ensure_sqlite_dir(url: str):
    if not url.startswith("sqlite"):
        return
    # Extract filesystem path after sqlite:///
    raw_path = url.split("sqlite:///", 1)[-1]
    if not raw_path or raw_path.startswith(":memory:") or raw_path == url:
        return
    fs_path = Path(urllib.parse.unquote(raw_path))
    if not fs_path.is_absolute():
        fs_path = Path.cwd() / fs_path
    fs_path.parent.mkdir(parents=True, exist_ok=True)

def make_engine(url: str = DB_URL, **kwargs):
    _ensure_sqlite_dir(url)
    return create_engine(
        url,
        echo=SQL_ECHO,
        future=True,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        **kwargs
    )

def make_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)

_engine = None

def get_engine():
    global _engine
    if _engine is None:
        _engine = make_engine()
    return _engine
