import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase

DATABASE_URL = os.getenv("FEATURE_ENGINE_DATABASE_URL", "sqlite:///data/stocks.db")


class Base(DeclarativeBase):
    pass


def ensure_sqlite_dir(database_url: str) -> None:
    """SQLite 檔案資料庫：建立所在目錄（連線前才建立）"""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def create_session_factory(database_url: str = DATABASE_URL) -> sessionmaker:
    """依連線字串建立 Session factory"""
    ensure_sqlite_dir(database_url)
    return sessionmaker(bind=create_engine(database_url, echo=False))


def init_db(bind: Engine):
    """初始化資料庫，建立所有表"""
    # 導入 models 確保所有表都被註冊
    from feature_engine.repositories import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
