from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
from typing import List
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./movie_match.db"
    room_code_max_attempts: int = 10
    max_name_length: int = 50
    default_voting_timeout_seconds: int = 30
    majority_threshold: float = 0.5
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "MOVIE_MATCH_"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def use_immediate_transactions(engine):
    """
    SQLite：每個 transaction 一開始就拿寫入鎖（BEGIN IMMEDIATE）

    SQLite 沒有 SELECT ... FOR UPDATE，而 pysqlite 在 SELECT 之前不會送 BEGIN，
    兩個請求可以同時讀到同一份房間 document 再各自整份寫回。
    這裡把 transaction 交給 SQLAlchemy 自己開，並在開頭就拿鎖，
    讓 with_room_lock 的 read-modify-write 在 SQLite 上也是序列化的。
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_db_engine(url: str, **kwargs):
    """建立 engine；SQLite 需要 check_same_thread=False 與 BEGIN IMMEDIATE"""
    if url.startswith("sqlite"):
        # 允許多執行緒存取同一個 SQLite 連線（FastAPI 的多執行緒環境需要）
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        return use_immediate_transactions(create_engine(url, **kwargs))
    return create_engine(url, **kwargs)


engine = create_db_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def write_node(db: Session, code: str, ...):
            # 所有 DB 操作都在一個 transaction 內
            row = with_room_lock(code, db).first()
            row.data = {...}
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
