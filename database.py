"""
資料庫與設定

- Settings：pydantic-settings，從環境變數 / .env 讀取
- engine / SessionLocal：SQLAlchemy 連線
- transactional：所有寫入都包在一個 transaction 裡
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

from core.exceptions import TicTacToeException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./tic_tac_toe.db"
    # 同一局的寫入鎖最多等待秒數，超過就回 SessionBusy
    lock_timeout_seconds: float = 5.0
    # Store 發生版本衝突時，重新 load + validate + apply 的次數上限
    max_store_retries: int = 3
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def make_engine(database_url: str, **kwargs):
    """
    依照 URL 建立 SQLAlchemy Engine

    SQLite 需要特殊設定：connect_args={"check_same_thread": False}
    這允許多執行緒存取同一個 SQLite 連線（FastAPI 的 sync endpoint 跑在 threadpool）
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True, **kwargs)


def make_session_factory(bind) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)
Base = declarative_base()


def init_db(bind=None) -> None:
    """
    建立所有資料表（games, moves）

    參數：
        bind: 要建表的 Engine，預設為全域 engine
    """
    # models 必須先 import，Base.metadata 才會有表
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def save_game(db: Session, ...):
            # 所有 DB 操作都在一個 transaction 內
            db.add(game)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）
        - TicTacToeException 屬於預期內的業務結果，不以 ERROR 記錄

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
        except TicTacToeException as e:
            # 業務異常（版本衝突、找不到遊戲）由呼叫者決定 log 等級
            logger.debug(f"Transaction rolled back in {func.__name__}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
