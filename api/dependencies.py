"""
FastAPI dependencies

- get_engine：整個行程共用一個 SessionEngine（SessionGuard 的鎖表必須共用）
- get_player_id：上游身分驗證層放在 X-Player-Id header 的玩家 ID
"""
from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException

from database import SessionLocal, get_settings
from core.locks import SessionGuard
from core.session_engine import SessionEngine
from core.sql_store import SqlSessionStore


@lru_cache()
def get_engine() -> SessionEngine:
    settings = get_settings()
    return SessionEngine(
        store=SqlSessionStore(SessionLocal),
        guard=SessionGuard(timeout=settings.lock_timeout_seconds),
        max_retries=settings.max_store_retries,
    )


def get_player_id(x_player_id: Optional[str] = Header(None)) -> str:
    """
    取得已驗證的玩家 ID

    Engine 完全相信這個值，不做任何驗證；
    token 的驗證由上游（gateway / 身分服務）負責
    """
    if not x_player_id or not x_player_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_player_id.strip()

