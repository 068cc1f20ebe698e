"""
並發控制工具

兩層保護，防止競態條件（Race Condition）：

1. SessionGuard：行程內的「每局一把鎖」
   - 同一局同一時間只允許一個寫入操作（join / move）
   - 不同局互不阻塞（絕對不用全域鎖）
   - 等待有上限，拿不到就拋 SessionBusy

2. with_game_lock：Database-level 的行級鎖
   - 使用 SELECT ... FOR UPDATE 實現悲觀鎖（Pessimistic Locking）
   - 多個行程共用同一個資料庫時，配合 version 欄位擋下 lost update
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy.orm import Session, Query

from models import Game
from core.exceptions import SessionBusy

logger = logging.getLogger(__name__)


class _KeyLock:
    """一把鎖 + 目前有多少人在用（持有或等待）"""
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class SessionGuard:
    """
    每個 game_id 一把互斥鎖

    使用範例：
        guard = SessionGuard(timeout=5.0)
        with guard.hold(game_id):
            game = store.load(game_id)
            ...
            store.save(new_game, expected_version=game.version)

    注意：
        - 鎖在所有離開路徑上都會釋放（成功、驗證失敗、非預期例外）
        - 沒人使用的鎖會被移除，不會隨著局數無限成長
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._registry_lock = threading.Lock()
        self._locks: Dict[str, _KeyLock] = {}

    def _checkout(self, game_id: str) -> _KeyLock:
        with self._registry_lock:
            entry = self._locks.get(game_id)
            if entry is None:
                entry = self._locks[game_id] = _KeyLock()
            entry.users += 1
            return entry

    def _checkin(self, game_id: str, entry: _KeyLock) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[game_id]

    @contextmanager
    def hold(self, game_id: str, timeout: float = None) -> Iterator[None]:
        """
        取得這局的獨占存取權

        參數：
            game_id: 遊戲 ID
            timeout: 最多等待秒數，預設用建構時的 timeout

        異常：
            SessionBusy: 等待超過 timeout
        """
        wait = self.timeout if timeout is None else timeout
        entry = self._checkout(game_id)
        try:
            if not entry.lock.acquire(timeout=wait):
                logger.warning(f"Lock contention on game {game_id}: gave up after {wait}s")
                raise SessionBusy(game_id, wait)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(game_id, entry)

    def is_locked(self, game_id: str) -> bool:
        with self._registry_lock:
            entry = self._locks.get(game_id)
            return entry is not None and entry.lock.locked()

    def active_keys(self) -> int:
        """目前登記中的鎖數量（測試 / 監控用）"""
        with self._registry_lock:
            return len(self._locks)


def with_game_lock(game_id: str, db: Session) -> Query:
    """
    鎖定一個 Game（行級鎖）

    使用場景：
    - 寫入 Game 時，確保在整個 transaction 期間不被其他請求修改
    - 和 version 欄位一起比對，偵測跨行程的並發寫入

    範例：
        row = with_game_lock(game_id, db).first()
        if not row:
            raise GameNotFound(game_id)
        if row.version != expected_version:
            raise StoreConflict(game_id, expected_version, row.version)

    參數：
        game_id: Game ID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - SQLite 會忽略 FOR UPDATE，此時靠 version 比對
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Game).filter(
        Game.id == game_id
    ).with_for_update(nowait=False)
