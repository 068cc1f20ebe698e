"""
Session Store：Engine 讀寫遊戲狀態的窄介面

合約：
- load(game_id) -> GameSession，不存在拋 GameNotFound
- create(game) -> None
- save(game, expected_version) -> None
    * 全有或全無（棋盤、狀態、輪次、贏家、新的落子紀錄一起寫入）
    * 儲存中的版本 != expected_version 時拋 StoreConflict
    * 成功後儲存中的版本 == game.version

實作：
- InMemorySessionStore：單一行程 / 測試用
- SqlSessionStore（core/sql_store.py）：SQLAlchemy
"""
import abc
import logging
import threading
from typing import Dict

from core.exceptions import GameNotFound, StoreConflict
from core.session_state import GameSession

logger = logging.getLogger(__name__)


class SessionStore(abc.ABC):
    """遊戲狀態儲存介面"""

    @abc.abstractmethod
    def load(self, game_id: str) -> GameSession:
        ...

    @abc.abstractmethod
    def create(self, game: GameSession) -> None:
        ...

    @abc.abstractmethod
    def save(self, game: GameSession, expected_version: int) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """
    放在 dict 裡的 Store

    GameSession 是不可變的，所以直接存參考即可，呼叫者改不到內部狀態
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._games: Dict[str, GameSession] = {}

    def load(self, game_id: str) -> GameSession:
        with self._lock:
            game = self._games.get(game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    def create(self, game: GameSession) -> None:
        with self._lock:
            if game.id in self._games:
                raise StoreConflict(game.id, None, self._games[game.id].version)
            self._games[game.id] = game

    def save(self, game: GameSession, expected_version: int) -> None:
        with self._lock:
            current = self._games.get(game.id)
            if current is None:
                raise GameNotFound(game.id)
            if current.version != expected_version:
                raise StoreConflict(game.id, expected_version, current.version)
            self._games[game.id] = game

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
