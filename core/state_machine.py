"""
遊戲狀態機

集中管理所有合法的狀態轉換：

    WAITING ──(第二位玩家加入)──> IN_PROGRESS
    IN_PROGRESS ──(連線 / 下滿)──> FINISHED
    IN_PROGRESS ──(一般落子)──> IN_PROGRESS

狀態只能往前走，FINISHED 是終態
"""
import logging

from models import GameStatus
from core.exceptions import InvalidStateTransition
from core.session_state import GameSession

logger = logging.getLogger(__name__)


class GameStateMachine:
    """Game 狀態轉換規則"""

    TRANSITIONS = {
        GameStatus.WAITING: {GameStatus.IN_PROGRESS},
        GameStatus.IN_PROGRESS: {GameStatus.IN_PROGRESS, GameStatus.FINISHED},
        GameStatus.FINISHED: set(),
    }

    @classmethod
    def can_transition(cls, current: GameStatus, target: GameStatus) -> bool:
        return target in cls.TRANSITIONS[current]

    @classmethod
    def transition(cls, game: GameSession, target: GameStatus, **changes) -> GameSession:
        """
        產生狀態轉換後的新 snapshot

        參數：
            game: 目前的 snapshot
            target: 目標狀態
            **changes: 同時要更新的其他欄位（board、turn、winner...）

        返回：
            新的 GameSession

        異常：
            InvalidStateTransition: 不允許的轉換
        """
        if not cls.can_transition(game.status, target):
            raise InvalidStateTransition(
                f"Game {game.id} cannot transition from {game.status.value} to {target.value}"
            )

        if game.status != target:
            logger.info(f"Game {game.id} state changed: {game.status.value} -> {target.value}")

        return game.evolve(status=target, **changes)
