"""
Session Engine：管理一局遊戲的完整生命週期

職責：
1. 建立遊戲（create_session）
2. 第二位玩家加入（join_session）
3. 落子（apply_move）
4. 查詢（get_session）

並發安全：
- join / move 都在 SessionGuard 的每局鎖內完成
  load -> validate -> compute -> save 是一個不可分割的單位
- Store 回報版本衝突時，重新 load、重新驗證、重新計算，最多重試 max_retries 次
- 任何離開路徑都會釋放鎖

原則：
- 驗證失敗不改變任何狀態
- 所有狀態變更經過 GameStateMachine
- 寫入前先檢查不變量，不合法的狀態絕對不會落地
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from models import GameStatus
from core.board import Board, detect_line, is_full
from core.exceptions import InvariantViolation, StoreConflict
from core.locks import SessionGuard
from core.move_validator import ensure_valid_move
from core.session_state import GameSession, MoveRecord, verify_invariants
from core.session_store import SessionStore
from core.state_machine import GameStateMachine
from services.turn_service import mark_for, other_player, player_for_mark

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_move(game: GameSession, player_id: str, position: int, now: datetime) -> GameSession:
    """
    計算一步合法落子之後的新 snapshot（純函式，不碰 Store）

    流程：
    1. 決定記號（A -> X，B -> O）
    2. 在棋盤副本上落子
    3. 檢查連線
       - 有連線：FINISHED，winner = 連線記號的主人
       - 下滿沒連線：FINISHED，平手
       - 其他：繼續，換手
    4. 追加落子紀錄

    注意：
        - 連線和下滿同時發生時，以連線（勝利）為準
        - 呼叫前必須先通過 ensure_valid_move
    """
    mark = mark_for(game, player_id)
    board = game.board.place(position, mark)

    move = MoveRecord(
        game_id=game.id,
        player_id=player_id,
        position=position,
        sequence=game.next_sequence,
        timestamp=now,
    )
    common = dict(
        board=board,
        moves=game.moves + (move,),
        version=game.version + 1,
        updated_at=now,
    )

    line_mark = detect_line(board)
    if line_mark is not None:
        # 用連線的記號反查贏家，而不是直接相信落子的人
        winner = player_for_mark(game, line_mark)
        if winner != player_id:
            raise InvariantViolation(
                f"Game {game.id}: line of {line_mark.value} completed by {player_id}, owner is {winner}"
            )
        return GameStateMachine.transition(game, GameStatus.FINISHED, winner=winner, **common)

    if is_full(board):
        return GameStateMachine.transition(game, GameStatus.FINISHED, winner=None, **common)

    return GameStateMachine.transition(
        game, GameStatus.IN_PROGRESS, turn=other_player(game, player_id), **common
    )


class SessionEngine:
    """遊戲 Session 的唯一寫入者"""

    def __init__(
        self,
        store: SessionStore,
        guard: Optional[SessionGuard] = None,
        max_retries: int = 3,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.store = store
        self.guard = guard or SessionGuard()
        self.max_retries = max_retries
        self._clock = clock
        self._id_factory = id_factory

    def create_session(self, creator_id: str) -> str:
        """
        建立新遊戲

        初始狀態：
        - player_a = 建立者（X，先手）
        - 棋盤全空
        - status = WAITING
        - turn = 建立者

        參數：
            creator_id: 建立者的玩家 ID（由身分驗證層提供）

        返回：
            新遊戲的 ID

        異常：
            StoreUnavailable: Store 無法寫入
        """
        now = self._clock()
        game = GameSession(
            id=self._id_factory(),
            player_a=creator_id,
            turn=creator_id,
            board=Board.empty(),
            status=GameStatus.WAITING,
            created_at=now,
            updated_at=now,
        )
        verify_invariants(game)
        self.store.create(game)

        logger.info(f"Created game {game.id} by player {creator_id}")
        return game.id

    def join_session(self, game_id: str, joiner_id: str) -> GameSession:
        """
        加入遊戲

        規則：
        - 空位且不是 player_a：成為 player_b，WAITING -> IN_PROGRESS，turn 不變（A 先手）
        - 已經入座（A 或 B）：no-op
        - 座位已滿且不是兩位玩家之一：當作觀戰者，不改變狀態

        參數：
            game_id: 遊戲 ID
            joiner_id: 加入者的玩家 ID

        返回：
            加入後的 snapshot

        異常：
            GameNotFound: 遊戲不存在
            SessionBusy: 拿不到這局的鎖
            StoreConflict: 重試後仍然版本衝突
        """
        def mutate(game: GameSession) -> Optional[GameSession]:
            if game.is_seated(joiner_id):
                return None
            if game.player_b is not None:
                logger.info(f"Player {joiner_id} is spectating game {game_id}")
                return None
            logger.info(f"Player {joiner_id} joined game {game_id} as player B")
            return GameStateMachine.transition(
                game,
                GameStatus.IN_PROGRESS,
                player_b=joiner_id,
                version=game.version + 1,
                updated_at=self._clock(),
            )

        return self._mutate(game_id, mutate)

    def apply_move(self, game_id: str, player_id: str, position: int) -> GameSession:
        """
        落子（核心演算法）

        在這局的鎖內完成：
        1. load（不存在 -> GameNotFound）
        2. 驗證（失敗 -> 對應的 MoveRejected，不改變狀態）
        3. 計算新棋盤 / 狀態 / 輪次 / 贏家，追加落子紀錄
        4. 一次寫入 Store

        參數：
            game_id: 遊戲 ID
            player_id: 落子的玩家 ID
            position: 格子（0-8）

        返回：
            落子後的 snapshot

        異常：
            GameNotFound / GameNotActive / NotPlayersTurn / InvalidPosition / CellOccupied
            SessionBusy: 拿不到這局的鎖
            StoreConflict: 重試後仍然版本衝突
        """
        def mutate(game: GameSession) -> GameSession:
            ensure_valid_move(game, player_id, position)
            return compute_move(game, player_id, position, self._clock())

        game = self._mutate(game_id, mutate)
        logger.info(f"Player {player_id} played {position} in game {game_id} (move {len(game.moves)})")

        if game.is_finished:
            if game.winner is not None:
                logger.info(f"Game {game_id} finished: winner {game.winner}")
            else:
                logger.info(f"Game {game_id} finished: draw")
        return game

    def get_session(self, game_id: str) -> GameSession:
        """
        取得遊戲 snapshot（唯讀，含依 sequence 排序的完整落子紀錄）

        異常：
            GameNotFound: 遊戲不存在
        """
        return self.store.load(game_id)

    def _mutate(self, game_id: str, mutate: Callable[[GameSession], Optional[GameSession]]) -> GameSession:
        """
        在鎖內執行 load -> mutate -> save

        mutate 回傳 None 代表不需要寫入（no-op），直接回傳目前的 snapshot。
        Store 版本衝突時從 load 開始整段重來。
        """
        with self.guard.hold(game_id):
            attempt = 0
            while True:
                current = self.store.load(game_id)
                updated = mutate(current)
                if updated is None:
                    return current

                verify_invariants(updated)
                try:
                    self.store.save(updated, expected_version=current.version)
                    return updated
                except StoreConflict:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.error(f"Giving up on game {game_id} after {attempt} conflicting writes")
                        raise
                    logger.warning(
                        f"Store conflict on game {game_id}, retrying ({attempt}/{self.max_retries})"
                    )
