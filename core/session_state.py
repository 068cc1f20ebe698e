"""
遊戲 Session 的領域模型

GameSession 是不可變的 snapshot：
- Engine 每次改變狀態都產生一個新的 GameSession
- 呼叫者拿到的永遠是一致的 snapshot，不會看到寫到一半的狀態

不變量（每次改變後都必須成立）：
1. 棋盤永遠 9 格
2. WAITING <=> 沒有 player_b
3. IN_PROGRESS => 有 player_b，且 turn 是兩位玩家之一
4. FINISHED 是終態
5. 有 winner => 棋盤上有一條同色的連線
6. 落子紀錄數 == 棋盤非空格數；sequence 從 1 連續；A、B 嚴格交替，A 先
7. 每格最多寫一次
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple

from models import GameStatus
from core.board import Board, Cell, find_line
from core.exceptions import InvariantViolation


@dataclass(frozen=True)
class MoveRecord:
    """一次落子紀錄"""
    game_id: str
    player_id: str
    position: int
    sequence: int
    timestamp: datetime


@dataclass(frozen=True)
class GameSession:
    """一局遊戲（含完整的落子紀錄）"""
    id: str
    player_a: str
    turn: str
    player_b: Optional[str] = None
    board: Board = field(default_factory=Board.empty)
    status: GameStatus = GameStatus.WAITING
    winner: Optional[str] = None
    moves: Tuple[MoveRecord, ...] = ()
    # 樂觀鎖版本號，每次寫入 +1
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    @property
    def is_draw(self) -> bool:
        return self.is_finished and self.winner is None

    @property
    def next_sequence(self) -> int:
        return len(self.moves) + 1

    def is_seated(self, player_id: str) -> bool:
        return player_id in (self.player_a, self.player_b)

    def role_of(self, player_id: Optional[str]) -> str:
        """回傳 player_a / player_b / spectator"""
        if player_id is not None and player_id == self.player_a:
            return "player_a"
        if player_id is not None and player_id == self.player_b:
            return "player_b"
        return "spectator"

    def evolve(self, **changes) -> "GameSession":
        return replace(self, **changes)


def verify_invariants(game: GameSession) -> None:
    """
    檢查 GameSession 是否符合所有不變量

    參數：
        game: 要檢查的 snapshot

    異常：
        InvariantViolation: 任何一條不變量不成立
    """
    def fail(message: str):
        raise InvariantViolation(f"Game {game.id}: {message}")

    if len(game.board) != 9:
        fail("board must have 9 cells")

    if (game.status == GameStatus.WAITING) != (game.player_b is None):
        fail(f"status {game.status.value} inconsistent with player_b={game.player_b!r}")

    if game.player_b is not None and game.player_b == game.player_a:
        fail("player_a and player_b must be distinct")

    if game.status == GameStatus.IN_PROGRESS and game.turn not in (game.player_a, game.player_b):
        fail(f"turn {game.turn!r} is not a seated player")

    if game.winner is not None:
        if game.status != GameStatus.FINISHED:
            fail("winner set on an unfinished game")
        line = find_line(game.board)
        if line is None:
            fail("winner set but no line on board")
        expected = Cell.MARK_A if game.winner == game.player_a else Cell.MARK_B
        if game.board[line[0]] != expected:
            fail("winning line does not belong to the winner")

    if len(game.moves) != game.board.filled_count():
        fail(f"{len(game.moves)} moves recorded but {game.board.filled_count()} cells filled")

    seen = set()
    for index, move in enumerate(game.moves):
        if move.sequence != index + 1:
            fail(f"move {index} has sequence {move.sequence}")
        expected_player = game.player_a if index % 2 == 0 else game.player_b
        if move.player_id != expected_player:
            fail(f"move {move.sequence} played by {move.player_id!r}, expected {expected_player!r}")
        if move.position in seen:
            fail(f"cell {move.position} written twice")
        seen.add(move.position)
