"""
落子驗證

只判斷「這一步合不合法」，不改變任何狀態。
真正的狀態改變由 SessionEngine 在鎖內完成。

檢查順序（第一個失敗的檢查決定原因）：
1. 遊戲是否進行中            -> GAME_NOT_ACTIVE
2. 是否輪到這位玩家          -> NOT_PLAYERS_TURN
3. 位置是否在 0-8            -> INVALID_POSITION
4. 目標格子是否為空          -> CELL_OCCUPIED
"""
from typing import Optional

from models import GameStatus
from core.board import BOARD_SIZE
from core.exceptions import REJECTION_ERRORS, RejectionReason
from core.session_state import GameSession


def validate_move(game: GameSession, player_id: str, position) -> Optional[RejectionReason]:
    """
    驗證一步棋

    參數：
        game: 目前的遊戲 snapshot
        player_id: 想要落子的玩家
        position: 目標格子（0-8）

    返回：
        None 表示合法，否則回傳 RejectionReason
    """
    if game.status != GameStatus.IN_PROGRESS:
        return RejectionReason.GAME_NOT_ACTIVE

    if game.turn != player_id:
        return RejectionReason.NOT_PLAYERS_TURN

    # bool 是 int 的子類，不能當位置用
    if isinstance(position, bool) or not isinstance(position, int):
        return RejectionReason.INVALID_POSITION
    if not 0 <= position < BOARD_SIZE:
        return RejectionReason.INVALID_POSITION

    if not game.board.is_empty_at(position):
        return RejectionReason.CELL_OCCUPIED

    return None


def ensure_valid_move(game: GameSession, player_id: str, position) -> None:
    """
    同 validate_move，但不合法時直接拋出對應的異常

    異常：
        GameNotActive / NotPlayersTurn / InvalidPosition / CellOccupied
    """
    reason = validate_move(game, player_id, position)
    if reason is None:
        return

    error_cls = REJECTION_ERRORS[reason]
    if reason == RejectionReason.GAME_NOT_ACTIVE:
        raise error_cls(f"Game {game.id} is not active (status: {game.status.value})")
    if reason == RejectionReason.NOT_PLAYERS_TURN:
        raise error_cls(f"It is not {player_id}'s turn in game {game.id}")
    if reason == RejectionReason.INVALID_POSITION:
        raise error_cls(f"Position {position!r} is outside 0-{BOARD_SIZE - 1}")
    raise error_cls(f"Cell {position} is already occupied in game {game.id}")
