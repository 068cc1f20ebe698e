"""
輪替服務：玩家 <-> 記號、換手

純計算邏輯，不涉及狀態轉換

所有「另一位玩家是誰」的計算都集中在這裡，避免各處各自比較
"""
from typing import Optional

from core.board import Cell
from core.session_state import GameSession


def mark_for(game: GameSession, player_id: str) -> Cell:
    """
    取得玩家在這局的記號

    規則：
    - player_a -> X（MARK_A）
    - player_b -> O（MARK_B）

    異常：
        ValueError: 玩家不在這局
    """
    if player_id == game.player_a:
        return Cell.MARK_A
    if game.player_b is not None and player_id == game.player_b:
        return Cell.MARK_B
    raise ValueError(f"Player {player_id} is not seated in game {game.id}")


def player_for_mark(game: GameSession, mark: Cell) -> Optional[str]:
    """記號 -> 玩家（空格回傳 None）"""
    if mark == Cell.MARK_A:
        return game.player_a
    if mark == Cell.MARK_B:
        return game.player_b
    return None


def other_player(game: GameSession, player_id: str) -> str:
    """
    在 {player_a, player_b} 之間輪替

    範例：
        other_player(game, game.player_a) -> game.player_b
        other_player(game, game.player_b) -> game.player_a
    """
    if game.player_b is None:
        raise ValueError(f"Game {game.id} has no second player yet")
    if player_id == game.player_a:
        return game.player_b
    if player_id == game.player_b:
        return game.player_a
    raise ValueError(f"Player {player_id} is not seated in game {game.id}")
