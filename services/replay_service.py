"""
重播服務：由落子紀錄重建棋盤

純計算邏輯，完全不讀取儲存的棋盤字串，
前端重播和一致性檢查都只相信 move log
"""
from typing import Any, Dict, List

from core.board import Board
from core.session_state import GameSession
from services.turn_service import mark_for


def replay_board(game: GameSession) -> Board:
    """
    依 sequence 順序把每一步下到空棋盤上

    參數：
        game: 遊戲 snapshot

    返回：
        重建出來的 Board（應該和 game.board 完全相同）
    """
    board = Board.empty()
    for move in sorted(game.moves, key=lambda m: m.sequence):
        board = board.place(move.position, mark_for(game, move.player_id))
    return board


def replay_frames(game: GameSession) -> List[Dict[str, Any]]:
    """
    每一步產生一個畫面：該步之後的棋盤

    參數：
        game: 遊戲 snapshot

    返回：
        frame 列表，每個 frame 含 sequence、player_id、position、
        timestamp、board（9 個字元）

    範例：
        X 下 4、O 下 0 -> ["----X----", "O---X----"]
    """
    frames: List[Dict[str, Any]] = []
    board = Board.empty()

    for move in sorted(game.moves, key=lambda m: m.sequence):
        board = board.place(move.position, mark_for(game, move.player_id))
        frames.append({
            "sequence": move.sequence,
            "player_id": move.player_id,
            "position": move.position,
            "timestamp": move.timestamp,
            "board": board.to_string(),
        })

    return frames
