"""
Pydantic Schemas：API 的 request / response 格式
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models import GameStatus
from core.session_state import GameSession


class GameCreateResponse(BaseModel):
    game_id: str


class MoveSubmit(BaseModel):
    # 不在這裡限制 0-8，交給 MoveValidator 回傳 INVALID_POSITION
    position: int = Field(..., strict=True)


class MoveResponse(BaseModel):
    player_id: str
    position: int
    sequence: int
    timestamp: datetime


class GameResponse(BaseModel):
    """
    遊戲 snapshot

    board 是 9 個字元：'-' 空格、'X' 玩家 A、'O' 玩家 B
    moves 依 sequence 排序，前端可以直接重播
    """
    id: str
    player_a: str
    player_b: Optional[str] = None
    board: str
    status: GameStatus
    turn: Optional[str] = None
    winner: Optional[str] = None
    moves: List[MoveResponse]
    me: Optional[str] = None
    role: str = "spectator"

    @classmethod
    def from_session(cls, game: GameSession, me: Optional[str] = None) -> "GameResponse":
        return cls(
            id=game.id,
            player_a=game.player_a,
            player_b=game.player_b,
            board=game.board.to_string(),
            status=game.status,
            # FINISHED 之後 turn 沒有意義
            turn=None if game.is_finished else game.turn,
            winner=game.winner,
            moves=[
                MoveResponse(
                    player_id=move.player_id,
                    position=move.position,
                    sequence=move.sequence,
                    timestamp=move.timestamp,
                )
                for move in game.moves
            ],
            me=me,
            role=game.role_of(me),
        )


class ReplayFrame(BaseModel):
    sequence: int
    player_id: str
    position: int
    timestamp: datetime
    board: str


class ReplayResponse(BaseModel):
    game_id: str
    frames: List[ReplayFrame]
