"""
SQLAlchemy Models

兩張表：
- games：一局遊戲（棋盤、狀態、輪到誰、贏家、樂觀鎖版本號）
- moves：落子紀錄（append-only，依 sequence 排序即可重播）
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    一律以 UTC 存取的 DateTime

    SQLite 不保存時區：寫入前轉成 UTC，讀出時補回 UTC tzinfo，
    讓 Engine 回傳的 snapshot 和 Store 讀回來的 snapshot 完全一致
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class GameStatus(str, enum.Enum):
    """遊戲狀態（只能往前走：WAITING -> IN_PROGRESS -> FINISHED）"""
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)
    player_a = Column(String(64), nullable=False)
    player_b = Column(String(64), nullable=True)
    # 9 個字元：'-' 空格，'X' 玩家 A，'O' 玩家 B
    board = Column(String(9), nullable=False, default="---------")
    status = Column(Enum(GameStatus), nullable=False, default=GameStatus.WAITING)
    turn = Column(String(64), nullable=False)
    winner = Column(String(64), nullable=True)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow)

    moves = relationship(
        "Move",
        back_populates="game",
        order_by="Move.sequence",
        cascade="all, delete-orphan",
    )


class Move(Base):
    __tablename__ = "moves"
    __table_args__ = (
        UniqueConstraint("game_id", "sequence", name="uq_moves_game_sequence"),
        UniqueConstraint("game_id", "position", name="uq_moves_game_position"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(String(36), ForeignKey("games.id"), nullable=False, index=True)
    player_id = Column(String(64), nullable=False)
    position = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    game = relationship("Game", back_populates="moves")
