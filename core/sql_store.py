"""
SQLAlchemy 版的 Session Store

寫入流程（save）：
1. SELECT ... FOR UPDATE 鎖住 games 這一列
2. 比對 version（樂觀鎖），不符就拋 StoreConflict
3. 更新 games 這一列 + 新增 moves
4. 由 @transactional 一次 commit（失敗自動 rollback）

不會出現「有落子紀錄但棋盤沒更新」這種半套寫入
"""
import logging
from typing import Callable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload

from database import SessionLocal, transactional
from models import Game, Move
from core.board import Board
from core.exceptions import GameNotFound, StoreConflict, StoreUnavailable
from core.locks import with_game_lock
from core.session_state import GameSession, MoveRecord
from core.session_store import SessionStore

logger = logging.getLogger(__name__)


def to_domain(row: Game) -> GameSession:
    """ORM row -> 不可變的 GameSession snapshot"""
    moves = tuple(
        MoveRecord(
            game_id=row.id,
            player_id=move.player_id,
            position=move.position,
            sequence=move.sequence,
            timestamp=move.created_at,
        )
        for move in sorted(row.moves, key=lambda m: m.sequence)
    )
    return GameSession(
        id=row.id,
        player_a=row.player_a,
        player_b=row.player_b,
        board=Board.from_string(row.board),
        status=row.status,
        turn=row.turn,
        winner=row.winner,
        moves=moves,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@transactional
def insert_game(db: Session, game: GameSession) -> None:
    row = Game(
        id=game.id,
        player_a=game.player_a,
        player_b=game.player_b,
        board=game.board.to_string(),
        status=game.status,
        turn=game.turn,
        winner=game.winner,
        version=game.version,
    )
    if game.created_at is not None:
        row.created_at = game.created_at
        row.updated_at = game.created_at
    db.add(row)


@transactional
def update_game(db: Session, game: GameSession, expected_version: int) -> None:
    """
    寫入一局的新狀態（單一 transaction）

    參數：
        db: SQLAlchemy Session
        game: 新的 snapshot（version 已經 +1）
        expected_version: 讀取時看到的版本

    異常：
        GameNotFound: 這局不存在
        StoreConflict: 版本不符（別人先寫了）
    """
    row = with_game_lock(game.id, db).first()
    if not row:
        raise GameNotFound(game.id)
    if row.version != expected_version:
        raise StoreConflict(game.id, expected_version, row.version)

    row.player_b = game.player_b
    row.board = game.board.to_string()
    row.status = game.status
    row.turn = game.turn
    row.winner = game.winner
    row.version = game.version
    if game.updated_at is not None:
        row.updated_at = game.updated_at

    # 只追加還沒寫入的落子（move log 是 append-only）
    stored = db.query(func.count(Move.id)).filter(Move.game_id == game.id).scalar()
    for move in game.moves[stored:]:
        db.add(Move(
            game_id=game.id,
            player_id=move.player_id,
            position=move.position,
            sequence=move.sequence,
            created_at=move.timestamp,
        ))


class SqlSessionStore(SessionStore):
    """用 SQLAlchemy sessionmaker 存取 games / moves"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def load(self, game_id: str) -> GameSession:
        db = self._session_factory()
        try:
            row = (
                db.query(Game)
                .options(selectinload(Game.moves))
                .filter(Game.id == game_id)
                .first()
            )
            if not row:
                raise GameNotFound(game_id)
            return to_domain(row)
        except OperationalError as e:
            raise StoreUnavailable(f"Failed to load game {game_id}: {e}") from e
        finally:
            db.close()

    def create(self, game: GameSession) -> None:
        db = self._session_factory()
        try:
            insert_game(db, game)
        except IntegrityError as e:
            raise StoreConflict(game.id) from e
        except OperationalError as e:
            raise StoreUnavailable(f"Failed to create game {game.id}: {e}") from e
        finally:
            db.close()

    def save(self, game: GameSession, expected_version: int) -> None:
        db = self._session_factory()
        try:
            update_game(db, game, expected_version)
        except IntegrityError as e:
            # 唯一鍵 (game_id, sequence) / (game_id, position) 被搶先寫入
            raise StoreConflict(game.id, expected_version) from e
        except OperationalError as e:
            raise StoreUnavailable(f"Failed to save game {game.id}: {e}") from e
        finally:
            db.close()
