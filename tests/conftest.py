"""
Pytest fixtures：SessionEngine、兩種 Store、固定時鐘
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

from database import init_db, make_engine, make_session_factory
from core.locks import SessionGuard
from core.session_engine import SessionEngine
from core.session_store import InMemorySessionStore
from core.sql_store import SqlSessionStore


class TickingClock:
    """固定時鐘：每呼叫一次往後推一秒"""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def engine(store, clock):
    """InMemorySessionStore 上的 Engine，ID 和時間都可預測"""
    counter = itertools.count(1)
    return SessionEngine(
        store=store,
        guard=SessionGuard(timeout=2.0),
        max_retries=3,
        clock=clock,
        id_factory=lambda: f"game-{next(counter)}",
    )


@pytest.fixture
def started_game(engine):
    """P1 建立、P2 加入，輪到 P1"""
    game_id = engine.create_session("P1")
    engine.join_session(game_id, "P2")
    return game_id


@pytest.fixture
def play(engine):
    """依序下 (player, position)，回傳最後一個 snapshot"""
    def _play(game_id, moves):
        game = None
        for player_id, position in moves:
            game = engine.apply_move(game_id, player_id, position)
        return game
    return _play


@pytest.fixture
def sql_session_factory():
    """記憶體內的 SQLite，多執行緒共用同一條連線"""
    db_engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(db_engine)
    yield make_session_factory(db_engine)
    db_engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory):
    return SqlSessionStore(sql_session_factory)
