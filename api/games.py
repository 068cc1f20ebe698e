"""
Game API Endpoints

職責：
1. 建立遊戲
2. 加入遊戲（第二位玩家）
3. 落子
4. 查詢遊戲 / 重播

所有業務邏輯集中在 SessionEngine，這裡只負責 HTTP 轉換：
- GameNotFound          -> 404
- MoveRejected          -> 400（回傳具體原因 code）
- StoreConflict / Busy  -> 409（呼叫者可以整個重試）
- StoreUnavailable      -> 503
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status

import logging

from schemas import (
    GameCreateResponse,
    GameResponse,
    MoveSubmit,
    ReplayFrame,
    ReplayResponse,
)
from api.dependencies import get_engine, get_player_id
from core.exceptions import (
    GameNotFound,
    MoveRejected,
    SessionBusy,
    StoreConflict,
    StoreUnavailable,
)
from core.session_engine import SessionEngine
from services.replay_service import replay_frames

router = APIRouter(prefix="/api/games", tags=["games"])
logger = logging.getLogger(__name__)


def _error(status_code: int, exc) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc)},
    )


@router.post("", response_model=GameCreateResponse, status_code=status.HTTP_201_CREATED)
def create_game(
    player_id: str = Depends(get_player_id),
    engine: SessionEngine = Depends(get_engine),
):
    """
    建立新遊戲（建立者成為玩家 A，執 X 先手）

    返回：
        - game_id: 新遊戲的 ID
    """
    try:
        game_id = engine.create_session(player_id)
        return GameCreateResponse(game_id=game_id)

    except StoreUnavailable as e:
        raise _error(503, e)
    except Exception as e:
        logger.error(f"Failed to create game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create game")


@router.get("/{game_id}", response_model=GameResponse)
def get_game(
    game_id: str,
    join: bool = Query(False),
    player_id: str = Depends(get_player_id),
    engine: SessionEngine = Depends(get_engine),
):
    """
    取得遊戲 snapshot（含完整落子紀錄）

    參數：
        join: true 時，若還有空位且呼叫者不是玩家 A，就直接入座成為玩家 B
              （打開遊戲頁面即加入）
    """
    try:
        if join:
            game = engine.join_session(game_id, player_id)
        else:
            game = engine.get_session(game_id)
        return GameResponse.from_session(game, me=player_id)

    except GameNotFound as e:
        raise _error(404, e)
    except (StoreConflict, SessionBusy) as e:
        raise _error(409, e)
    except StoreUnavailable as e:
        raise _error(503, e)
    except Exception as e:
        logger.error(f"Failed to get game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{game_id}/join", response_model=GameResponse)
def join_game(
    game_id: str,
    player_id: str = Depends(get_player_id),
    engine: SessionEngine = Depends(get_engine),
):
    """
    加入遊戲

    - 空位：成為玩家 B，遊戲開始（仍由玩家 A 先手）
    - 已入座：no-op
    - 座位已滿：以觀戰者身分取得 snapshot
    """
    try:
        game = engine.join_session(game_id, player_id)
        return GameResponse.from_session(game, me=player_id)

    except GameNotFound as e:
        raise _error(404, e)
    except (StoreConflict, SessionBusy) as e:
        raise _error(409, e)
    except StoreUnavailable as e:
        raise _error(503, e)
    except Exception as e:
        logger.error(f"Failed to join game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{game_id}/move", response_model=GameResponse)
def submit_move(
    game_id: str,
    move_data: MoveSubmit,
    player_id: str = Depends(get_player_id),
    engine: SessionEngine = Depends(get_engine),
):
    """
    落子

    **並發安全**：
    - 同一局的落子在 SessionGuard 內依序處理
    - 後到的請求會看到前一步之後的最新狀態，再重新驗證

    返回：
        落子後的 snapshot
    """
    try:
        logger.info(f"Submitting move for player {player_id} in game {game_id}: {move_data.position}")
        game = engine.apply_move(game_id, player_id, move_data.position)
        return GameResponse.from_session(game, me=player_id)

    except GameNotFound as e:
        raise _error(404, e)
    except MoveRejected as e:
        logger.info(f"Move rejected in game {game_id}: {e.code}")
        raise _error(400, e)
    except (StoreConflict, SessionBusy) as e:
        raise _error(409, e)
    except StoreUnavailable as e:
        raise _error(503, e)
    except Exception as e:
        logger.error(f"Failed to submit move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{game_id}/replay", response_model=ReplayResponse)
def get_replay(
    game_id: str,
    player_id: str = Depends(get_player_id),
    engine: SessionEngine = Depends(get_engine),
):
    """
    重播資料：每一步之後的棋盤

    完全由落子紀錄推導，不讀取儲存的棋盤字串
    """
    try:
        game = engine.get_session(game_id)
        return ReplayResponse(
            game_id=game.id,
            frames=[ReplayFrame(**frame) for frame in replay_frames(game)],
        )

    except GameNotFound as e:
        raise _error(404, e)
    except StoreUnavailable as e:
        raise _error(503, e)
    except Exception as e:
        logger.error(f"Failed to build replay for game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
