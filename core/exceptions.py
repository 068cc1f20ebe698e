"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

每個異常都有一個固定的 code，API 層會原樣回傳給前端
"""
import enum


class TicTacToeException(Exception):
    """所有遊戲異常的基類"""
    code = "GAME_ERROR"


# ============ Game 相關異常 ============

class GameNotFound(TicTacToeException):
    """遊戲不存在"""
    code = "GAME_NOT_FOUND"

    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


# ============ 落子驗證異常 ============

class RejectionReason(str, enum.Enum):
    """落子被拒絕的原因（依檢查順序排列）"""
    GAME_NOT_ACTIVE = "GAME_NOT_ACTIVE"
    NOT_PLAYERS_TURN = "NOT_PLAYERS_TURN"
    INVALID_POSITION = "INVALID_POSITION"
    CELL_OCCUPIED = "CELL_OCCUPIED"


class MoveRejected(TicTacToeException):
    """落子不合法（沒有任何狀態被改變）"""
    reason = None

    def __init__(self, message=None):
        super().__init__(message or self.reason.value)

    @property
    def code(self):
        return self.reason.value


class GameNotActive(MoveRejected):
    """遊戲尚未開始或已經結束"""
    reason = RejectionReason.GAME_NOT_ACTIVE


class NotPlayersTurn(MoveRejected):
    """不是這位玩家的回合"""
    reason = RejectionReason.NOT_PLAYERS_TURN


class InvalidPosition(MoveRejected):
    """位置不在 0-8"""
    reason = RejectionReason.INVALID_POSITION


class CellOccupied(MoveRejected):
    """格子已經有人下過"""
    reason = RejectionReason.CELL_OCCUPIED


REJECTION_ERRORS = {
    cls.reason: cls
    for cls in (GameNotActive, NotPlayersTurn, InvalidPosition, CellOccupied)
}


# ============ 狀態轉換異常 ============

class InvalidStateTransition(TicTacToeException):
    """非法的狀態轉換"""
    code = "INVALID_STATE_TRANSITION"


class InvariantViolation(TicTacToeException):
    """計算出來的遊戲狀態不符合不變量（絕對不會寫入 Store）"""
    code = "INVARIANT_VIOLATION"


# ============ Store / 並發相關異常 ============

class StoreUnavailable(TicTacToeException):
    """底層儲存失敗（連線、逾時等）"""
    code = "STORE_UNAVAILABLE"


class StoreConflict(TicTacToeException):
    """樂觀鎖版本不符：有別的寫入者搶先了"""
    code = "CONFLICT"

    def __init__(self, game_id, expected_version=None, actual_version=None):
        self.game_id = game_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Game {game_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class SessionBusy(TicTacToeException):
    """在限定時間內拿不到這局的寫入鎖"""
    code = "SESSION_BUSY"

    def __init__(self, game_id, timeout):
        self.game_id = game_id
        self.timeout = timeout
        super().__init__(f"Game {game_id} is busy, could not acquire lock within {timeout}s")
