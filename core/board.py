"""
棋盤與連線判定

棋盤固定 3x3，以 9 格 row-major 儲存：

    0 | 1 | 2
    3 | 4 | 5
    6 | 7 | 8

純計算邏輯，不碰 DB，沒有狀態
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

BOARD_SIZE = 9

# 橫列、直行、對角線；依此順序檢查
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
)


class Cell(str, enum.Enum):
    """一格棋盤，value 就是對外的符號（'-' / 'X' / 'O'）"""
    EMPTY = "-"
    MARK_A = "X"
    MARK_B = "O"


@dataclass(frozen=True)
class Board:
    """不可變的 9 格棋盤，place 會回傳新的 Board"""
    cells: Tuple[Cell, ...] = (Cell.EMPTY,) * BOARD_SIZE

    def __post_init__(self):
        if len(self.cells) != BOARD_SIZE:
            raise ValueError(f"Board must have {BOARD_SIZE} cells, got {len(self.cells)}")
        # list 或原始符號一律轉成 Cell tuple
        object.__setattr__(self, "cells", tuple(Cell(c) for c in self.cells))

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def from_string(cls, text: str) -> "Board":
        """
        解析 9 個字元的棋盤字串

        範例：
            Board.from_string("XO-X-O---")

        異常：
            ValueError: 長度不是 9 或有未知符號
        """
        if len(text) != BOARD_SIZE:
            raise ValueError(f"Board string must be {BOARD_SIZE} characters, got {text!r}")
        return cls(tuple(Cell(ch) for ch in text))

    def to_string(self) -> str:
        return "".join(cell.value for cell in self.cells)

    def __getitem__(self, position: int) -> Cell:
        return self.cells[position]

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells)

    def __len__(self) -> int:
        return BOARD_SIZE

    def __str__(self) -> str:
        return self.to_string()

    def is_empty_at(self, position: int) -> bool:
        return self.cells[position] == Cell.EMPTY

    def place(self, position: int, mark: Cell) -> "Board":
        """
        在副本上落子，原棋盤不變

        參數：
            position: 格子（0-8）
            mark: MARK_A 或 MARK_B

        返回：
            新的 Board

        異常：
            IndexError: 位置超出範圍
            ValueError: 記號是 EMPTY，或格子已經有子（每格最多寫一次）
        """
        if not 0 <= position < BOARD_SIZE:
            raise IndexError(f"Position {position} out of range")
        if mark == Cell.EMPTY:
            raise ValueError("Cannot place an empty mark")
        if self.cells[position] != Cell.EMPTY:
            raise ValueError(f"Cell {position} is already occupied")
        cells = list(self.cells)
        cells[position] = mark
        return Board(tuple(cells))

    def filled_count(self) -> int:
        return sum(1 for cell in self.cells if cell != Cell.EMPTY)


def find_line(board: Board) -> Optional[Tuple[int, int, int]]:
    """回傳第一條完成的連線（三個位置），沒有則 None"""
    for a, b, c in WINNING_LINES:
        if board[a] != Cell.EMPTY and board[a] == board[b] == board[c]:
            return (a, b, c)
    return None


def detect_line(board: Board) -> Optional[Cell]:
    """
    判定連線

    依 WINNING_LINES 的順序檢查 8 條線，
    回傳第一條三格相同且非空的線的記號

    參數：
        board: 棋盤

    返回：
        Cell.MARK_A / Cell.MARK_B，沒有連線則 None

    注意：
        - 同時有多條線時，結果固定是順序最前面的那條
    """
    line = find_line(board)
    if line is None:
        return None
    return board[line[0]]


def is_full(board: Board) -> bool:
    return all(cell != Cell.EMPTY for cell in board)
