"""
Mini-game rules and saved-progress helpers.

Game2048, MemoryMatch, WhackAMole and the tic-tac-toe helpers are a
reference rules library for the browser games; no route calls them. They
hold pure game state and take an injectable random.Random so moves are
reproducible.

Saved progress for the story games is a JSON blob merged over a default
state; last write wins. The lab escape state is validated before it is
scored.
"""

import copy
import random
from typing import Optional, List, Dict, Any, Tuple

from pydantic import BaseModel, Field

from .supabase_service import utc_now


# ===================================================================================
# 2048
# ===================================================================================

class Game2048:
    """4x4 slide-and-merge board. Empty cells are 0."""

    SIZE = 4
    TARGET = 2048

    def __init__(self, rng: Optional[random.Random] = None, board: Optional[List[List[int]]] = None):
        self.rng = rng or random.Random()
        self.score = 0
        if board is not None:
            self.board = [list(row) for row in board]
        else:
            self.board = [[0] * self.SIZE for _ in range(self.SIZE)]
            self.spawn_tile()
            self.spawn_tile()

    @staticmethod
    def merge_line(line: List[int]) -> Tuple[List[int], int]:
        """Slide one row toward index 0. Each tile merges at most once per move."""
        tiles = [v for v in line if v]
        merged = []
        gained = 0
        i = 0
        while i < len(tiles):
            if i + 1 < len(tiles) and tiles[i] == tiles[i + 1]:
                merged.append(tiles[i] * 2)
                gained += tiles[i] * 2
                i += 2
            else:
                merged.append(tiles[i])
                i += 1
        return merged + [0] * (len(line) - len(merged)), gained

    def empty_cells(self) -> List[Tuple[int, int]]:
        return [(r, c) for r in range(self.SIZE) for c in range(self.SIZE) if not self.board[r][c]]

    def spawn_tile(self) -> Optional[Tuple[int, int]]:
        cells = self.empty_cells()
        if not cells:
            return None
        r, c = self.rng.choice(cells)
        self.board[r][c] = 4 if self.rng.random() < 0.1 else 2
        return r, c

    def move(self, direction: str) -> bool:
        """Apply left/right/up/down. Returns False (and spawns nothing) if nothing moved."""
        if direction not in ("left", "right", "up", "down"):
            raise ValueError(f"Unknown direction: {direction}")

        size = self.SIZE
        if direction in ("left", "right"):
            lines = [list(row) for row in self.board]
        else:
            lines = [[self.board[r][c] for r in range(size)] for c in range(size)]
        reverse = direction in ("right", "down")

        new_lines = []
        for line in lines:
            source = line[::-1] if reverse else line
            merged, gained = self.merge_line(source)
            self.score += gained
            new_lines.append(merged[::-1] if reverse else merged)

        if direction in ("left", "right"):
            new_board = new_lines
        else:
            new_board = [[new_lines[c][r] for c in range(size)] for r in range(size)]

        if new_board == self.board:
            return False
        self.board = new_board
        self.spawn_tile()
        return True

    def has_won(self) -> bool:
        return any(v >= self.TARGET for row in self.board for v in row)

    def can_move(self) -> bool:
        if self.empty_cells():
            return True
        for r in range(self.SIZE):
            for c in range(self.SIZE):
                v = self.board[r][c]
                if c + 1 < self.SIZE and self.board[r][c + 1] == v:
                    return True
                if r + 1 < self.SIZE and self.board[r + 1][c] == v:
                    return True
        return False


# ===================================================================================
# MEMORY MATCH
# ===================================================================================

MEMORY_CARD_VALUES = ["atom", "microscope", "dna", "testtube", "magnet", "lightbulb", "books", "brain"]


class MemoryMatch:
    def __init__(self, rng: Optional[random.Random] = None, values: Optional[List[str]] = None):
        self.rng = rng or random.Random()
        values = values or MEMORY_CARD_VALUES
        self.cards = [value for value in values for _ in range(2)]
        self.rng.shuffle(self.cards)
        self.matched = [False] * len(self.cards)
        self.flipped: List[int] = []
        self.moves = 0

    def flip(self, index: int) -> Optional[bool]:
        """
        Flip one card. Returns None after the first card of a turn, and
        True/False after the second depending on whether the pair matched.
        A mismatched pair is turned back face down immediately.
        """
        if index < 0 or index >= len(self.cards):
            raise IndexError(index)
        if self.matched[index] or index in self.flipped:
            raise ValueError(f"Card {index} is already face up")

        self.flipped.append(index)
        if len(self.flipped) < 2:
            return None

        self.moves += 1
        first, second = self.flipped
        self.flipped = []
        if self.cards[first] == self.cards[second]:
            self.matched[first] = self.matched[second] = True
            return True
        return False

    @property
    def finished(self) -> bool:
        return all(self.matched)


# ===================================================================================
# WHACK-A-MOLE
# ===================================================================================

class WhackAMole:
    """3x3 holes on a millisecond clock supplied by the caller"""

    HOLES = 9
    GAME_DURATION_MS = 30 * 1000
    MOLE_UP_TIME_MS = 900
    SPAWN_INTERVAL_MS = 1000

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.score = 0
        # hole index -> time the mole went down
        self.moles: Dict[int, int] = {}

    def is_over(self, now_ms: int) -> bool:
        return now_ms >= self.GAME_DURATION_MS

    def time_left(self, now_ms: int) -> int:
        return max(0, (self.GAME_DURATION_MS - now_ms) // 1000)

    def _expire(self, now_ms: int):
        self.moles = {hole: down for hole, down in self.moles.items() if down > now_ms}

    def visible(self, now_ms: int) -> List[bool]:
        self._expire(now_ms)
        return [hole in self.moles for hole in range(self.HOLES)]

    def spawn(self, now_ms: int) -> Optional[int]:
        if self.is_over(now_ms):
            return None
        self._expire(now_ms)
        free = [hole for hole in range(self.HOLES) if hole not in self.moles]
        if not free:
            return None
        hole = self.rng.choice(free)
        self.moles[hole] = now_ms + self.MOLE_UP_TIME_MS
        return hole

    def whack(self, hole: int, now_ms: int) -> bool:
        if self.is_over(now_ms):
            return False
        self._expire(now_ms)
        if hole not in self.moles:
            return False
        del self.moles[hole]
        self.score += 1
        return True


# ===================================================================================
# TIC-TAC-TOE
# ===================================================================================

WINNING_LINES = [
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
]


def tic_tac_toe_winner(board: List[Optional[str]]) -> Optional[str]:
    """'X' or 'O' for a completed line, 'draw' for a full board, else None"""
    for a, b, c in WINNING_LINES:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a]
    if all(board):
        return "draw"
    return None


def _completing_square(board: List[Optional[str]], mark: str) -> Optional[int]:
    for line in WINNING_LINES:
        values = [board[i] for i in line]
        if values.count(mark) == 2 and values.count(None) == 1:
            return line[values.index(None)]
    return None


def computer_move(board: List[Optional[str]], rng: Optional[random.Random] = None,
                  computer: str = "O", player: str = "X") -> Optional[int]:
    """Win if possible, else block, else centre, else a corner, else a side"""
    rng = rng or random.Random()
    for mark in (computer, player):
        square = _completing_square(board, mark)
        if square is not None:
            return square
    if board[4] is None:
        return 4
    for group in ([0, 2, 6, 8], [1, 3, 5, 7]):
        free = [i for i in group if board[i] is None]
        if free:
            return rng.choice(free)
    return None


# ===================================================================================
# SAVED PROGRESS
# ===================================================================================

LAB_ESCAPE_GAME_ID = "neet_lab_escape"
CHRONOMIND_GAME_ID = "chronomind_quantum_rescue"

LAB_ESCAPE_TOTAL_SECONDS = 30 * 60
LAB_ESCAPE_SUBJECTS = ["physics", "chemistry", "botany", "zoology"]

DEFAULT_GAME_STATES: Dict[str, Dict[str, Any]] = {
    LAB_ESCAPE_GAME_ID: {
        "currentRoom": "intro",
        "physicsPuzzlesSolved": [False] * 5,
        "chemistryPuzzlesSolved": [False] * 5,
        "botanyPuzzlesSolved": [False] * 5,
        "zoologyPuzzlesSolved": [False] * 5,
        "masterLocksSolved": {subject: False for subject in LAB_ESCAPE_SUBJECTS},
        "remainingTime": LAB_ESCAPE_TOTAL_SECONDS,
        "retriesUsed": 0,
        "finalQuestionAnsweredCorrectly": None,
    },
    CHRONOMIND_GAME_ID: {
        "currentChapter": "intro",
        "chapter1Progress": {
            "kinematicsSolved": False,
            "timeDilationSolved": False,
            "projectileMotionSolved": False,
        },
        "playerChoices": {},
        "memoryLossEvents": 0,
    },
}


class LabEscapeState(BaseModel):
    currentRoom: str
    physicsPuzzlesSolved: List[bool]
    chemistryPuzzlesSolved: List[bool]
    botanyPuzzlesSolved: List[bool]
    zoologyPuzzlesSolved: List[bool]
    masterLocksSolved: Dict[str, bool]
    remainingTime: int = Field(ge=0)
    retriesUsed: int = Field(ge=0)
    finalQuestionAnsweredCorrectly: Optional[bool] = None

    class Config:
        extra = "allow"


def default_game_state(game_id: str) -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_GAME_STATES.get(game_id, {}))


def merge_game_state(game_id: str, saved: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay a saved state on the defaults, one level deep for nested dicts"""
    state = default_game_state(game_id)
    for key, value in (saved or {}).items():
        if isinstance(value, dict) and isinstance(state.get(key), dict):
            state[key] = {**state[key], **value}
        else:
            state[key] = value
    return state


def lab_escape_score(state: Dict[str, Any]) -> int:
    score = 0
    for subject in LAB_ESCAPE_SUBJECTS:
        score += sum(1 for solved in state.get(f"{subject}PuzzlesSolved", []) if solved) * 10
    score += sum(50 for solved in (state.get("masterLocksSolved") or {}).values() if solved)
    if state.get("currentRoom") == "escaped":
        score += 100
    if state.get("finalQuestionAnsweredCorrectly"):
        score += 50
    score -= (state.get("retriesUsed") or 0) * 5
    return max(0, score)


def build_progress_row(user_id: str, game_id: str, update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a client save into the user_game_progress row to upsert.
    Raises pydantic.ValidationError when a lab escape state has the wrong shape.
    """
    state = merge_game_state(game_id, update.get("game_specific_state"))
    if game_id == LAB_ESCAPE_GAME_ID:
        state = LabEscapeState.model_validate(state).model_dump()
    now = utc_now()
    row = {
        "user_id": user_id,
        "game_id": game_id,
        "current_chapter": update.get("current_chapter"),
        "current_room": update.get("current_room"),
        "game_specific_state": state,
        "score": update.get("score"),
        "last_played": now,
        "completed_at": None,
    }

    if game_id == LAB_ESCAPE_GAME_ID:
        row["current_chapter"] = None
        row["current_room"] = state["currentRoom"]
        row["score"] = lab_escape_score(state)
        if state["currentRoom"] in ("escaped", "failed"):
            row["completed_at"] = now
    elif game_id == CHRONOMIND_GAME_ID:
        row["current_chapter"] = state["currentChapter"]
        row["score"] = None
        if state["currentChapter"] == "completed":
            row["completed_at"] = now

    return row
