"""
Data model shared by the FEN, SAN, PGN and replay modules.

Board layout:
    A board is an 8x8 tuple of tuples. Row 0 is rank 8 and row 7 is rank 1;
    column 0 is the a-file and column 7 the h-file. This is the order in which
    FEN lists squares, so decoding and encoding are straight row-major walks.

    python-chess numbers squares the other way up (a1 = 0, h8 = 63). Square
    converts between the two so that square names always come from
    chess.square_name and never from hand-written string arithmetic.

Immutability:
    Position, Piece, Square, Move and Evaluation are immutable. Applying a
    move produces a new Position via Position.replace(), which copies only the
    rows that change. A BoardHistory can therefore hand out its snapshots
    without any risk of one ply's board aliasing another's.
"""

from dataclasses import dataclass, field
from typing import Iterator, NamedTuple

import chess

from notation.constants import LETTER_PIECES, PIECE_LETTERS, PIECE_NAMES, UNKNOWN_RESULT


@dataclass(frozen=True)
class Piece:
    """A piece marker: python-chess piece type (or AMAZON) plus colour."""

    piece_type: int
    color: chess.Color

    def symbol(self) -> str:
        letter = PIECE_LETTERS[self.piece_type]
        return letter.upper() if self.color == chess.WHITE else letter

    @classmethod
    def from_symbol(cls, symbol: str) -> "Piece | None":
        """Return the piece for a FEN letter, or None for an unknown letter."""
        piece_type = LETTER_PIECES.get(symbol.lower())
        if piece_type is None:
            return None
        return cls(piece_type, chess.WHITE if symbol.isupper() else chess.BLACK)

    def __str__(self) -> str:
        side = "white" if self.color == chess.WHITE else "black"
        return f"{side} {PIECE_NAMES[self.piece_type]}"


class Square(NamedTuple):
    """Grid coordinates of a square (row 0 = rank 8, col 0 = a-file)."""

    row: int
    col: int

    @property
    def name(self) -> str:
        return chess.square_name(self.to_chess())

    def to_chess(self) -> chess.Square:
        return chess.square(self.col, 7 - self.row)

    @classmethod
    def from_chess(cls, square: chess.Square) -> "Square":
        return cls(7 - chess.square_rank(square), chess.square_file(square))

    @classmethod
    def parse(cls, name: str) -> "Square | None":
        """Parse an algebraic square name like "e4"; None if it is not one."""
        if name not in chess.SQUARE_NAMES:
            return None
        return cls.from_chess(chess.parse_square(name))


Board = tuple[tuple[Piece | None, ...], ...]

EMPTY_BOARD: Board = tuple((None,) * 8 for _ in range(8))


@dataclass(frozen=True)
class Position:
    """
    A board plus the side to move.

    Attributes:
        board: 8x8 grid of optional pieces (see module docstring for layout).
        turn:  chess.WHITE or chess.BLACK.
    """

    board: Board = EMPTY_BOARD
    turn: chess.Color = chess.WHITE

    def piece_at(self, square: Square) -> Piece | None:
        return self.board[square.row][square.col]

    def pieces(self) -> Iterator[tuple[Square, Piece]]:
        """Yield (square, piece) for every occupied square in row-major order."""
        for row, rank in enumerate(self.board):
            for col, piece in enumerate(rank):
                if piece is not None:
                    yield Square(row, col), piece

    def replace(
        self,
        changes: dict[Square, Piece | None],
        turn: chess.Color | None = None,
    ) -> "Position":
        """
        Return a new Position with the given squares overwritten.

        Rows that are not touched by `changes` are shared with this position;
        since rows are tuples, sharing them is safe.

        Args:
            changes: Mapping of square to its new content (None empties it).
            turn:    Side to move in the new position. Defaults to unchanged.
        """
        rows = list(self.board)
        for row in {square.row for square in changes}:
            cells = list(rows[row])
            for square, piece in changes.items():
                if square.row == row:
                    cells[square.col] = piece
            rows[row] = tuple(cells)
        return Position(tuple(rows), self.turn if turn is None else turn)


@dataclass(frozen=True)
class Move:
    """A resolved move: source and destination squares plus optional promotion."""

    from_square: Square
    to_square: Square
    promotion: int | None = None

    def uci(self) -> str:
        suffix = PIECE_LETTERS[self.promotion] if self.promotion else ""
        return f"{self.from_square.name}{self.to_square.name}{suffix}"


@dataclass(frozen=True)
class Evaluation:
    """
    A strength estimate for a position.

    Exactly one of `pawns` (centipawns divided by 100) and `mate` (signed
    moves to mate) is set. Inside a BoardHistory every evaluation is from
    White's point of view: positive means White is better.
    """

    pawns: float | None = None
    mate: int | None = None
    depth: int | None = None
    seconds: float | None = None

    def flipped(self) -> "Evaluation":
        """Return the same evaluation seen from the other side."""
        return Evaluation(
            pawns=None if self.pawns is None else 0.0 - self.pawns,
            mate=None if self.mate is None else -self.mate,
            depth=self.depth,
            seconds=self.seconds,
        )

    @classmethod
    def from_engine(
        cls,
        cp: int | None,
        mate: int | None,
        depth: int | None,
        turn: chess.Color,
    ) -> "Evaluation":
        """
        Normalise a UCI score to White's point of view.

        UCI engines report scores from the side to move, so a score for a
        position with Black to move is flipped.
        """
        evaluation = cls(
            pawns=None if cp is None else cp / 100,
            mate=mate,
            depth=depth,
        )
        return evaluation if turn == chess.WHITE else evaluation.flipped()

    def as_dict(self) -> dict:
        return {
            "pawns": self.pawns,
            "mate": self.mate,
            "depth": self.depth,
            "seconds": self.seconds,
        }

    def __str__(self) -> str:
        if self.mate is not None:
            return f"M{'+' if self.mate > 0 else ''}{self.mate}"
        pawns = self.pawns or 0.0
        return f"{'+' if pawns > 0 else ''}{pawns:.2f}"


@dataclass
class GameRecord:
    """
    One decoded game block.

    Attributes:
        headers:     Tag pairs, e.g. {"White": "...", "FEN": "..."}.
        moves:       SAN tokens in the order they appear.
        evaluations: One entry per token; None where no annotation was given.
                     Annotations are stored as written (mover's point of view).
        result:      "1-0", "0-1", "1/2-1/2" or "*".
    """

    headers: dict[str, str] = field(default_factory=dict)
    moves: list[str] = field(default_factory=list)
    evaluations: list[Evaluation | None] = field(default_factory=list)
    result: str = UNKNOWN_RESULT

    @property
    def fen(self) -> str | None:
        return self.headers.get("FEN")

    @property
    def title(self) -> str:
        white = self.headers.get("White", "White")
        black = self.headers.get("Black", "Black")
        return f"{white} vs {black}"

    def label(self, index: int) -> str:
        """Menu label for the game at zero-based position `index`."""
        return f"Game {index + 1}: {self.title} ({self.result})"


@dataclass
class HistoryEntry:
    """
    One ply of a replayed game.

    Index 0 of a BoardHistory holds the starting position with no last move.
    `best_move` and `analysis` are filled in later if the caller asks the
    engine about this position.
    """

    position: Position
    last_move: Move | None = None
    san: str | None = None
    evaluation: Evaluation | None = None
    best_move: str | None = None
    analysis: Evaluation | None = None


@dataclass(frozen=True)
class MoveOutcome:
    """What replay did with one SAN token."""

    token: str
    applied: bool
    reason: str | None = None


@dataclass
class BoardHistory:
    """
    Ordered board snapshots for one game, one entry per applied ply.

    `outcomes` has one item per token of the source record, in order, so a
    caller can line the history up against the record even when some tokens
    were skipped.
    """

    entries: list[HistoryEntry]
    outcomes: list[MoveOutcome] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self.entries[index]

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    @property
    def skipped(self) -> list[MoveOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.applied]

    def clamp(self, index: int) -> int:
        """Clamp a navigation index into [0, len - 1]."""
        return max(0, min(index, len(self.entries) - 1))

    def attach_analysis(self, index: int, best_move: str | None, evaluation: Evaluation | None) -> None:
        """Cache an engine result on an entry. The position itself is untouched."""
        entry = self.entries[index]
        entry.best_move = best_move
        entry.analysis = evaluation

    def evaluation_at(self, index: int) -> Evaluation | None:
        """
        Best available evaluation to display at `index`.

        Preference order: cached engine analysis for this entry, the entry's
        own annotation, the nearest earlier annotated entry, then the nearest
        later one.
        """
        index = self.clamp(index)
        entry = self.entries[index]
        if entry.analysis is not None:
            return entry.analysis
        if entry.evaluation is not None:
            return entry.evaluation
        for earlier in reversed(self.entries[:index]):
            if earlier.evaluation is not None:
                return earlier.evaluation
        for later in self.entries[index + 1:]:
            if later.evaluation is not None:
                return later.evaluation
        return None

    def move_text(self) -> str:
        """Numbered move list, e.g. "1. Ae2 Kd6 2. Ke1" or "1... Kd6 2. Ae2"."""
        parts: list[str] = []
        number = 1
        for entry, previous in zip(self.entries[1:], self.entries):
            mover = previous.position.turn
            if mover == chess.WHITE:
                parts.append(f"{number}.")
            elif not parts:
                parts.append(f"{number}...")
            parts.append(entry.san or "")
            if mover == chess.BLACK:
                number += 1
        return " ".join(parts)
