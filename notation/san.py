"""
SAN (Standard Algebraic Notation) token resolution and move application.

The game records this viewer loads were produced by engines, so every token
is assumed to be a legal move. The job here is only to work out WHICH piece
moved: find the pieces of the right type and colour, keep those that match
any file/rank disambiguation, and keep those whose movement pattern reaches
the destination. Check, pins and full legal-move generation are not needed.

Token grammar (after stripping "+", "#", "!" and "?" suffixes):

    [piece letter] [from file] [from rank] [x] <to square> [=promotion]

A missing piece letter means a pawn. The capture marker is cosmetic. If more
than one piece still qualifies after filtering, the first one in row-major
scan order (a8, b8, ..., h1) is used; ambiguous tokens are not rejected.

Movement patterns (grid deltas, row 0 = rank 8):
    king    one square in any direction
    rook    along a rank or file, path clear
    bishop  along a diagonal, path clear
    queen   rook or bishop pattern, path clear
    knight  (2, 1) or (1, 2) jump, no path check
    amazon  knight jump, or queen pattern with path clear
    pawn    one step forward to an empty square, two from its start row to an
            empty square, or one diagonal step forward onto an occupied square

A pawn's forward direction comes from the pawn's own colour, not from the
side to move passed to resolve_move. For well-formed records the two always
agree because only pieces of the side to move are candidates.
"""

import logging
import re

import chess

from notation.constants import AMAZON, CASTLING_TOKENS, LETTER_PIECES, PAWN_START_ROW
from notation.errors import UnresolvedMove
from notation.models import Move, Piece, Position, Square

_log = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"[+#!?]+$")


# ---------------------------------------------------------------------------
# Movement patterns
# ---------------------------------------------------------------------------


def is_path_clear(position: Position, start: Square, end: Square) -> bool:
    """
    True if every square strictly between `start` and `end` is empty.

    Only meaningful for squares on a shared rank, file or diagonal; the walk
    steps one square at a time towards `end`.
    """
    d_row = (end.row > start.row) - (end.row < start.row)
    d_col = (end.col > start.col) - (end.col < start.col)
    row, col = start.row + d_row, start.col + d_col
    while (row, col) != (end.row, end.col):
        if position.board[row][col] is not None:
            return False
        row += d_row
        col += d_col
    return True


def _is_knight_jump(d_row: int, d_col: int) -> bool:
    return (abs(d_row), abs(d_col)) in ((2, 1), (1, 2))


def _is_line(d_row: int, d_col: int) -> bool:
    return (d_row == 0) != (d_col == 0)


def _is_diagonal(d_row: int, d_col: int) -> bool:
    return d_row != 0 and abs(d_row) == abs(d_col)


def can_move(position: Position, start: Square, end: Square) -> bool:
    """
    Whether the piece on `start` has a movement pattern reaching `end`.

    Returns False if `start` is empty or `start == end`. Occupancy of `end`
    only matters for pawns; captures of any colour are allowed because the
    caller has already established that the token is a legal move.
    """
    piece = position.piece_at(start)
    if piece is None or start == end:
        return False

    d_row = end.row - start.row
    d_col = end.col - start.col
    kind = piece.piece_type

    if kind == chess.KING:
        return abs(d_row) <= 1 and abs(d_col) <= 1
    if kind == chess.KNIGHT:
        return _is_knight_jump(d_row, d_col)
    if kind == chess.ROOK:
        return _is_line(d_row, d_col) and is_path_clear(position, start, end)
    if kind == chess.BISHOP:
        return _is_diagonal(d_row, d_col) and is_path_clear(position, start, end)
    if kind == chess.QUEEN:
        return (_is_line(d_row, d_col) or _is_diagonal(d_row, d_col)) and is_path_clear(position, start, end)
    if kind == AMAZON:
        if _is_knight_jump(d_row, d_col):
            return True
        return (_is_line(d_row, d_col) or _is_diagonal(d_row, d_col)) and is_path_clear(position, start, end)
    if kind == chess.PAWN:
        return _can_pawn_move(position, piece, start, end, d_row, d_col)
    return False


def _can_pawn_move(position: Position, pawn: Piece, start: Square, end: Square, d_row: int, d_col: int) -> bool:
    forward = -1 if pawn.color == chess.WHITE else 1
    target_empty = position.piece_at(end) is None

    if d_col == 0 and d_row == forward:
        return target_empty
    if d_col == 0 and d_row == 2 * forward and start.row == PAWN_START_ROW[pawn.color]:
        return target_empty
    if abs(d_col) == 1 and d_row == forward:
        return not target_empty
    return False


# ---------------------------------------------------------------------------
# Token resolution
# ---------------------------------------------------------------------------


def resolve_move(token: str, position: Position) -> Move:
    """
    Work out which move a SAN token denotes in `position`.

    The side to move is taken from `position.turn`.

    Args:
        token:    A single SAN token, e.g. "Ae2", "Rexe5+", "e8=Q".
        position: The position before the move.

    Returns:
        The resolved Move.

    Raises:
        UnresolvedMove: castling, a malformed token, or no qualifying piece.
    """
    move = _SUFFIX_RE.sub("", token.strip())

    if move in CASTLING_TOKENS:
        raise UnresolvedMove(token, "castling is not part of this variant")

    move = move.replace("x", "")

    promotion = None
    if "=" in move:
        move, _, promoted = move.partition("=")
        promotion = LETTER_PIECES.get(promoted[:1].lower())
        if promotion is None or promotion in (chess.PAWN, chess.KING):
            raise UnresolvedMove(token, f"bad promotion piece {promoted[:1]!r}")

    piece_type = chess.PAWN
    if move[:1].isupper():
        piece_type = LETTER_PIECES.get(move[0].lower())
        if piece_type is None:
            raise UnresolvedMove(token, f"unknown piece letter {move[0]!r}")
        move = move[1:]

    target = Square.parse(move[-2:])
    if target is None:
        raise UnresolvedMove(token, "no destination square")

    from_col = from_row = None
    for char in move[:-2]:
        if "a" <= char <= "h":
            from_col = ord(char) - ord("a")
        elif "1" <= char <= "8":
            from_row = 8 - int(char)
        else:
            raise UnresolvedMove(token, f"unexpected character {char!r}")

    wanted = Piece(piece_type, position.turn)
    for square, piece in position.pieces():
        if piece != wanted:
            continue
        if from_col is not None and square.col != from_col:
            continue
        if from_row is not None and square.row != from_row:
            continue
        if can_move(position, square, target):
            return Move(square, target, promotion)

    raise UnresolvedMove(token, f"no {wanted} can reach {target.name}")


def parse_move_token(token: str, board: Position, side_to_move: chess.Color) -> Move | None:
    """
    Lenient form of resolve_move: None instead of an exception.

    `side_to_move` overrides the turn recorded in `board`.
    """
    if board.turn != side_to_move:
        board = Position(board.board, side_to_move)
    try:
        return resolve_move(token, board)
    except UnresolvedMove as exc:
        _log.debug("SAN token skipped: %s", exc)
        return None


def apply_move(position: Position, move: Move) -> Position:
    """
    Return the position after `move`, with the other side to move.

    Whatever stood on the destination is replaced (a capture). A promotion
    replaces the moving piece with a piece of the mover's colour.
    """
    piece = position.piece_at(move.from_square)
    if piece is not None and move.promotion is not None:
        piece = Piece(move.promotion, piece.color)
    return position.replace(
        {move.from_square: None, move.to_square: piece},
        turn=not position.turn,
    )
