"""
FEN (Forsyth-Edwards Notation) decoding and encoding.

Only the first two FEN fields carry information in this variant: piece
placement and side to move. Castling and en passant never happen, so
encode_fen always writes "-" placeholders for them, and decode_fen ignores
whatever follows the side-to-move field (including move counters).

Piece letters are the standard KQRBNP set plus "A" for the Amazon
(queen + knight compound), upper-case for White.

decode_fen is lenient by default: a short or over-long rank is truncated,
missing ranks stay empty and unknown letters leave their square empty, so
decoding never fails. Pass strict=True to get InvalidPosition instead.
"""

import chess

from notation.constants import CASTLING_PLACEHOLDER, EN_PASSANT_PLACEHOLDER
from notation.errors import InvalidPosition
from notation.models import Board, Piece, Position


def decode_fen(fen: str, strict: bool = False) -> Position:
    """
    Decode a FEN string into a Position.

    Args:
        fen:    FEN text. Only placement and side to move are read.
        strict: Raise InvalidPosition for anything other than exactly 8 ranks
                of exactly 8 squares with known letters and a "w"/"b" side.

    Returns:
        The decoded Position. White moves if the side field is absent.

    Example:
        >>> decode_fen("8/8/4k3/4r3/8/8/8/3AK3 w - -").turn
        True
    """
    parts = fen.strip().split()
    if not parts:
        if strict:
            raise InvalidPosition("FEN is empty", fen)
        return Position()

    board = _decode_placement(parts[0], fen, strict)

    side = parts[1] if len(parts) > 1 else "w"
    if strict and side not in ("w", "b"):
        raise InvalidPosition(f"side to move must be 'w' or 'b', got {side!r}", fen)

    return Position(board, chess.BLACK if side == "b" else chess.WHITE)


def _decode_placement(placement: str, fen: str, strict: bool) -> Board:
    ranks = placement.split("/")
    if strict and len(ranks) != 8:
        raise InvalidPosition(f"placement must have 8 ranks, got {len(ranks)}", fen)

    rows: list[list[Piece | None]] = [[None] * 8 for _ in range(8)]
    for row, rank in enumerate(ranks[:8]):
        col = 0
        for char in rank:
            if col >= 8:
                if strict:
                    raise InvalidPosition(f"rank {8 - row} is wider than 8 squares", fen)
                break
            if "1" <= char <= "8":
                col += int(char)
                continue
            piece = Piece.from_symbol(char)
            if piece is None and strict:
                raise InvalidPosition(f"unknown piece letter {char!r}", fen)
            rows[row][col] = piece
            col += 1
        if strict and col != 8:
            raise InvalidPosition(f"rank {8 - row} does not span 8 squares", fen)

    return tuple(tuple(row) for row in rows)


def encode_fen(position: Position) -> str:
    """
    Encode a Position as "<placement> <side> - -".

    Runs of empty squares are written as a single digit per run.
    """
    ranks = []
    for rank in position.board:
        text = ""
        empty = 0
        for piece in rank:
            if piece is None:
                empty += 1
                continue
            if empty:
                text += str(empty)
                empty = 0
            text += piece.symbol()
        if empty:
            text += str(empty)
        ranks.append(text)

    side = "w" if position.turn == chess.WHITE else "b"
    return f"{'/'.join(ranks)} {side} {CASTLING_PLACEHOLDER} {EN_PASSANT_PLACEHOLDER}"
