"""
Notation constants: piece letters, default position, and record tokens.

All piece-letter tables and literal strings used by the FEN, SAN and PGN
modules live here so the parsers never introduce their own magic values.

Piece types reuse python-chess's integer constants (chess.PAWN through
chess.KING) so the rest of the code speaks the same vocabulary as any other
python-chess based tooling. The compound queen+knight piece (the "Amazon")
has no python-chess equivalent and gets the next free integer.
"""

import chess

# ---------------------------------------------------------------------------
# Piece types
# ---------------------------------------------------------------------------

AMAZON: int = 7

PIECE_TYPES: tuple[int, ...] = (
    chess.PAWN,
    chess.KNIGHT,
    chess.BISHOP,
    chess.ROOK,
    chess.QUEEN,
    chess.KING,
    AMAZON,
)

# Lower-case letter per piece type. White pieces are written upper-case in
# both FEN placement fields and SAN tokens.
PIECE_LETTERS: dict[int, str] = {
    chess.PAWN:   "p",
    chess.KNIGHT: "n",
    chess.BISHOP: "b",
    chess.ROOK:   "r",
    chess.QUEEN:  "q",
    chess.KING:   "k",
    AMAZON:       "a",
}

LETTER_PIECES: dict[str, int] = {letter: pt for pt, letter in PIECE_LETTERS.items()}

PIECE_NAMES: dict[int, str] = {
    chess.PAWN:   "pawn",
    chess.KNIGHT: "knight",
    chess.BISHOP: "bishop",
    chess.ROOK:   "rook",
    chess.QUEEN:  "queen",
    chess.KING:   "king",
    AMAZON:       "amazon",
}

# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
# Games of this variant start from a King+Amazon vs King+Rook ending unless
# the record carries its own FEN header.

DEFAULT_START_FEN: str = "8/8/4k3/4r3/8/8/8/3AK3 w - -"

# The variant never castles and never captures en passant, so both FEN
# fields are always written as placeholders.
CASTLING_PLACEHOLDER: str = "-"
EN_PASSANT_PLACEHOLDER: str = "-"

# Grid rows at which each side's pawns may still make a double step.
# Row 0 is rank 8, row 7 is rank 1.
PAWN_START_ROW: dict[bool, int] = {
    chess.WHITE: 6,
    chess.BLACK: 1,
}

# ---------------------------------------------------------------------------
# Game records
# ---------------------------------------------------------------------------

RESULTS: tuple[str, ...] = ("1-0", "0-1", "1/2-1/2", "*")
UNKNOWN_RESULT: str = "*"

CASTLING_TOKENS: frozenset[str] = frozenset({"O-O", "O-O-O", "0-0", "0-0-0"})
