"""Exceptions raised by the notation package in strict mode."""


class NotationError(Exception):
    """Base class for all notation parsing errors."""


class InvalidPosition(NotationError):
    """A FEN string that cannot describe a full 8x8 position."""

    def __init__(self, message: str, fen: str | None = None):
        super().__init__(message)
        self.fen = fen


class MalformedRecord(NotationError):
    """A game record whose move text cannot be replayed in full."""


class UnresolvedMove(MalformedRecord):
    """
    A single SAN token that does not resolve to a piece on the board.

    Attributes:
        token:  The token as it appeared in the record.
        reason: Short human-readable cause, e.g. "no candidate piece".
    """

    def __init__(self, token: str, reason: str):
        super().__init__(f"cannot apply {token!r}: {reason}")
        self.token = token
        self.reason = reason
