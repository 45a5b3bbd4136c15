"""
Replay a GameRecord into a BoardHistory.

The replay folds resolve_move + apply_move over the record's tokens. Every
token gets a MoveOutcome; tokens that do not resolve are skipped (lenient
mode, the default) or raise MalformedRecord (strict mode).

Evaluation perspective:
    Annotations in game records are written from the point of view of the
    side that just moved. History entries store evaluations from White's
    point of view, so an annotation on a Black move is flipped here.
"""

import logging

import chess

from notation.constants import DEFAULT_START_FEN
from notation.errors import UnresolvedMove
from notation.fen import decode_fen
from notation.models import BoardHistory, GameRecord, HistoryEntry, MoveOutcome
from notation.san import apply_move, resolve_move

_log = logging.getLogger(__name__)


def replay(record: GameRecord, strict: bool = False) -> BoardHistory:
    """
    Build the board history for a game record.

    Args:
        record: A decoded game. Its FEN tag, if any, is the start position;
                otherwise DEFAULT_START_FEN is used.
        strict: Raise on the first token that does not resolve instead of
                skipping it.

    Returns:
        A BoardHistory whose entry 0 is the start position and which holds one
        further entry per applied token.

    Raises:
        MalformedRecord: in strict mode, for the first unresolved token.
    """
    position = decode_fen(record.fen or DEFAULT_START_FEN, strict=strict)
    history = BoardHistory(entries=[HistoryEntry(position)])

    for index, token in enumerate(record.moves):
        try:
            move = resolve_move(token, position)
        except UnresolvedMove as exc:
            if strict:
                raise
            _log.debug("Skipping ply %d: %s", index + 1, exc)
            history.outcomes.append(MoveOutcome(token, applied=False, reason=exc.reason))
            continue

        evaluation = record.evaluations[index] if index < len(record.evaluations) else None
        if evaluation is not None and position.turn == chess.BLACK:
            evaluation = evaluation.flipped()

        position = apply_move(position, move)
        history.entries.append(HistoryEntry(position, last_move=move, san=token, evaluation=evaluation))
        history.outcomes.append(MoveOutcome(token, applied=True))

    return history
