"""
Game record (PGN-like) decoding.

Input is a sequence of blocks. Each block has optional tag pairs followed by
move text, for example:

    [White "Engine"]
    [Black "Fairy-Stockfish"]
    [FEN "8/8/4k3/4r3/8/8/8/3AK3 w - -"]
    [Result "1-0"]

    1. Ae2 {+66.02/24 0.83s} Kd6 {-M4/245 0.007s} 2. ... 1-0

Blocks are separated by a blank line that is directly followed by a "["
line. Move numbers and result tokens never match the move pattern, so move
text is read by scanning for SAN tokens, each optionally followed by a brace
annotation. An annotation holding "<score>/<depth> [<seconds>s]" or
"<sign>M<n>/<depth>" becomes an Evaluation, recorded exactly as written.
"""

import logging
import re

from notation.constants import RESULTS, UNKNOWN_RESULT
from notation.models import Evaluation, GameRecord

_log = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n\n(?=\[)")
_TAG_RE = re.compile(r'\[(\w+)\s+"([^"]*)"\]')
_TAG_STRIP_RE = re.compile(r"\[[^\]]*\]")
_MOVE_RE = re.compile(
    r"([KQRBNAP]?[a-h]?[1-8]?x?[a-h][1-8](?:=[QRBNA])?[+#]?|O-O-O|O-O)"
    r"\s*(?:\{([^}]*)\})?"
)
_RESULT_RE = re.compile(r"(1-0|0-1|1/2-1/2|\*)\s*$")

_MATE_RE = re.compile(r"([+-]?)M(\d+)/(\d+)")
_SCORE_RE = re.compile(r"([+-]?\d+(?:\.\d*)?)/(\d+)")
_SECONDS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*s\b")


def parse_evaluation(annotation: str) -> Evaluation | None:
    """
    Read an engine evaluation out of a brace annotation.

    Examples:
        "+66.02/24 0.83s" -> pawns=66.02, depth=24, seconds=0.83
        "-M4/245 0.007s"  -> mate=-4, depth=245, seconds=0.007
        "book"            -> None

    Returns:
        The Evaluation, or None if the annotation holds no score.
    """
    if not annotation:
        return None

    seconds = None
    seconds_match = _SECONDS_RE.search(annotation)
    if seconds_match:
        seconds = float(seconds_match.group(1))

    mate_match = _MATE_RE.search(annotation)
    if mate_match:
        sign = -1 if mate_match.group(1) == "-" else 1
        return Evaluation(
            mate=sign * int(mate_match.group(2)),
            depth=int(mate_match.group(3)),
            seconds=seconds,
        )

    score_match = _SCORE_RE.search(annotation)
    if score_match:
        return Evaluation(
            pawns=float(score_match.group(1)),
            depth=int(score_match.group(2)),
            seconds=seconds,
        )

    return None


def decode_game(text: str) -> list[GameRecord]:
    """
    Decode every game block in `text`.

    A block with no move tokens and no FEN tag is dropped; everything else
    yields one GameRecord, in input order.

    Args:
        text: Already-decoded record text (file contents, pasted text, ...).

    Returns:
        The decoded games, possibly empty.
    """
    text = text.replace("\r\n", "\n")
    games: list[GameRecord] = []

    for block in _BLOCK_SPLIT_RE.split(text):
        if not block.strip():
            continue
        game = _decode_block(block)
        if game.moves or game.fen:
            games.append(game)
        else:
            _log.debug("Dropping game block without moves or FEN: %.40r", block)

    return games


def _decode_block(block: str) -> GameRecord:
    game = GameRecord()
    for key, value in _TAG_RE.findall(block):
        game.headers[key] = value

    body = _TAG_STRIP_RE.sub("", block).strip()

    for match in _MOVE_RE.finditer(body):
        game.moves.append(match.group(1))
        game.evaluations.append(parse_evaluation(match.group(2) or ""))

    result = game.headers.get("Result")
    if result is None:
        result_match = _RESULT_RE.search(body)
        result = result_match.group(1) if result_match else UNKNOWN_RESULT
    game.result = result if result in RESULTS else UNKNOWN_RESULT

    return game
