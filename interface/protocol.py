"""
UCI client protocol state: line buffering and pending-request matching.

Everything in this module is synchronous and free of I/O so that it can be
driven line by line in tests. interface/uci.py wires it to a real process.

Line buffering:
    The engine's stdout arrives in arbitrary chunks. A chunk may end in the
    middle of a line, or hold several lines at once. LineBuffer keeps the
    trailing partial line until the next chunk completes it, and hands back
    only complete, non-blank lines in the order they were written.

Pending requests:
    Each outstanding question to the engine ("is the handshake done?",
    "what is the best move here?") is a PendingRequest holding an asyncio
    future. Requests are small state machines:

        AWAITING  -> no relevant line seen yet
        STREAMING -> analysis only: at least one "info depth" line absorbed
        RESOLVED  -> future settled; the request leaves the queue

    RequestQueue.dispatch() offers one line to every live request, newest
    first. A request that resolves on the line is removed; every request sees
    the line, so an old request can never swallow a line meant for a newer
    one.

Analysis scoring:
    An AnalysisRequest remembers the score of the deepest "info depth" line
    seen so far. Only a strictly greater depth replaces it; a later line at
    the same or a lower depth is ignored. Accumulation and resolution live in
    the same request, so once "bestmove" has resolved it, no further info
    line can change the delivered result.
"""

import asyncio
import enum
import logging
import re
from dataclasses import dataclass

import chess

_log = logging.getLogger(__name__)

_DEPTH_RE = re.compile(r"\bdepth (\d+)")
_SCORE_RE = re.compile(r"\bscore (cp|mate) (-?\d+)")
_PV_RE = re.compile(r"\bpv (\S+)")
_BESTMOVE_RE = re.compile(r"^bestmove (\S+)")

NO_MOVE = "(none)"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Score:
    """
    An engine score from the side to move's point of view.

    Exactly one of `cp` (centipawns) and `mate` (signed moves to mate) is set.
    """

    depth: int
    cp: int | None = None
    mate: int | None = None

    def as_dict(self) -> dict:
        if self.mate is not None:
            return {"mate": self.mate, "depth": self.depth}
        return {"cp": self.cp, "depth": self.depth}


@dataclass(frozen=True)
class InfoLine:
    """The parts of an "info depth ..." line the bridge cares about."""

    depth: int
    score: Score
    pv_move: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """
    Outcome of one analysis.

    Attributes:
        best_move: Move in UCI notation ("d1d7"), or None if the engine
                   reported "(none)" and no principal variation was seen.
        score:     Score of the deepest info line, or None if there was none.
    """

    best_move: str | None
    score: Score | None

    @property
    def depth(self) -> int:
        return self.score.depth if self.score is not None else 0

    @property
    def move(self) -> chess.Move | None:
        """best_move as a python-chess Move, or None if absent or unparsable."""
        if self.best_move is None:
            return None
        try:
            return chess.Move.from_uci(self.best_move)
        except ValueError:
            return None

    @property
    def from_square(self) -> str | None:
        move = self.move
        return chess.square_name(move.from_square) if move else None

    @property
    def to_square(self) -> str | None:
        move = self.move
        return chess.square_name(move.to_square) if move else None

    def as_dict(self) -> dict:
        return {
            "bestMove": self.best_move,
            "score": self.score.as_dict() if self.score is not None else None,
            "depth": self.depth,
        }


def parse_info(line: str) -> InfoLine | None:
    """
    Parse an "info depth ..." line.

    Returns None unless the line carries both a depth and a score; lines such
    as "info depth 12 currmove e2e4" are progress reports with nothing to keep.
    """
    depth_match = _DEPTH_RE.search(line)
    score_match = _SCORE_RE.search(line)
    if not (depth_match and score_match):
        return None

    depth = int(depth_match.group(1))
    value = int(score_match.group(2))
    if score_match.group(1) == "cp":
        score = Score(depth=depth, cp=value)
    else:
        score = Score(depth=depth, mate=value)

    pv_match = _PV_RE.search(line)
    return InfoLine(depth, score, pv_match.group(1) if pv_match else None)


# ---------------------------------------------------------------------------
# Line buffering
# ---------------------------------------------------------------------------


class LineBuffer:
    """Accumulates raw bytes and yields complete lines."""

    def __init__(self) -> None:
        self.partial: str = ""

    def feed(self, data: bytes) -> list[str]:
        """
        Append a chunk and return every line it completed.

        Lines are stripped of surrounding whitespace (including a "\\r" before
        the "\\n") and blank lines are dropped.
        """
        text = self.partial + data.decode("utf-8", errors="replace")
        *complete, self.partial = text.split("\n")
        return [line.strip() for line in complete if line.strip()]


# ---------------------------------------------------------------------------
# Pending requests
# ---------------------------------------------------------------------------


class RequestState(enum.Enum):
    AWAITING = "awaiting"
    STREAMING = "streaming"
    RESOLVED = "resolved"


class PendingRequest:
    """
    Base class: a future plus the state machine that settles it.

    Subclasses implement feed(), which inspects one line and returns True
    once the request has resolved and should leave the queue.
    """

    def __init__(self, future: asyncio.Future) -> None:
        self.future = future
        self.state = RequestState.AWAITING

    @property
    def done(self) -> bool:
        return self.state is RequestState.RESOLVED

    def feed(self, line: str) -> bool:
        raise NotImplementedError

    def resolve(self, value: object) -> None:
        self.state = RequestState.RESOLVED
        if not self.future.done():
            self.future.set_result(value)

    def fail(self, exc: BaseException) -> None:
        self.state = RequestState.RESOLVED
        if not self.future.done():
            self.future.set_exception(exc)


class KeywordRequest(PendingRequest):
    """Resolves with the first line containing `keyword` (e.g. "uciok")."""

    def __init__(self, future: asyncio.Future, keyword: str) -> None:
        super().__init__(future)
        self.keyword = keyword

    def feed(self, line: str) -> bool:
        if self.done:
            return True
        if self.keyword in line:
            self.resolve(line)
            return True
        return False

    def __repr__(self) -> str:
        return f"KeywordRequest({self.keyword!r}, {self.state.value})"


class AnalysisRequest(PendingRequest):
    """
    Collects "info depth" lines and resolves on "bestmove".

    Attributes:
        score:   Score of the deepest info line so far.
        pv_move: First move of that line's principal variation.
    """

    def __init__(self, future: asyncio.Future) -> None:
        super().__init__(future)
        self.score: Score | None = None
        self.pv_move: str | None = None

    def feed(self, line: str) -> bool:
        if self.done:
            return True

        if line.startswith("info depth"):
            info = parse_info(line)
            if info is not None:
                self._update(info)
            return False

        if line.startswith("bestmove"):
            best_move = self.pv_move
            match = _BESTMOVE_RE.match(line)
            if match:
                token = match.group(1)
                best_move = None if token == NO_MOVE else token
            self.resolve(AnalysisResult(best_move, self.score))
            return True

        return False

    def _update(self, info: InfoLine) -> None:
        self.state = RequestState.STREAMING
        if self.score is not None and info.depth <= self.score.depth:
            return
        self.score = info.score
        if info.pv_move is not None:
            self.pv_move = info.pv_move

    def __repr__(self) -> str:
        return f"AnalysisRequest({self.state.value}, score={self.score})"


class RequestQueue:
    """Live pending requests in registration order."""

    def __init__(self) -> None:
        self._requests: list[PendingRequest] = []

    def __len__(self) -> int:
        return len(self._requests)

    def __contains__(self, request: PendingRequest) -> bool:
        return request in self._requests

    def add(self, request: PendingRequest) -> PendingRequest:
        self._requests.append(request)
        return request

    def discard(self, request: PendingRequest) -> None:
        """Remove `request` if it is still queued. Safe to call repeatedly."""
        if request in self._requests:
            self._requests.remove(request)

    def dispatch(self, line: str) -> int:
        """
        Offer `line` to every request, newest first.

        Returns:
            The number of requests that resolved on this line.
        """
        resolved = 0
        for request in reversed(list(self._requests)):
            if request.feed(line):
                self.discard(request)
                resolved += 1
        return resolved

    def fail_all(self, exc: BaseException) -> None:
        """Settle every live request with `exc` and empty the queue."""
        requests, self._requests = self._requests, []
        for request in requests:
            _log.debug("Failing %r: %s", request, exc)
            request.fail(exc)
