"""
FastAPI web application for the Amazon game viewer.

Exposes the notation engine and the UCI bridge to a browser front end:

    POST /api/analyze  — best move and score for one FEN, from the engine
    POST /api/games    — decode game-record text into replayed board histories
    GET  /api/health   — whether the engine is currently usable

Architecture notes:
- The engine bridge is created by the application lifespan and stored on
  app.state; request handlers reach it through the Request. There is no
  module-level engine instance, and tests build their own app with
  create_app().
- If the engine fails to start, the app still serves /api/games. Each
  /api/analyze call retries start() before answering 503.
- The bridge does not serialise analyses, so this layer does: every analysis
  runs under app.state.analysis_lock.
- /api/analyze is async (it awaits the engine); /api/games is a plain sync
  handler, which FastAPI runs in its thread pool.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from interface.constants import ANALYSIS_TIMEOUT, DEFAULT_DEPTH, HANDSHAKE_TIMEOUT, MAX_DEPTH, MIN_DEPTH, UCI_VARIANT
from interface.uci import EngineNotReady, EngineTimeout, EngineUnavailable, UciBridge
from notation.errors import InvalidPosition, MalformedRecord
from notation.fen import decode_fen, encode_fen
from notation.models import BoardHistory, Evaluation, GameRecord
from notation.pgn import decode_game
from notation.replay import replay

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """
    Client request for an engine analysis.

    Fields:
        fen:   Position to analyse ("<placement> <side> - -").
        depth: Search depth in plies, clamped to [MIN_DEPTH, MAX_DEPTH] so a
               stray request cannot tie the engine up indefinitely.
    """

    fen: str
    depth: int = DEFAULT_DEPTH

    @field_validator("depth")
    @classmethod
    def clamp_depth(cls, v: int) -> int:
        """Clamp depth to a safe operating range."""
        return max(MIN_DEPTH, min(v, MAX_DEPTH))


class AnalyzeResponse(BaseModel):
    """
    Engine answer for one position.

    Fields:
        bestMove:   Best move in UCI notation (e.g. "d1d7"), or null.
        score:      {"cp": n, "depth": d} or {"mate": n, "depth": d}, raw UCI
                    score from the side to move's point of view; null if the
                    engine sent no scored info line.
        depth:      Depth of the reported score (0 without a score).
        evaluation: The same score from White's point of view, in the shape
                    /api/games uses for ply evaluations; null without a score.
    """

    bestMove: str | None
    score: dict[str, int] | None = Field(description="Raw UCI score, from the side to move's point of view")
    depth: int
    evaluation: dict | None = Field(
        default=None,
        description="Score from White's point of view (pawns or mate), as in /api/games",
    )


class GamesRequest(BaseModel):
    """
    Game-record text to decode.

    Fields:
        pgn:    Raw record text, possibly holding several games.
        strict: Reject the request if any move token cannot be replayed,
                instead of skipping it.
    """

    pgn: str
    strict: bool = False


class PlyModel(BaseModel):
    fen: str
    san: str | None = None
    lastMove: list[str] | None = None
    evaluation: dict | None = None


class SkippedModel(BaseModel):
    token: str
    reason: str | None = None


class GameModel(BaseModel):
    label: str
    title: str
    headers: dict[str, str]
    result: str
    moveText: str
    plies: list[PlyModel] = Field(default_factory=list)
    skipped: list[SkippedModel] = Field(default_factory=list)


class HealthResponse(BaseModel):
    engine: str


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------


def _game_model(index: int, record: GameRecord, history: BoardHistory) -> GameModel:
    plies = []
    for entry in history:
        last_move = entry.last_move
        plies.append(PlyModel(
            fen=encode_fen(entry.position),
            san=entry.san,
            lastMove=[last_move.from_square.name, last_move.to_square.name] if last_move else None,
            evaluation=entry.evaluation.as_dict() if entry.evaluation else None,
        ))
    return GameModel(
        label=record.label(index),
        title=record.title,
        headers=record.headers,
        result=record.result,
        moveText=history.move_text(),
        plies=plies,
        skipped=[SkippedModel(token=o.token, reason=o.reason) for o in history.skipped],
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    engine_command: Sequence[str] | None = None,
    variant: str = UCI_VARIANT,
    handshake_timeout: float | None = HANDSHAKE_TIMEOUT,
    analysis_timeout: float | None = ANALYSIS_TIMEOUT,
) -> FastAPI:
    """
    Build the application with its own engine bridge.

    Args:
        engine_command:    argv for the engine; defaults to ENGINE_COMMAND.
        variant:           UCI_Variant sent during the handshake.
        handshake_timeout: Seconds allowed for each handshake reply.
        analysis_timeout:  Seconds allowed for one analysis to reach "bestmove".
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        bridge = UciBridge(engine_command, variant)
        app.state.engine = bridge
        app.state.analysis_lock = asyncio.Lock()
        app.state.handshake_timeout = handshake_timeout
        app.state.analysis_timeout = analysis_timeout
        try:
            await bridge.start(timeout=handshake_timeout)
        except EngineUnavailable as exc:
            _log.warning("Failed to start engine, analysis endpoint will not be available: %s", exc)
        yield
        await bridge.stop()

    app = FastAPI(title="Amazon Game Viewer", version="1.0.0", lifespan=lifespan)

    @app.post("/api/analyze", response_model=AnalyzeResponse)
    async def api_analyze(body: AnalyzeRequest, request: Request) -> AnalyzeResponse:
        """
        Analyse one position with the engine.

        Raises:
            HTTPException 400: FEN does not describe a full 8x8 position.
            HTTPException 503: engine unavailable (spawn or handshake failed,
                               or it exited mid-search).
            HTTPException 504: engine did not answer in time.
        """
        try:
            position = decode_fen(body.fen, strict=True)
        except InvalidPosition as exc:
            raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc

        # Only the re-encoded position reaches the engine; trailing fields of
        # the client's text are dropped.
        fen = encode_fen(position)

        bridge: UciBridge = request.app.state.engine
        async with request.app.state.analysis_lock:
            try:
                await bridge.start(timeout=request.app.state.handshake_timeout)
                result = await bridge.analyze(fen, body.depth, timeout=request.app.state.analysis_timeout)
            except (EngineUnavailable, EngineNotReady) as exc:
                raise HTTPException(status_code=503, detail=f"Engine not available: {exc}") from exc
            except EngineTimeout as exc:
                raise HTTPException(status_code=504, detail=f"Engine timed out: {exc}") from exc

        score = result.score
        evaluation = None
        if score is not None:
            evaluation = Evaluation.from_engine(score.cp, score.mate, score.depth, position.turn).as_dict()

        return AnalyzeResponse(
            bestMove=result.best_move,
            score=score.as_dict() if score else None,
            depth=result.depth,
            evaluation=evaluation,
        )

    @app.post("/api/games", response_model=list[GameModel])
    def api_games(body: GamesRequest) -> list[GameModel]:
        """
        Decode game-record text and replay every game.

        Raises:
            HTTPException 400: strict mode and a FEN tag or move token is bad.
        """
        games = []
        for index, record in enumerate(decode_game(body.pgn)):
            try:
                history = replay(record, strict=body.strict)
            except (InvalidPosition, MalformedRecord) as exc:
                raise HTTPException(status_code=400, detail=f"{record.label(index)}: {exc}") from exc
            games.append(_game_model(index, record, history))

        _log.info("Decoded %d game(s) from %d bytes", len(games), len(body.pgn))
        return games

    @app.get("/api/health", response_model=HealthResponse)
    def api_health(request: Request) -> HealthResponse:
        """Report whether the engine has completed its handshake."""
        ready = request.app.state.engine.ready
        return HealthResponse(engine="ready" if ready else "unavailable")

    return app


app = create_app()
