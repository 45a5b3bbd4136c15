"""
UCI (Universal Chess Interface) client bridge to an external engine process.

UCI is the text protocol spoken by analysis engines such as Fairy-Stockfish.
The bridge spawns the engine as a subprocess, writes commands to its stdin
and reads responses from its stdout. Every command and every response is one
newline-terminated ASCII line.

Protocol overview:
    Bridge → Engine: uci, setoption, isready, ucinewgame, position, go, stop, quit
    Engine → Bridge: id ..., option ..., uciok, readyok, info ..., bestmove

Handshake:
    uci                                   → ... uciok
    setoption name UCI_Variant value <v>
    isready                               → readyok

Analysis:
    ucinewgame
    position fen <FEN>
    go depth <N>                          → info depth 1 ... info depth N ...
                                            bestmove <move> [ponder <move>]

Concurrency model:
    Everything runs on one asyncio event loop; the bridge starts no threads.
    A reader task pumps stdout chunks into a LineBuffer and dispatches each
    complete line to the RequestQueue (see interface/protocol.py). start()
    and analyze() register a request, write their commands, and await the
    request's future.

    The bridge does not queue analyses. Two overlapping analyze() calls would
    both send "ucinewgame"/"position"/"go" to the same engine and race on its
    state. Callers must run at most one analysis at a time (the web layer
    holds an asyncio.Lock for this).

Failure handling:
    - Spawn failure or an incomplete handshake raises EngineUnavailable and
      leaves the bridge stopped; calling start() again tries a fresh process.
    - analyze() before a successful start() raises EngineNotReady.
    - A timeout removes the pending request and raises EngineTimeout. For an
      analysis, "stop" is also sent and the engine's answer to it (the
      abandoned search's "bestmove") is drained, so it cannot resolve the next
      analysis. An engine that ignores "stop" is restarted.
    - Commands must be single ASCII lines; anything else raises ValueError
      before a request is queued or a byte is written.
    - Engine stderr is logged, never treated as fatal.
    - If the engine's stdout closes (crash, exit) or stop() is called, every
      pending request fails with EngineUnavailable rather than hanging.
"""

import asyncio
import logging
from typing import Sequence

from interface.constants import (
    ANALYSIS_TIMEOUT,
    DEFAULT_DEPTH,
    ENGINE_COMMAND,
    HANDSHAKE_TIMEOUT,
    QUIT_GRACE,
    READ_CHUNK_SIZE,
    STOP_GRACE,
    UCI_VARIANT,
)
from interface.protocol import AnalysisRequest, AnalysisResult, KeywordRequest, LineBuffer, PendingRequest, RequestQueue

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class EngineError(Exception):
    """Base class for engine bridge failures."""


class EngineUnavailable(EngineError):
    """The engine could not be started, or went away while we were waiting."""


class EngineNotReady(EngineError):
    """Analysis was requested before the handshake completed."""


class EngineTimeout(EngineError):
    """The engine did not answer within the allotted time."""


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class UciBridge:
    """
    Owner of one engine subprocess and its pending requests.

    Nothing outside this class touches the process handle or the queue.

    Attributes:
        command: argv used to spawn the engine.
        variant: Value sent as UCI_Variant during the handshake.
        ready:   True between a completed handshake and stop()/engine exit.
    """

    def __init__(self, command: Sequence[str] | None = None, variant: str = UCI_VARIANT) -> None:
        self.command: list[str] = list(command) if command is not None else list(ENGINE_COMMAND)
        self.variant = variant
        self.ready = False
        self._process: asyncio.subprocess.Process | None = None
        self._buffer = LineBuffer()
        self._requests = RequestQueue()
        self._tasks: list[asyncio.Task] = []
        self._handshake_timeout: float | None = HANDSHAKE_TIMEOUT

    @property
    def pending(self) -> int:
        """Number of requests still waiting for engine output."""
        return len(self._requests)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def start(self, timeout: float | None = HANDSHAKE_TIMEOUT) -> None:
        """
        Spawn the engine and complete the UCI handshake.

        Does nothing if the bridge is already ready.

        Args:
            timeout: Seconds allowed for each handshake reply; None waits forever.

        Raises:
            EngineUnavailable: the process could not be spawned, exited, or
                               did not finish the handshake in time.
        """
        if self.ready:
            return
        if not self.command:
            raise EngineUnavailable("no engine command configured")
        self._handshake_timeout = timeout

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            self._process = None
            raise EngineUnavailable(f"cannot spawn engine {self.command!r}: {exc}") from exc

        _log.info("Engine spawned: pid=%d command=%s", self._process.pid, self.command)
        self._buffer = LineBuffer()
        self._requests = RequestQueue()
        self._tasks = [
            asyncio.create_task(self._pump_stdout(self._process)),
            asyncio.create_task(self._pump_stderr(self._process)),
        ]

        try:
            uciok = self._expect("uciok")
            self.send("uci")
            await self._wait(uciok, timeout)

            readyok = self._expect("readyok")
            self.send(f"setoption name UCI_Variant value {self.variant}")
            self.send("isready")
            await self._wait(readyok, timeout)
        except EngineError as exc:
            await self.stop()
            raise EngineUnavailable(f"engine handshake failed: {exc}") from exc

        self.ready = True
        _log.info("Engine ready (variant=%s)", self.variant)

    async def stop(self, grace: float = QUIT_GRACE) -> None:
        """
        Send "quit", terminate the process and forget it.

        Pending requests fail with EngineUnavailable. Calling stop() on a
        stopped bridge is a no-op.
        """
        self.ready = False
        process, self._process = self._process, None
        self._requests.fail_all(EngineUnavailable("engine stopped"))
        if process is None:
            return

        if process.returncode is None:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.write(b"quit\n")
            try:
                await asyncio.wait_for(process.wait(), grace)
            except asyncio.TimeoutError:
                _log.warning("Engine ignored quit; terminating pid=%d", process.pid)
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
                await process.wait()

        # The pumps end on their own once the pipes hit EOF; give them a moment
        # to drain any trailing stderr before cancelling.
        tasks, self._tasks = self._tasks, []
        if tasks:
            await asyncio.wait(tasks, timeout=grace)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        _log.info("Engine stopped (exit code %s)", process.returncode)

    # -----------------------------------------------------------------------
    # Requests
    # -----------------------------------------------------------------------

    async def analyze(
        self,
        fen: str,
        depth: int = DEFAULT_DEPTH,
        timeout: float | None = ANALYSIS_TIMEOUT,
    ) -> AnalysisResult:
        """
        Search `fen` to `depth` plies and return the best move and score.

        The score is the one from the deepest "info depth" line seen before
        "bestmove", from the point of view of the side to move in `fen`.

        Args:
            fen:     Position to analyse, passed to the engine verbatim.
            depth:   Search depth for "go depth".
            timeout: Seconds to wait for "bestmove"; None waits forever.

        Raises:
            EngineNotReady:    start() has not completed.
            EngineTimeout:     no "bestmove" within `timeout`.
            EngineUnavailable: the engine went away mid-search.
            ValueError:        `fen` is not a single line of ASCII text.
        """
        if not self.ready:
            raise EngineNotReady("engine is not running")

        commands = [_encode("ucinewgame"), _encode(f"position fen {fen}"), _encode(f"go depth {depth}")]

        request = self._requests.add(AnalysisRequest(asyncio.get_running_loop().create_future()))
        for data in commands:
            self._write(data)

        try:
            result = await self._wait(request, timeout)
        except EngineTimeout:
            await self._abandon_search()
            raise

        _log.info(
            "Analysis: bestmove=%s score=%s depth=%d fen=%s",
            result.best_move,
            result.score.as_dict() if result.score else None,
            result.depth,
            fen[:40],
        )
        return result

    def send(self, command: str) -> None:
        """
        Write one command line to the engine. Ignored if no process is running.

        Raises:
            ValueError: `command` contains a line break or non-ASCII text.
        """
        self._write(_encode(command))

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _write(self, data: bytes) -> None:
        process = self._process
        if process is None or process.stdin is None or process.stdin.is_closing():
            return
        _log.debug("engine << %s", data.decode("ascii").rstrip())
        process.stdin.write(data)

    async def _abandon_search(self) -> None:
        """
        Stop a timed-out search and swallow its late "bestmove".

        The drain request is queued before "stop" is written, so the abandoned
        search's output resolves it instead of the next analysis. If the
        engine does not answer within STOP_GRACE it is restarted.
        """
        drain = self._requests.add(AnalysisRequest(asyncio.get_running_loop().create_future()))
        self.send("stop")
        try:
            stale = await self._wait(drain, STOP_GRACE)
        except EngineUnavailable:
            return
        except EngineTimeout:
            _log.warning("Engine ignored stop; restarting")
        else:
            _log.info("Discarded abandoned search result: bestmove=%s", stale.best_move)
            return

        await self.stop()
        try:
            await self.start(timeout=self._handshake_timeout)
        except EngineUnavailable as exc:
            _log.warning("Engine restart failed: %s", exc)

    def _expect(self, keyword: str) -> KeywordRequest:
        request = KeywordRequest(asyncio.get_running_loop().create_future(), keyword)
        self._requests.add(request)
        return request

    async def _wait(self, request: PendingRequest, timeout: float | None):
        """
        Await a request's future, bounded by `timeout`.

        The request is always removed from the queue afterwards, whether it
        resolved, timed out, or the awaiting task was cancelled, so a stale
        request can never match future output.
        """
        try:
            return await asyncio.wait_for(request.future, timeout)
        except asyncio.TimeoutError:
            raise EngineTimeout(f"no reply within {timeout}s ({request!r})") from None
        finally:
            self._requests.discard(request)
            if not request.future.done():
                request.future.cancel()

    def _feed(self, data: bytes) -> None:
        for line in self._buffer.feed(data):
            _log.debug("engine >> %s", line)
            self._requests.dispatch(line)

    async def _pump_stdout(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self._feed(chunk)

        if process is self._process:
            _log.warning("Engine closed its output (pid=%d)", process.pid)
            self.ready = False
            self._requests.fail_all(EngineUnavailable("engine exited"))

    async def _pump_stderr(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        while True:
            line = await process.stderr.readline()
            if not line:
                break
            _log.warning("Engine stderr: %s", line.decode("utf-8", errors="replace").rstrip())


def _encode(command: str) -> bytes:
    """Encode one command line; UCI commands are single ASCII lines."""
    if "\n" in command or "\r" in command:
        raise ValueError(f"engine command must be a single line: {command!r}")
    return (command + "\n").encode("ascii")
