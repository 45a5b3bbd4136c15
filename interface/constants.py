"""
Engine bridge configuration.

Every tunable used by the UCI bridge and the web layer is defined here.
Values that differ between machines (the engine binary, the variant) can be
overridden through environment variables, read once at import time.
"""

import os
import shlex

# ---------------------------------------------------------------------------
# Engine process
# ---------------------------------------------------------------------------
# FAIRY_SF_PATH may contain arguments, e.g. "fairy-stockfish --some-flag",
# so it is split the way a shell would split it.

ENGINE_COMMAND: list[str] = shlex.split(
    os.environ.get("FAIRY_SF_PATH", "/opt/homebrew/bin/fairy-stockfish")
)

# Variant selected with "setoption name UCI_Variant value <name>" during the
# handshake. Fairy-Stockfish ships "amazon" as a built-in variant.
UCI_VARIANT: str = os.environ.get("UCI_VARIANT", "amazon")

# ---------------------------------------------------------------------------
# Search depth
# ---------------------------------------------------------------------------

DEFAULT_DEPTH: int = int(os.environ.get("ANALYSIS_DEPTH", "15"))
MIN_DEPTH: int = 1
MAX_DEPTH: int = 40

# ---------------------------------------------------------------------------
# Timeouts (seconds). None disables the limit.
# ---------------------------------------------------------------------------
# A missing or wedged engine binary must not hang the handshake forever, and
# a deep search on a slow machine must not hold the analysis lock forever.

HANDSHAKE_TIMEOUT: float | None = 10.0
ANALYSIS_TIMEOUT: float | None = 120.0
QUIT_GRACE: float = 1.0
# After a timed-out analysis, how long to wait for the engine to answer "stop"
# with its abandoned "bestmove" before restarting it.
STOP_GRACE: float = 1.0

# ---------------------------------------------------------------------------
# Stream handling
# ---------------------------------------------------------------------------

READ_CHUNK_SIZE: int = 4_096
