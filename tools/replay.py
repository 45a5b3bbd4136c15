#!/usr/bin/env python3
"""
Replay a game-record file ply by ply, optionally asking the engine about each position.

Prints one line per ply: move number, SAN, resulting FEN and the evaluation
shown for that ply (annotation, or engine analysis with --analyze). Tokens
that could not be replayed are listed at the end so the printed history can
be reconciled with the record.

With --analyze, every position is analysed in turn through one UciBridge.
Analyses run strictly one after another; the bridge does not queue them.

Usage: python3 tools/replay.py GAME.pgn [--game N] [--analyze] [--depth D]
"""
import argparse
import asyncio
import logging
import os
import sys

# Make the repo packages importable when run as `python tools/replay.py`.
REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

from interface.constants import DEFAULT_DEPTH, ENGINE_COMMAND
from interface.uci import EngineError, UciBridge
from notation.fen import encode_fen
from notation.models import BoardHistory, Evaluation
from notation.pgn import decode_game
from notation.replay import replay

_log = logging.getLogger("replay")


async def analyze_history(history: BoardHistory, command: list[str], depth: int) -> None:
    """Analyse every position of `history` and attach the results.

    Args:
        history: Replayed game; entries gain best_move and analysis.
        command: Engine argv.
        depth:   Search depth per position.
    """
    bridge = UciBridge(command)
    await bridge.start()
    try:
        for index, entry in enumerate(history):
            result = await bridge.analyze(encode_fen(entry.position), depth)
            evaluation = None
            if result.score is not None:
                evaluation = Evaluation.from_engine(
                    result.score.cp, result.score.mate, result.score.depth, entry.position.turn
                )
            history.attach_analysis(index, result.best_move, evaluation)
    finally:
        await bridge.stop()


def print_history(history: BoardHistory) -> None:
    """Print a table of plies followed by any skipped tokens."""
    print(f"{'Ply':>4} {'Move':<8} {'Eval':>8} {'Best':<7} FEN")
    print("-" * 72)
    for index, entry in enumerate(history):
        evaluation = history.evaluation_at(index)
        print(
            f"{index:>4} {entry.san or '':<8} {str(evaluation) if evaluation else '-':>8} "
            f"{entry.best_move or '':<7} {encode_fen(entry.position)}"
        )

    for outcome in history.skipped:
        print(f"skipped {outcome.token!r}: {outcome.reason}")


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, replay the chosen game(s), return an exit code."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("path", help="game-record file")
    parser.add_argument("--game", type=int, default=None, help="1-based game number (default: all)")
    parser.add_argument("--analyze", action="store_true", help="analyse every position with the engine")
    parser.add_argument("--depth", type=int, default=DEFAULT_DEPTH, help="engine search depth")
    parser.add_argument("--engine", nargs="+", default=ENGINE_COMMAND, help="engine command")
    parser.add_argument("-v", "--verbose", action="store_true", help="log engine traffic")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    with open(args.path, encoding="utf-8") as f:
        games = decode_game(f.read())

    if not games:
        print(f"No games found in {args.path}", file=sys.stderr)
        return 1

    selected = list(enumerate(games))
    if args.game is not None:
        if not 1 <= args.game <= len(games):
            print(f"Game {args.game} out of range (1-{len(games)})", file=sys.stderr)
            return 1
        selected = [selected[args.game - 1]]

    for index, record in selected:
        history = replay(record)
        if args.analyze:
            try:
                asyncio.run(analyze_history(history, args.engine, args.depth))
            except EngineError as exc:
                _log.error("Analysis failed: %s", exc)
                return 2
        print(record.label(index))
        print(history.move_text())
        print()
        print_history(history)
        print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
