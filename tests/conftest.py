"""
Pytest configuration and fixtures shared by the test suite.
"""

import sys
from pathlib import Path
from typing import Callable

import pytest

FAKE_ENGINE = Path(__file__).parent / "fake_engine.py"

START_FEN = "8/8/4k3/4r3/8/8/8/3AK3 w - -"


@pytest.fixture
def engine_command() -> Callable[[str], list[str]]:
    """Return a factory building the argv of the scripted fake engine."""

    def build(mode: str = "normal") -> list[str]:
        return [sys.executable, str(FAKE_ENGINE), mode]

    return build


@pytest.fixture
def start_fen() -> str:
    """The variant's default start position: K+A vs K+R."""
    return START_FEN


@pytest.fixture
def sample_pgn() -> str:
    """Two annotated games and one block with neither moves nor FEN."""
    return (
        '[Event "Test match"]\n'
        '[White "Engine"]\n'
        '[Black "Fairy-Stockfish"]\n'
        '[FEN "8/8/4k3/4r3/8/8/8/3AK3 w - -"]\n'
        '[Result "1-0"]\n'
        "\n"
        "1. Ad7+ {+66.02/24 0.83s} Kxd7 {-M4/245 0.007s} 1-0\n"
        "\n"
        '[Event "Empty"]\n'
        '[White "Nobody"]\n'
        "\n"
        "\n"
        "\n"
        '[White "Engine"]\n'
        '[Black "Fairy-Stockfish"]\n'
        "\n"
        "1. Ke2 {+0.35/12 0.5s} Re4+ {+0.10/14} 2. Kd3 *\n"
    )
