"""Tests for replaying game records into board histories."""

import chess
import pytest

from notation.constants import AMAZON, DEFAULT_START_FEN
from notation.errors import MalformedRecord, UnresolvedMove
from notation.fen import encode_fen
from notation.models import Evaluation, GameRecord, Piece, Square
from notation.pgn import decode_game
from notation.replay import replay


def changed_squares(before, after) -> set[Square]:
    return {
        Square(row, col)
        for row in range(8)
        for col in range(8)
        if before.board[row][col] != after.board[row][col]
    }


class TestReplay:
    """Tests for replay."""

    def test_starts_from_fen_header(self, sample_pgn: str):
        history = replay(decode_game(sample_pgn)[0])

        assert len(history) == 3
        assert encode_fen(history[0].position) == DEFAULT_START_FEN
        assert history[0].last_move is None
        assert encode_fen(history[-1].position) == "8/3k4/8/4r3/8/8/8/4K3 w - -"

    def test_starts_from_default_without_fen(self):
        history = replay(GameRecord(moves=["Ke2"]))

        assert encode_fen(history[0].position) == DEFAULT_START_FEN
        assert history[1].position.piece_at(Square.parse("e2")) == Piece(chess.KING, chess.WHITE)

    def test_fen_only_record_has_one_entry(self):
        history = replay(decode_game('[FEN "8/8/4k3/8/8/8/8/4K3 b - -"]\n\n*')[0])

        assert len(history) == 1
        assert history[0].position.turn == chess.BLACK
        assert history.outcomes == []

    def test_each_ply_moves_exactly_one_piece(self, sample_pgn: str):
        """The source empties and the destination gains the mover; nothing else changes."""
        for record in decode_game(sample_pgn):
            history = replay(record)
            for previous, entry in zip(history.entries, history.entries[1:]):
                move = entry.last_move
                mover = previous.position.piece_at(move.from_square)

                assert changed_squares(previous.position, entry.position) == {move.from_square, move.to_square}
                assert entry.position.piece_at(move.from_square) is None
                assert entry.position.piece_at(move.to_square) == mover
                assert entry.position.turn != previous.position.turn

    def test_snapshots_are_independent(self, sample_pgn: str):
        history = replay(decode_game(sample_pgn)[0])

        assert history[0].position.piece_at(Square.parse("d1")) == Piece(AMAZON, chess.WHITE)
        assert history[1].position.piece_at(Square.parse("d1")) is None

    def test_skipped_token_is_reported(self):
        record = GameRecord(moves=["Ke2", "O-O", "Kd6"], evaluations=[None, None, None])

        history = replay(record)

        assert len(history) == 3
        assert [o.applied for o in history.outcomes] == [True, False, True]
        assert history.skipped[0].token == "O-O"
        assert "castling" in history.skipped[0].reason
        assert [entry.san for entry in history.entries[1:]] == ["Ke2", "Kd6"]

    def test_history_length_reconciles_with_tokens(self):
        record = GameRecord(moves=["Ke2", "Qh5", "Kd6", "Zz9"])

        history = replay(record)

        applied = sum(o.applied for o in history.outcomes)
        assert len(history.outcomes) == len(record.moves)
        assert len(history) == applied + 1

    def test_strict_raises_on_unresolved_token(self):
        with pytest.raises(UnresolvedMove) as info:
            replay(GameRecord(moves=["Ke2", "Qh5"]), strict=True)

        assert isinstance(info.value, MalformedRecord)
        assert info.value.token == "Qh5"

    def test_annotations_are_normalised_to_white(self, sample_pgn: str):
        """A Black move's annotation is flipped; a White move's is kept."""
        history = replay(decode_game(sample_pgn)[0])

        assert history[1].evaluation == Evaluation(pawns=66.02, depth=24, seconds=0.83)
        assert history[2].evaluation == Evaluation(mate=4, depth=245, seconds=0.007)

    def test_black_moves_first(self):
        record = GameRecord(headers={"FEN": "8/8/4k3/4r3/8/8/8/3AK3 b - -"}, moves=["Kd6", "Ke2"])

        history = replay(record)

        assert history.move_text() == "1... Kd6 2. Ke2"


class TestBoardHistory:
    """Tests for BoardHistory navigation helpers."""

    @pytest.fixture
    def history(self, sample_pgn: str):
        return replay(decode_game(sample_pgn)[1])

    def test_move_text(self, history):
        assert history.move_text() == "1. Ke2 Re4+ 2. Kd3"

    def test_clamp(self, history):
        assert history.clamp(-3) == 0
        assert history.clamp(99) == len(history) - 1

    def test_evaluation_falls_back_to_earlier_then_later(self, history):
        # Entries: 0 start (none), 1 Ke2 (+0.35), 2 Re4+ (+0.10 by Black -> -0.10), 3 Kd3 (none)
        assert history.evaluation_at(3) == Evaluation(pawns=-0.1, depth=14)
        assert history.evaluation_at(0) == Evaluation(pawns=0.35, depth=12, seconds=0.5)

    def test_cached_analysis_wins(self, history):
        analysis = Evaluation(pawns=1.25, depth=20)

        history.attach_analysis(2, "e2d3", analysis)

        assert history[2].best_move == "e2d3"
        assert history.evaluation_at(2) == analysis
        assert history.evaluation_at(3) == Evaluation(pawns=-0.1, depth=14)

    def test_no_evaluations_anywhere(self):
        history = replay(GameRecord(moves=["Ke2"], evaluations=[None]))

        assert history.evaluation_at(1) is None
