"""Tests for game-record decoding and annotation parsing."""

import pytest

from notation.models import Evaluation
from notation.pgn import decode_game, parse_evaluation


class TestParseEvaluation:
    """Tests for parse_evaluation."""

    def test_centipawn_score_with_time(self):
        assert parse_evaluation("+66.02/24 0.83s") == Evaluation(pawns=66.02, depth=24, seconds=0.83)

    def test_negative_score_without_time(self):
        assert parse_evaluation("-1.50/30") == Evaluation(pawns=-1.5, depth=30)

    def test_zero_score(self):
        assert parse_evaluation("0.00/31 1.2s") == Evaluation(pawns=0.0, depth=31, seconds=1.2)

    def test_negative_mate(self):
        assert parse_evaluation("-M4/245 0.007s") == Evaluation(mate=-4, depth=245, seconds=0.007)

    def test_positive_mate(self):
        assert parse_evaluation("+M12/40") == Evaluation(mate=12, depth=40)

    @pytest.mark.parametrize("annotation", ["", "book", "good move"])
    def test_no_score(self, annotation: str):
        assert parse_evaluation(annotation) is None


class TestDecodeGame:
    """Tests for decode_game."""

    def test_splits_blocks_and_drops_empty_ones(self, sample_pgn: str):
        games = decode_game(sample_pgn)

        assert len(games) == 2
        assert games[0].headers["Event"] == "Test match"
        assert games[1].headers == {"White": "Engine", "Black": "Fairy-Stockfish"}

    def test_moves_and_evaluations_line_up(self, sample_pgn: str):
        game = decode_game(sample_pgn)[0]

        assert game.moves == ["Ad7+", "Kxd7"]
        assert game.evaluations == [
            Evaluation(pawns=66.02, depth=24, seconds=0.83),
            Evaluation(mate=-4, depth=245, seconds=0.007),
        ]

    def test_missing_annotation_is_none(self, sample_pgn: str):
        game = decode_game(sample_pgn)[1]

        assert game.moves == ["Ke2", "Re4+", "Kd3"]
        assert game.evaluations[2] is None

    def test_fen_and_result_from_headers(self, sample_pgn: str):
        game = decode_game(sample_pgn)[0]

        assert game.fen == "8/8/4k3/4r3/8/8/8/3AK3 w - -"
        assert game.result == "1-0"

    def test_result_from_move_text(self):
        game = decode_game("1. Ke2 Kd6 0-1\n")[0]

        assert game.result == "0-1"
        assert game.fen is None

    def test_result_defaults_to_unknown(self):
        assert decode_game("1. Ke2 Kd6")[0].result == "*"

    def test_draw_result(self):
        assert decode_game("1. Ke2 Kd6 1/2-1/2")[0].result == "1/2-1/2"

    def test_fen_only_block_is_kept(self):
        games = decode_game('[FEN "8/8/4k3/8/8/8/8/4K3 b - -"]\n\n*\n')

        assert len(games) == 1
        assert games[0].moves == []

    def test_block_without_moves_or_fen_is_dropped(self):
        assert decode_game('[Event "Nothing"]\n[Result "*"]\n\n*\n') == []

    def test_empty_text(self):
        assert decode_game("") == []

    def test_windows_line_endings(self, sample_pgn: str):
        games = decode_game(sample_pgn.replace("\n", "\r\n"))

        assert len(games) == 2
        assert games[0].headers["Black"] == "Fairy-Stockfish"

    def test_move_numbers_and_castling_tokens(self):
        game = decode_game("1. e4 e5 2. Nf3 Nc6 3. Bb5 a6 4. O-O Nf6 5. exd5 Qh4e1 *")[0]

        assert game.moves == ["e4", "e5", "Nf3", "Nc6", "Bb5", "a6", "O-O", "Nf6", "exd5", "Qh4e1"]

    def test_title_and_label(self, sample_pgn: str):
        games = decode_game(sample_pgn)

        assert games[0].title == "Engine vs Fairy-Stockfish"
        assert games[0].label(0) == "Game 1: Engine vs Fairy-Stockfish (1-0)"
        assert decode_game("1. Ke2")[0].title == "White vs Black"
