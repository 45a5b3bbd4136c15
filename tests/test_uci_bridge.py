"""Tests for UciBridge against the scripted fake engine subprocess."""

import logging

import pytest

from interface.protocol import AnalysisResult, Score
from interface.uci import EngineNotReady, EngineTimeout, EngineUnavailable, UciBridge

FEN = "8/8/4k3/4r3/8/8/8/3AK3 w - -"


@pytest.mark.asyncio
class TestUciBridge:
    """Tests for the bridge lifecycle and analysis."""

    async def test_start_and_analyze(self, engine_command):
        bridge = UciBridge(engine_command("normal"))
        await bridge.start(timeout=10)
        try:
            assert bridge.ready

            result = await bridge.analyze(FEN, depth=6, timeout=10)

            assert result == AnalysisResult("d1d7", Score(depth=6, cp=36))
            assert result.from_square == "d1"
            assert bridge.pending == 0
        finally:
            await bridge.stop()

    async def test_sequential_analyses_reuse_the_process(self, engine_command):
        bridge = UciBridge(engine_command("normal"))
        await bridge.start(timeout=10)
        try:
            first = await bridge.analyze(FEN, depth=3, timeout=10)
            second = await bridge.analyze(FEN, depth=8, timeout=10)

            assert first.score == Score(depth=3, cp=33)
            assert second.score == Score(depth=8, cp=38)
        finally:
            await bridge.stop()

    async def test_mate_score(self, engine_command):
        bridge = UciBridge(engine_command("mate"))
        await bridge.start(timeout=10)
        try:
            result = await bridge.analyze(FEN, depth=4, timeout=10)

            assert result.score == Score(depth=4, mate=3)
            assert result.as_dict()["score"] == {"mate": 3, "depth": 4}
        finally:
            await bridge.stop()

    async def test_bestmove_none(self, engine_command):
        bridge = UciBridge(engine_command("none"))
        await bridge.start(timeout=10)
        try:
            result = await bridge.analyze(FEN, depth=4, timeout=10)

            assert result.best_move is None
            assert result.score is None
        finally:
            await bridge.stop()

    async def test_analyze_before_start(self, engine_command):
        bridge = UciBridge(engine_command("normal"))

        with pytest.raises(EngineNotReady):
            await bridge.analyze(FEN)

    async def test_spawn_failure(self, tmp_path):
        bridge = UciBridge([str(tmp_path / "no-such-engine")])

        with pytest.raises(EngineUnavailable):
            await bridge.start(timeout=1)

        assert not bridge.ready

    async def test_empty_command(self):
        with pytest.raises(EngineUnavailable):
            await UciBridge([]).start()

    @pytest.mark.parametrize("mode", ["silent", "noready"])
    async def test_handshake_timeout(self, engine_command, mode):
        bridge = UciBridge(engine_command(mode))

        with pytest.raises(EngineUnavailable, match="handshake"):
            await bridge.start(timeout=0.5)

        assert not bridge.ready
        assert bridge.pending == 0

    async def test_restart_after_failure(self, engine_command, tmp_path):
        bridge = UciBridge([str(tmp_path / "missing")])
        with pytest.raises(EngineUnavailable):
            await bridge.start(timeout=1)

        bridge.command = engine_command("normal")
        await bridge.start(timeout=10)
        try:
            assert bridge.ready
        finally:
            await bridge.stop()

    async def test_analysis_timeout_removes_request(self, engine_command, caplog):
        bridge = UciBridge(engine_command("hang"))
        await bridge.start(timeout=10)
        try:
            with caplog.at_level(logging.WARNING, logger="interface.uci"):
                with pytest.raises(EngineTimeout):
                    await bridge.analyze(FEN, depth=4, timeout=0.3)

            assert bridge.pending == 0
            assert bridge.ready
            assert any("ignored stop" in r.getMessage() for r in caplog.records)
        finally:
            await bridge.stop()

    async def test_late_bestmove_after_timeout_is_discarded(self, engine_command):
        bridge = UciBridge(engine_command("lagging"))
        await bridge.start(timeout=10)
        try:
            with pytest.raises(EngineTimeout):
                await bridge.analyze(FEN, depth=4, timeout=0.3)

            result = await bridge.analyze(FEN, depth=3, timeout=10)

            assert result == AnalysisResult("d1d7", Score(depth=3, cp=33))
            assert bridge.pending == 0
        finally:
            await bridge.stop()

    @pytest.mark.parametrize("fen", [FEN + "\nquit", FEN + "\rgo infinite", FEN + " é"])
    async def test_fen_that_is_not_one_ascii_line_is_rejected(self, engine_command, fen):
        bridge = UciBridge(engine_command("normal"))
        await bridge.start(timeout=10)
        try:
            with pytest.raises(ValueError):
                await bridge.analyze(fen, depth=2, timeout=10)

            assert bridge.pending == 0
            assert bridge.ready
            result = await bridge.analyze(FEN, depth=2, timeout=10)
            assert result.score == Score(depth=2, cp=32)
        finally:
            await bridge.stop()

    async def test_send_rejects_line_breaks(self, engine_command):
        bridge = UciBridge(engine_command("normal"))
        await bridge.start(timeout=10)
        try:
            with pytest.raises(ValueError):
                bridge.send("isready\nquit")
            assert bridge.ready
        finally:
            await bridge.stop()

    async def test_engine_exit_fails_pending_analysis(self, engine_command):
        bridge = UciBridge(engine_command("crash"))
        await bridge.start(timeout=10)
        try:
            with pytest.raises(EngineUnavailable):
                await bridge.analyze(FEN, depth=4, timeout=10)

            assert not bridge.ready
            assert bridge.pending == 0
        finally:
            await bridge.stop()

    async def test_stop_is_idempotent(self, engine_command):
        bridge = UciBridge(engine_command("normal"))
        await bridge.start(timeout=10)

        await bridge.stop()
        await bridge.stop()

        assert not bridge.ready
        with pytest.raises(EngineNotReady):
            await bridge.analyze(FEN)

    async def test_stderr_is_logged(self, engine_command, caplog):
        bridge = UciBridge(engine_command("normal"))
        with caplog.at_level(logging.WARNING, logger="interface.uci"):
            await bridge.start(timeout=10)
            await bridge.analyze(FEN, depth=1, timeout=10)
            await bridge.stop()

        assert any("fake engine: starting" in r.getMessage() for r in caplog.records)
