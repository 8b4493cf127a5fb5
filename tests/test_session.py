"""
Tests for the detection session commands and error channel.
"""

import asyncio

import pytest

from inference.model_manager import ModelManager
from models.config import CameraConfig, Config
from models.state import LoopPhase, ModelState
from observation.opencv_source import OpenCVSource
from observation.synthetic_source import SyntheticSource
from runtime.session import DetectionSession, build_session_from_config, build_source
from fakes import EMPTY_OUTPUT, TRIGGER_OUTPUT, FakeEngine, FakeSource


def _session(cfg, engine=None, source=None):
    engine = engine or FakeEngine(TRIGGER_OUTPUT)
    source = source or FakeSource()
    model = ModelManager(lambda: engine, input_size=cfg.detection.input_size)
    return DetectionSession(source, model, cfg), engine, source


def test_startup_opens_stream_then_polls(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        phase = session.loop.phase
        await session.shutdown()
        return phase

    assert asyncio.run(scenario()) is LoopPhase.POLLING
    assert source.open_calls == 1
    assert engine.close_calls == 1
    assert session.model.state is ModelState.UNLOADED
    assert session.streaming is False


def test_trigger_cycle_lands_in_gallery(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        await session.loop.tick()
        await session.loop.tick()
        await session.shutdown()

    asyncio.run(scenario())
    assert len(session.gallery) == 1
    assert session.gallery.get(0).automatic is True
    assert session.capture.state.has_auto_captured is True


def test_reset_starts_new_session(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        await session.loop.tick()
        ok = await session.reset()
        phase = session.loop.phase
        await session.loop.tick()
        await session.shutdown()
        return ok, phase

    ok, phase = asyncio.run(scenario())
    assert ok is True
    assert phase is LoopPhase.POLLING
    assert source.open_calls == 2
    assert len(session.gallery) == 2


def test_stop_then_start_opens_new_capture_session(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        await session.loop.tick()
        await session.stop_stream()
        latched_while_stopped = session.capture.state.has_auto_captured
        await session.start_stream()
        await session.loop.tick()
        await session.shutdown()
        return latched_while_stopped

    latched_while_stopped = asyncio.run(scenario())
    assert latched_while_stopped is True
    assert source.open_calls == 2
    assert len(session.gallery) == 2
    assert all(event.automatic for event in session.gallery.items())


def test_stream_open_failure_is_reported(session_cfg):
    source = FakeSource(open_error=FileNotFoundError("/dev/video0"))
    session, engine, _ = _session(session_cfg, source=source)

    async def scenario():
        await session.startup()

    asyncio.run(scenario())
    err = session.last_error
    assert err.kind == "stream"
    assert err.message == "Failed to start camera: No camera found. Please ensure a camera is connected."
    assert session.loop.phase is LoopPhase.IDLE
    # The model still loads
    assert session.model.is_ready


@pytest.mark.parametrize("exc,fragment", [
    (PermissionError("denied"), "permission denied"),
    (ValueError("1920x1080 unsupported"), "does not support"),
    (RuntimeError("Could not open camera"), "Could not open camera"),
])
def test_stream_error_messages(session_cfg, exc, fragment):
    session, _, _ = _session(session_cfg, source=FakeSource(open_error=exc))

    ok = asyncio.run(session.start_stream())

    assert ok is False
    assert fragment.lower() in session.last_error.message.lower()


def test_model_failure_then_retry(session_cfg):
    engine = FakeEngine(TRIGGER_OUTPUT, fail_step="load")
    session, _, _ = _session(session_cfg, engine=engine)

    async def scenario():
        await session.startup()
        failed = (session.model.state, session.loop.phase, session.last_error)
        engine.fail_step = None
        ok = await session.retry()
        phase = session.loop.phase
        await session.shutdown()
        return failed, ok, phase

    (state, phase_before, err), ok, phase_after = asyncio.run(scenario())
    assert state is ModelState.FAILED
    assert phase_before is LoopPhase.IDLE
    assert err.kind == "model_load"
    assert err.message == "Failed to load model: load failed"
    assert ok is True
    assert phase_after is LoopPhase.POLLING
    assert session.last_error is None


def test_retry_resumes_suspended_loop(session_cfg):
    session, engine, _ = _session(session_cfg)

    async def scenario():
        await session.startup()
        engine.predict_error = RuntimeError("boom")
        await session.loop.tick()
        suspended = session.loop.phase
        engine.predict_error = None
        await session.retry()
        resumed = session.loop.phase
        await session.shutdown()
        return suspended, resumed

    suspended, resumed = asyncio.run(scenario())
    assert suspended is LoopPhase.SUSPENDED
    assert resumed is LoopPhase.POLLING


def test_stream_loss_closes_source(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        source.exhausted = True
        await session.loop.tick()

    asyncio.run(scenario())
    assert source.is_open is False
    assert session.last_error.kind == "stream"
    assert session.status()["streaming"] is False


def test_last_error_is_most_recent(session_cfg):
    session, engine, source = _session(session_cfg)

    async def scenario():
        await session.startup()
        engine.predict_error = RuntimeError("boom")
        await session.loop.tick()
        source.close()
        await asyncio.sleep(0.01)
        # Capture error recorded after the loop error
        await session.capture_now()

    asyncio.run(scenario())
    assert session.last_error.kind == "capture"


def test_manual_capture(session_cfg):
    session, engine, source = _session(session_cfg, engine=FakeEngine(EMPTY_OUTPUT))

    async def scenario():
        await session.startup()
        event = await session.capture_now()
        await session.shutdown()
        return event

    event = asyncio.run(scenario())
    assert event.automatic is False
    assert len(session.gallery) == 1
    assert session.capture.state.has_auto_captured is False


def test_status_shape(session_cfg):
    session, _, _ = _session(session_cfg)
    status = session.status()
    assert status["model_state"] == "unloaded"
    assert status["loop"]["phase"] == "idle"
    assert status["last_error"] is None
    assert status["stats"]["cycles"] == 0


class TestFactory:
    def test_build_source(self):
        assert isinstance(build_source(CameraConfig(backend="synthetic")), SyntheticSource)
        assert isinstance(build_source(CameraConfig(backend="opencv")), OpenCVSource)
        assert isinstance(build_source(CameraConfig(backend="opencv"), synthetic=True), SyntheticSource)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_source(CameraConfig(backend="picamera2"))

    def test_build_session_missing_model_reports_error(self, tmp_path):
        cfg = Config.from_dict({
            "camera": {"backend": "synthetic"},
            "model": {"path": str(tmp_path / "missing.onnx")},
        })
        session = build_session_from_config(cfg)

        async def scenario():
            await session.startup()
            await session.shutdown()

        asyncio.run(scenario())
        assert session.model.state is ModelState.FAILED
        assert session.last_error.kind == "model_load"
