from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from runtime.session import DetectionSession
from ..api_models import CaptureResponse, ControlResponse, DetectionsResponse, StatusResponse

router = APIRouter()


def get_session(request: Request) -> DetectionSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Detection session not initialized")
    return session


def _derive_status(status: Dict[str, Any]) -> Tuple[str, List[str]]:
    """
    Lightweight status classifier used by /api/status.
    No stream => offline; model not ready or detection suspended => degraded.
    """
    level = "running"
    alerts: List[str] = []
    if not status["streaming"]:
        level = "offline"
        alerts.append("stream_inactive")

    if status["model_state"] != "ready":
        alerts.append(f"model_{status['model_state']}")
        if level == "running":
            level = "degraded"

    if status["loop"]["phase"] == "suspended":
        alerts.append("detection_suspended")
        if level == "running":
            level = "degraded"

    return level, alerts


def _status_payload(session: DetectionSession) -> Dict[str, Any]:
    status = session.status()
    level, alerts = _derive_status(status)
    return {"status": level, "alerts": alerts, **status}


def _control_payload(session: DetectionSession, action: str, ok: bool) -> Dict[str, Any]:
    return {"ok": ok, "action": action, "status": _status_payload(session)}


@router.get("/status", response_model=StatusResponse)
async def status(session: DetectionSession = Depends(get_session)):
    return _status_payload(session)


@router.get("/detections", response_model=DetectionsResponse)
async def detections(session: DetectionSession = Depends(get_session)):
    """The latest published detection set; empty while not polling."""
    return {
        "phase": session.loop.phase.value,
        "detections": [d.to_dict() for d in session.detections],
    }


@router.get("/captures", response_model=List[CaptureResponse])
async def list_captures(session: DetectionSession = Depends(get_session)):
    return [{"index": i, **event.to_dict()} for i, event in enumerate(session.gallery.items())]


@router.get("/captures/{index}")
async def get_capture(index: int, session: DetectionSession = Depends(get_session)):
    try:
        event = session.gallery.get(index)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"Capture {index} not found")

    return Response(
        content=event.image,
        media_type=event.media_type,
        headers={"Cache-Control": "no-store"},
    )


@router.delete("/captures")
async def clear_captures(session: DetectionSession = Depends(get_session)):
    cleared = session.gallery.clear()
    logging.info(f"Cleared {cleared} captures")
    return {"cleared": cleared}


@router.post("/control/start", response_model=ControlResponse)
async def control_start(session: DetectionSession = Depends(get_session)):
    ok = await session.start_stream()
    return _control_payload(session, "start", ok)


@router.post("/control/stop", response_model=ControlResponse)
async def control_stop(session: DetectionSession = Depends(get_session)):
    await session.stop_stream()
    return _control_payload(session, "stop", True)


@router.post("/control/reset", response_model=ControlResponse)
async def control_reset(session: DetectionSession = Depends(get_session)):
    ok = await session.reset()
    return _control_payload(session, "reset", ok)


@router.post("/control/retry", response_model=ControlResponse)
async def control_retry(session: DetectionSession = Depends(get_session)):
    ok = await session.retry()
    return _control_payload(session, "retry", ok)


@router.post("/control/capture", response_model=CaptureResponse)
async def control_capture(session: DetectionSession = Depends(get_session)):
    event = await session.capture_now()
    if event is None:
        err = session.capture.last_error
        raise HTTPException(status_code=409, detail=err.message if err else "Capture failed")
    return {"index": len(session.gallery) - 1, **event.to_dict()}
