"""
FastAPI application factory for the trigger capture detector.

Routes:
- /api/status, /api/detections -> session state
- /api/captures[/{index}] -> in-memory gallery
- /api/control/* -> start/stop/reset/retry/capture commands
"""

from __future__ import annotations

from typing import Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runtime.session import DetectionSession
from .routes import api

DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


def create_app(session: DetectionSession, cors_origins: Optional[Sequence[str]] = None) -> FastAPI:
    """
    Create the FastAPI app bound to a detection session.

    The session's lifecycle (startup/shutdown) is owned by the caller; the
    app only reads state and forwards commands.
    """
    app = FastAPI(
        title="Trigger Capture Detector",
        version="0.1.0",
        description="Real-time detection with one-shot auto-capture",
    )
    app.state.session = session

    # CORS for a local dashboard dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins or DEFAULT_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    return app
