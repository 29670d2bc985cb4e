import os
import time

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint reporting service readiness.

    Returns "initializing" until the Q&A matcher is available on app state.
    When Socket Mode is enabled, the connection status is included.
    """
    qa_status = "initializing"
    if getattr(request.app.state, "qa_matcher", None) is not None:
        qa_status = "healthy"

    services = {"qa": qa_status}
    slack_channel = getattr(request.app.state, "slack_channel", None)
    if slack_channel is not None:
        services["slack"] = "connected" if slack_channel.is_connected else "connecting"

    # BUILD_ID is injected at image build time
    build_id = os.getenv("BUILD_ID", "unknown")

    return {
        "status": qa_status,
        "timestamp": int(time.time()),
        "build_id": build_id,
        "services": services,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness probe that checks if the service is ready to handle requests.
    """
    if getattr(request.app.state, "qa_matcher", None) is None:
        return {"status": "initializing"}
    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """
    Liveness probe that checks if the service is alive.
    """
    return {"status": "alive"}
