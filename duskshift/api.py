"""
HTTP status API for the running scheduler.

Read-only: exposes what the control loop last computed and applied.
Served by uvicorn in a background thread when STATUS_API_ENABLED=true
or --status-api is given.
"""

import threading

import uvicorn
from fastapi import FastAPI, HTTPException, APIRouter

from duskshift.config import STATUS_API_HOST, STATUS_API_PORT
from duskshift.logger import logger
from duskshift.state import scheduler_status


app = FastAPI(
    title="duskshift status API",
    redoc_url=None,
    docs_url="/docs"
)

status_router = APIRouter(tags=["Status"])


@status_router.get("/state")
async def get_state():
    """
    Get the latest scheduler cycle.

    Useful for:
    - Debugging
    - Checking the applied color temperature
    """
    try:
        return scheduler_status.get_snapshot()
    except Exception as e:
        logger.error("Failed to get state", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@status_router.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(status_router)


def start_status_api(host: str = STATUS_API_HOST, port: int = STATUS_API_PORT) -> uvicorn.Server:
    """
    Serve the status API from a daemon thread.

    Returns:
        The uvicorn server (set should_exit to stop it)
    """
    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, name="StatusAPI", daemon=True)
    thread.start()
    logger.info(f"Status API listening on http://{host}:{port}")
    return server


def stop_status_api(server: uvicorn.Server) -> None:
    """Ask a server returned by start_status_api() to shut down."""
    server.should_exit = True
    logger.info("Status API stopped")
