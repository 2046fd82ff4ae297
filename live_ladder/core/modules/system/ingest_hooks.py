"""HTTP callbacks for RTMP ingest servers.

nginx-rtmp (and compatible servers) notify an HTTP endpoint when a client
starts or stops publishing:

    application live {
        live on;
        on_publish      http://127.0.0.1:8935/hooks/on_publish;
        on_publish_done http://127.0.0.1:8935/hooks/on_publish_done;
    }

Each callback is a form POST carrying ``clientid``, ``app`` and ``name``
(plus ``addr``, ``tcurl`` and any query arguments). The client id becomes
the session id and ``/<app>/<name>`` the stream path. A non-2xx answer to
``on_publish`` makes the ingest server drop the publisher, so rejected
publishes never leave a half-started stream behind.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from ..errors import DuplicateSessionError
from .resource_monitor import ResourceMonitor
from ....utils.logging import get_logger

logger = get_logger("ingest_hooks")

router = APIRouter(prefix="/hooks", tags=["Ingest"])


def get_orchestrator(request: Request):
    return request.app.state.orchestrator


def _stream_path(app: str, name: str) -> str:
    return f"/{app}/{name}"


def _publish_args(addr: Optional[str], tcurl: Optional[str]) -> Dict[str, Any]:
    return {k: v for k, v in (("addr", addr), ("tcurl", tcurl)) if v}


@router.post("/on_publish")
def on_publish(
    clientid: str = Form(...),
    app: str = Form(...),
    name: str = Form(...),
    addr: Optional[str] = Form(None),
    tcurl: Optional[str] = Form(None),
    orchestrator=Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Handle publish start. Declared sync so launches run off the event loop."""
    stream_path = _stream_path(app, name)
    try:
        session = orchestrator.handle_publish_start(
            clientid, stream_path, _publish_args(addr, tcurl)
        )
    except DuplicateSessionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if session is None:
        raise HTTPException(status_code=400, detail=f"Publish rejected for {stream_path}")
    return {"handled": "on_publish", "session": session.to_dict()}


@router.post("/on_publish_done")
def on_publish_done(
    clientid: str = Form(...),
    app: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    orchestrator=Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Handle publish stop. Unknown ids are acknowledged as well."""
    stream_path = _stream_path(app, name) if app and name else None
    stopping = orchestrator.handle_publish_stop(clientid, stream_path)
    return {"handled": "on_publish_done", "session_id": clientid, "stopping": stopping}


@router.get("/sessions")
def list_sessions(orchestrator=Depends(get_orchestrator)) -> List[Dict[str, Any]]:
    return [session.to_dict() for session in orchestrator.sessions()]


def create_hook_app(orchestrator, monitor_interval: float = 0.0) -> FastAPI:
    """
    Build the hook application around an orchestrator.

    On shutdown every live session is stopped and its output swept.
    """
    monitor = ResourceMonitor(orchestrator, interval=monitor_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        monitor.start()
        logger.info("Ingest hooks ready")
        try:
            yield
        finally:
            # Both block (thread join, transcoder grace period); keep the loop free
            await run_in_threadpool(monitor.stop)
            await run_in_threadpool(orchestrator.shutdown)

    app = FastAPI(title="live-ladder ingest hooks", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.monitor = monitor
    app.include_router(router)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "sessions": len(orchestrator.registry)}

    return app
