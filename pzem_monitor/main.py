# pzem_monitor/main.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import CORS_ORIGINS, HOST, LOG_LEVEL, PORT
from .db import get_engine, make_session_factory
from .errors import StorageError
from .ingest import IngestionService
from .models import Base
from .notifier import ConnectionHub
from .queries import QueryEngine
from .schemas import MeasurementIn, measurement_to_json, to_naive_utc
from .store import MeasurementStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data")


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            return None


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
async def api_ingest(reading: MeasurementIn, request: Request):
    saved = await request.app.state.ingestion.ingest(reading)
    return {"success": True, "data": measurement_to_json(saved)}


@router.get("/latest")
async def api_latest(request: Request, device_id: Optional[str] = None):
    m = request.app.state.queries.latest(device_id)
    return {"data": measurement_to_json(m)}


@router.get("/last-one")
async def api_last_one(request: Request, device_id: Optional[str] = None):
    m = request.app.state.queries.last_one(device_id)
    return {"data": measurement_to_json(m)}


@router.get("/history")
async def api_history(
    request: Request,
    device_id: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
):
    result = request.app.state.queries.history(
        device_id=device_id or None,
        start=to_naive_utc(start) if start else None,
        end=to_naive_utc(end) if end else None,
        page=_to_int(page),
        limit=_to_int(limit),
    )
    return {
        "page": result["page"],
        "limit": result["limit"],
        "total": result["total"],
        "data": [measurement_to_json(m) for m in result["records"]],
    }


@router.get("/usage")
async def api_usage(request: Request, device_id: Optional[str] = None):
    return request.app.state.queries.usage(device_id=device_id or None)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"errors": errors})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


def create_app(session_factory=None, notifier: Optional[ConnectionHub] = None, clock=None) -> FastAPI:
    """
    Build the API with its store and notifier passed in explicitly.
    Defaults: the configured DB_URL engine and a fresh websocket hub.
    """
    if session_factory is None:
        engine = get_engine()
        # Create DB tables if needed (new deploy)
        Base.metadata.create_all(bind=engine)
        session_factory = make_session_factory(engine)

    store = MeasurementStore(session_factory, clock=clock)
    hub = notifier if notifier is not None else ConnectionHub()

    app = FastAPI(title="pzem-monitor")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.state.hub = hub
    app.state.ingestion = IngestionService(store, hub)
    app.state.queries = QueryEngine(store)

    app.include_router(router)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/")
    async def index():
        return PlainTextResponse("hello world")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await hub.connect(ws)
        try:
            while True:
                # Keep the connection alive; ignore anything the client sends
                await ws.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await hub.disconnect(ws)

    return app


def run():
    import uvicorn

    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(create_app(), host=HOST, port=PORT)


if __name__ == "__main__":
    run()
