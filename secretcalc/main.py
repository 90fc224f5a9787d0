"""SecretCalc Relay - FastAPI Application Entry Point."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from secretcalc.config import settings
from secretcalc.database import init_db, new_session
from secretcalc.errors import RelayError, UpstreamError
from secretcalc.services.pairing_service import sweep_expired_codes
from secretcalc.utils.storage import VOICE_URL_PATH

logger = logging.getLogger(__name__)


async def sweep_codes_forever(interval: int, retention: int) -> None:
    """Periodically drop pending codes that expired more than ``retention`` seconds ago."""
    while True:
        await asyncio.sleep(interval)
        try:
            with new_session() as session:
                removed = await asyncio.to_thread(sweep_expired_codes, session, retention)
            if removed:
                logger.info("Swept %d abandoned pairing code(s)", removed)
        except Exception:
            logger.exception("Pairing code sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and start the pairing code sweeper."""
    init_db()

    sweeper = None
    if settings.code_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            sweep_codes_forever(settings.code_sweep_interval_seconds, settings.code_retention_seconds)
        )

    yield

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="SecretCalc Relay",
    description="Pairs two devices with a one-time code and relays chat between them",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - any origin, the apps talk to us directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error mapping ---

@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Invalid request body"},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    err = UpstreamError("Server error")
    return JSONResponse(
        status_code=err.status_code,
        content={"error": err.error, "message": err.message},
    )


# --- Register API routers ---
from secretcalc.api.auth import router as auth_router  # noqa: E402
from secretcalc.api.messages import router as messages_router  # noqa: E402
from secretcalc.api.pairing import router as pairing_router  # noqa: E402
from secretcalc.api.system import router as system_router  # noqa: E402
from secretcalc.api.voice import router as voice_router  # noqa: E402

API_PREFIX = "/api"

app.include_router(pairing_router, prefix=API_PREFIX)
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(messages_router, prefix=API_PREFIX)
app.include_router(voice_router, prefix=API_PREFIX)
app.include_router(system_router)


# --- WebSocket endpoint ---
from secretcalc.ws.relay import websocket_relay  # noqa: E402


@app.websocket("/ws")
async def ws_endpoint(ws: WebSocket):
    await websocket_relay(ws)


# --- Uploaded voice notes ---
app.mount(VOICE_URL_PATH, StaticFiles(directory=str(settings.upload_dir)), name="voice")
