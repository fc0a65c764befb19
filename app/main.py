"""
app/main.py

Purpose: ASGI app and process wiring

- Builds the store, backend client, state machine and transport on startup
- Runs the optional expired-code sweeper
- Drains ticket updates and closes the backend client on shutdown
- Mounts the health probes and the webhook
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import timedelta
import asyncio
import time

from app.core.config import Settings, settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.flow.commands import CommandRouter
from app.flow.dispatcher import MessageDispatcher
from app.flow.verification import VerificationStateMachine
from app.services.backend_client import BackendClient
from app.services.session_store import SessionStore
from app.services.transport import get_transport
from app.api import health, webhook
from app.api.health import APP_VERSION

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


def build_dispatcher(current: Settings, backend: BackendClient) -> MessageDispatcher:
    """Assembles the message handling pipeline from settings."""
    store = SessionStore()
    machine = VerificationStateMachine(
        store,
        backend,
        code_ttl=timedelta(minutes=current.CODE_TTL_MINUTES),
        cancel_orphaned_tickets=current.CANCEL_ORPHANED_TICKETS,
    )
    return MessageDispatcher(
        store=store,
        machine=machine,
        router=CommandRouter(backend),
        transport=get_transport(current),
    )


async def sweep_expired_codes(machine: VerificationStateMachine, interval_seconds: int):
    """Periodically drops expired pending verifications."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            machine.sweep_expired()
        except Exception as e:
            logger.error(f"Expired code sweep failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting verification gateway...")

    try:
        validate_settings()
        logger.info("✅ Configuration validated")
    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    backend = BackendClient.from_settings(settings)
    dispatcher = build_dispatcher(settings, backend)
    app.state.dispatcher = dispatcher

    sweeper = None
    if settings.SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(
            sweep_expired_codes(dispatcher.machine, settings.SWEEP_INTERVAL_SECONDS)
        )
        logger.info(f"✅ Expired code sweep every {settings.SWEEP_INTERVAL_SECONDS}s")

    logger.info(f"🎉 Gateway started (session={settings.SESSION_NAME}, transport={settings.TRANSPORT})")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    yield  # Application runs here

    logger.info("🛑 Shutting down verification gateway...")
    app.state.dispatcher = None

    try:
        if sweeper is not None:
            sweeper.cancel()
        await dispatcher.machine.wait_for_background_tasks(timeout=settings.BACKEND_TIMEOUT_SECONDS)
        await backend.close()
        logger.info("👋 Gateway shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="verigate - WhatsApp Verification Gateway",
    description="WhatsApp account verification and order status bot",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


@app.middleware("http")
async def time_requests(request: Request, call_next):
    """Adds X-Process-Time and flags webhooks slower than one backend timeout."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"

    if elapsed > settings.BACKEND_TIMEOUT_SECONDS:
        logger.warning(f"Slow request: {request.method} {request.url.path} took {elapsed:.2f}s")

    return response


app.include_router(health.router)
app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
