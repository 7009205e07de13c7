"""
Deeza Backend — Telegram gift bot + read-only gift API.

ARCHITECTURE:
- Telegram Bot: conversational gift flow (register, gift, claim)
- FastAPI: health check and gift lookup for the deposit website
- SQLite/Postgres: users, conversation contexts, gift cache
- Somnia chain: source of truth for every gift
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deeza.api.routes import gifts
from deeza.core.config import settings
from deeza.db.init_db import init_db
from deeza.telegram.bot import start_bot_background, stop_bot_background

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Initialize database tables
    2. Start Telegram bot polling (if token provided)

    Shutdown:
    1. Stop Telegram bot
    """
    try:
        logger.info("[*] Initializing database...")
        init_db()
        logger.info("[OK] Database initialized")

        if settings.TELEGRAM_BOT_TOKEN:
            logger.info("[*] Starting Telegram bot...")
            start_bot_background()
        else:
            logger.warning("[WARN] Telegram bot disabled (no token)")
        logger.info(
            f"[OK] Network: {'TESTNET' if settings.IS_TESTNET else 'MAINNET'}, "
            f"native token: {settings.NATIVE_TOKEN}"
        )
    except Exception as e:
        logger.error(f"[ERROR] Startup error: {e}", exc_info=True)

    yield

    try:
        if settings.TELEGRAM_BOT_TOKEN:
            stop_bot_background()
    except Exception as e:
        logger.error(f"[ERROR] Shutdown error: {e}")


app = FastAPI(
    title="Deeza API",
    description="Peer-to-peer crypto gifts on Somnia, claimed by answering the gifter's question.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
    max_age=600,
)


# SECURITY: Add security headers middleware
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(gifts.router, prefix="/gifts", tags=["gifts"])


@app.get("/health")
def health():
    return {
        "status": "ok",
        "network": "testnet" if settings.IS_TESTNET else "mainnet",
        "native_token": settings.NATIVE_TOKEN,
    }
