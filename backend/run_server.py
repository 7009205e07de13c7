"""Runs the gift API with uvicorn; the Telegram bot starts inside the app lifespan."""
import sys
import signal

import uvicorn

from deeza.core.config import settings


def handle_signal(sig, frame):
    print(f"\nReceived signal {sig}, stopping Deeza...")
    sys.exit(0)


signal.signal(signal.SIGINT, handle_signal)
signal.signal(signal.SIGTERM, handle_signal)

if __name__ == "__main__":
    network = "testnet" if settings.IS_TESTNET else "mainnet"
    print("=" * 50)
    print(f"  Deeza gift bot on Somnia {network} (chain {settings.SOMNIA_CHAIN_ID})")
    print(f"  API on http://{settings.API_HOST}:{settings.API_PORT}")
    print("=" * 50)
    uvicorn.run(
        "deeza.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
