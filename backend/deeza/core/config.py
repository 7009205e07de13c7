"""Application configuration.

Environment variables override all defaults.
Secrets (bot token, private key, API keys) must come from .env, never from code.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except Exception:
    pass


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./deeza.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Network: testnet uses STT as native token and ZAZZ as the mock ERC-20
    IS_TESTNET: bool = _env_bool("IS_TESTNET") or os.getenv("NODE_ENV") == "test"
    SOMNIA_RPC: str = os.getenv(
        "SOMNIA_RPC",
        "https://dream-rpc.somnia.network" if IS_TESTNET else "https://somnia.publicnode.com",
    )
    SOMNIA_CHAIN_ID: int = int(os.getenv("SOMNIA_CHAIN_ID", "50312" if IS_TESTNET else "50311"))
    NATIVE_TOKEN: str = "STT" if IS_TESTNET else "SOMI"
    EXPLORER_URL: str = (
        "https://shannon-explorer.somnia.network" if IS_TESTNET else "https://explorer.somnia.network"
    )
    RPC_TIMEOUT_SECONDS: int = int(os.getenv("RPC_TIMEOUT_SECONDS", "30"))
    TX_RECEIPT_TIMEOUT_SECONDS: int = int(os.getenv("TX_RECEIPT_TIMEOUT_SECONDS", "120"))

    # Contracts and signer (Must be set via .env, never in code)
    DEEZA_AGENT_CONTRACT: str = os.getenv("DEEZA_AGENT_CONTRACT", "")
    BOT_PRIVATE_KEY: str = os.getenv("BOT_PRIVATE_KEY", "")
    ZAZZ_TOKEN_ADDRESS: str = os.getenv("ZAZZ_TOKEN_ADDRESS", "")
    ZAZZ_BONUS_AMOUNT: int = int(os.getenv("ZAZZ_BONUS_AMOUNT", "100000"))

    # Chain call retry policy
    CHAIN_RETRY_ATTEMPTS: int = int(os.getenv("CHAIN_RETRY_ATTEMPTS", "3"))
    CHAIN_RELEASE_ATTEMPTS: int = int(os.getenv("CHAIN_RELEASE_ATTEMPTS", "4"))
    CHAIN_RETRY_DELAY_SECONDS: float = float(os.getenv("CHAIN_RETRY_DELAY_SECONDS", "3"))

    # Gift policy
    TOKEN_DECIMALS: int = 18
    MAX_WRONG_ATTEMPTS: int = 3
    LOCKOUT_MINUTES: int = 30
    MAX_GIFT_AMOUNT: int = int(os.getenv("MAX_GIFT_AMOUNT", "1000000000000"))
    DEFAULT_GIFT_TOKEN: str = "USDC"

    # Quick-action slot lifetime (pending release retry)
    PENDING_ACTION_TTL_SECONDS: int = int(os.getenv("PENDING_ACTION_TTL_SECONDS", "300"))

    # Telegram Bot (Must be set via .env, never in code)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # Groq API Key (Must be set via .env, never in code)
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

    # Lighthouse IPFS
    LIGHTHOUSE_API_KEY: str = os.getenv("LIGHTHOUSE_API_KEY", "")
    LIGHTHOUSE_UPLOAD_URL: str = os.getenv(
        "LIGHTHOUSE_UPLOAD_URL", "https://node.lighthouse.storage/api/v0/add"
    )
    LIGHTHOUSE_GATEWAY_URL: str = os.getenv(
        "LIGHTHOUSE_GATEWAY_URL", "https://gateway.lighthouse.storage/ipfs"
    )
    HTTP_TIMEOUT_SECONDS: int = int(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    # GeckoTerminal price lookup
    GECKOTERMINAL_BASE: str = "https://api.geckoterminal.com/api/v2"
    GECKOTERMINAL_NETWORK: str = "somnia"

    # Deposit page shown after gift creation
    WALLET_CONNECT_URL: str = os.getenv("WALLET_CONNECT_URL", "https://deeza-website.vercel.app")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


settings = Settings()
