# nft_ownership/config.py
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logger = logging.getLogger(__name__)

# ============================================================
# Metadata indexer (Alchemy NFT API)
# ============================================================
ALCHEMY_API_KEY = os.getenv("ALCHEMY_API_KEY", "demo")
ALCHEMY_NFT_API_VERSION = os.getenv("ALCHEMY_NFT_API_VERSION", "v2")

# ============================================================
# Backend authority
# ============================================================
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")
BACKEND_PRINCIPAL = os.getenv("BACKEND_PRINCIPAL", "anonymous")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10.0"))  # seconds

# ============================================================
# Session input store
# ============================================================
INPUT_STORE_NAMESPACE = os.getenv("INPUT_STORE_NAMESPACE", "ic-eth")
NFT_URL_KEY = "nft-url"

# ============================================================
# Backend DB / chain
# ============================================================
DATABASE_URL = os.getenv("DATABASE_URL", "")

CHALLENGE_TTL = int(os.getenv("CHALLENGE_TTL", "600"))  # seconds

_DEFAULT_RPC_URLS = {
    "ethereum": "https://cloudflare-eth.com",
    "goerli": "https://rpc.ankr.com/eth_goerli",
    "sepolia": "https://rpc.sepolia.org",
}


def rpc_url_for(network: str) -> str:
    """RPC endpoint for an OpenSea network slug, or "" when none is configured."""
    return (
        os.getenv(f"RPC_URL_{network.upper()}")
        or _DEFAULT_RPC_URLS.get(network.lower(), "")
    )


def log_config() -> None:
    logger.info("Config loaded:")
    logger.info("  BACKEND_URL: %s", BACKEND_URL)
    logger.info("  BACKEND_PRINCIPAL: %s", BACKEND_PRINCIPAL)
    logger.info("  ALCHEMY_API_KEY: %s", "<set>" if ALCHEMY_API_KEY != "demo" else "<demo>")
    logger.info("  DATABASE_URL: %s", "<set>" if DATABASE_URL else "<missing>")
    logger.info("  HTTP_TIMEOUT: %.1fs", HTTP_TIMEOUT)
