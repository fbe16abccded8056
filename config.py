"""
Configuration for the Lookbook look pipeline.
All sensitive values should be set via environment variables.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Helper Functions
# ============================================================================
def is_valid_api_key(key: str, min_length: int = 20) -> bool:
    """
    Check if API key looks valid (not a placeholder).

    Args:
        key: The API key to validate
        min_length: Minimum length for a valid key

    Returns:
        True if key appears valid, False if it's a placeholder or invalid
    """
    if not key or len(key) < min_length:
        return False
    # Check for common placeholder patterns
    invalid_patterns = ['your_', 'example', 'placeholder', 'xxx', 'fake', 'test_key']
    return not any(pattern in key.lower() for pattern in invalid_patterns)


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() not in ("false", "0", "no", "")


def _csv(name: str, default: str) -> list:
    raw = os.environ.get(name, default)
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


# ============================================================================
# OpenAI Configuration (optional stylist copy)
# ============================================================================
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
OPENAI_MINI_MODEL = os.environ.get("OPENAI_MINI_MODEL", "gpt-4o-mini")  # Stylist copy
ENABLE_STYLIST_COPY = _flag("ENABLE_STYLIST_COPY", "false") and is_valid_api_key(OPENAI_API_KEY)

# ============================================================================
# Job Store & Cache
# ============================================================================
LOOK_CACHE_TTL = int(os.environ.get("LOOK_CACHE_TTL", "900"))  # 15 minutes
JOB_LOG_LIMIT = int(os.environ.get("JOB_LOG_LIMIT", "200"))  # Max logs/errors kept per job

# ============================================================================
# Look Worker
# ============================================================================
ADAPTER_TIMEOUT_SECONDS = float(os.environ.get("ADAPTER_TIMEOUT_SECONDS", "12"))
STALL_SECONDS = float(os.environ.get("STALL_SECONDS", "2"))
MAX_INFLIGHT_CALLS = int(os.environ.get("MAX_INFLIGHT_CALLS", "6"))
SEARCH_RESULT_LIMIT = int(os.environ.get("SEARCH_RESULT_LIMIT", "8"))

# Provider keys queried for live search, in priority order.
# The seed catalog is never queried live; it is the assembler's fallback.
DEFAULT_PROVIDERS = _csv("DEFAULT_PROVIDERS", "vendor,web")

# ============================================================================
# Fetch & Scrape Configuration
# ============================================================================
FETCH_TIMEOUT_SECONDS = float(os.environ.get("FETCH_TIMEOUT_SECONDS", "8"))
ENABLE_PROXY_FETCH = _flag("ENABLE_PROXY_FETCH", "true")
PROXY_PREFIX = os.environ.get("PROXY_PREFIX", "https://r.jina.ai/")

WEB_SCRAPE_ENABLED = _flag("WEB_SCRAPE_ENABLED", "true")
# Comma-separated domains, e.g. "zalando.nl,cos.com,arket.com"
WEB_SCRAPE_DOMAINS_ALLOWLIST = _csv("WEB_SCRAPE_DOMAINS_ALLOWLIST", "")

VENDOR_PAGES_PER_RETAILER = int(os.environ.get("VENDOR_PAGES_PER_RETAILER", "3"))

DEFAULT_RETAILER_PRIORITY = _csv(
    "DEFAULT_RETAILER_PRIORITY",
    "cos.com,zara.com,stories.com"
)

USER_AGENT = os.environ.get(
    "SCRAPE_USER_AGENT",
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) '
    'AppleWebKit/537.36 (KHTML, like Gecko) '
    'Chrome/120.0.0.0 Safari/537.36'
)

# ============================================================================
# HTTP API
# ============================================================================
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
