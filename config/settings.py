"""
SafeCart - Centralized Configuration
=====================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        print(f"[ERROR] Critical: {key} must be an integer, got {raw!r}")
        sys.exit(1)


# ==========================================
# 🗄️ Store
# ==========================================
# In-memory SQLite by default: nothing survives a process restart.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://")
SEED_FIXTURES = os.getenv("SEED_FIXTURES", "true").lower() == "true"


# ==========================================
# 🛒 Cart Limits
# ==========================================
MAX_CART_SIZE = _int_env("MAX_CART_SIZE", 50)                 # distinct entries
MAX_STORAGE_SIZE = _int_env("MAX_STORAGE_SIZE", 5 * 1024 * 1024)  # bytes, persisted snapshot
MAX_QUANTITY = _int_env("MAX_QUANTITY", 999)                  # per entry
MAX_PRICE = _int_env("MAX_PRICE", 10_000_000)
MAX_PRODUCT_ID = 2 ** 53 - 1
MAX_NAME_LENGTH = 200
MAX_OBJECT_DEPTH = 10


# ==========================================
# 💰 Pricing
# ==========================================
TAX_PERCENT = _int_env("TAX_PERCENT", 10)
FREE_SHIPPING_THRESHOLD = _int_env("FREE_SHIPPING_THRESHOLD", 100)
FLAT_SHIPPING_FEE = _int_env("FLAT_SHIPPING_FEE", 10)
MAX_SHIPPING_FEE = _int_env("MAX_SHIPPING_FEE", 1000)


# ==========================================
# 🔐 Rate Limiting
# ==========================================
RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 20)
RATE_LIMIT_WINDOW_MS = _int_env("RATE_LIMIT_WINDOW_MS", 60_000)


# ==========================================
# 💾 Local Cart Persistence
# ==========================================
CART_STORAGE_KEY = os.getenv("CART_STORAGE_KEY", "shopping_cart_secure_v1")
CART_STORAGE_DIR = os.getenv("CART_STORAGE_DIR", ".cart_storage")


# ==========================================
# 📦 Checkout
# ==========================================
MAX_ADDRESS_LENGTH = 500
MAX_PAYMENT_METHOD_LENGTH = 50


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
