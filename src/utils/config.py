"""
Gateway configuration loaded from the environment
"""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_RATE_LIMIT_PER_HOUR = int(os.getenv("API_KEY_DEFAULT_RATE_LIMIT_PER_HOUR", "1000"))
DEFAULT_RATE_LIMIT_PER_DAY = int(os.getenv("API_KEY_DEFAULT_RATE_LIMIT_PER_DAY", "10000"))
MAX_API_KEYS_PER_USER = int(os.getenv("MAX_API_KEYS_PER_USER", "10"))

WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "30"))

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

# Path prefixes fronted by the API key gateway
GUARDED_PATH_PREFIXES = ("/api/v1", "/api/graphql", "/api/zapier")
# Public documents living under a guarded prefix
GATEWAY_EXEMPT_PATHS = ("/api/v1", "/api/v1/")
