"""
Security and Authentication Utilities
"""

import hashlib
import hmac
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from dotenv import load_dotenv

load_dotenv()

# Configuration
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24

API_KEY_ID_PREFIX = "hk_"


def create_jwt_token(user_id: str, email: str) -> str:
    """Create dashboard session JWT for user"""
    payload = {
        "user_id": user_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRATION_HOURS),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token"""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def generate_api_key_id() -> str:
    """Public, loggable identifier of an API key"""
    return f"{API_KEY_ID_PREFIX}{secrets.token_hex(16)}"


def generate_api_key_secret() -> str:
    """High-entropy secret, shown to the owner exactly once"""
    return secrets.token_hex(48)


def hash_api_key_secret(secret: str) -> str:
    """One-way hash of an API key secret for storage"""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def verify_api_key_secret(secret: str, secret_hash: str) -> bool:
    """Constant-time comparison of a presented secret against a stored hash"""
    return hmac.compare_digest(hash_api_key_secret(secret), secret_hash)


def parse_expiry(expiry: str) -> datetime:
    """
    Parse expiry string to datetime
    Accepts: 1H, 1D, 1M, 1Y
    """
    now = datetime.now(timezone.utc)

    if expiry == "1H":
        return now + timedelta(hours=1)
    elif expiry == "1D":
        return now + timedelta(days=1)
    elif expiry == "1M":
        return now + timedelta(days=30)
    elif expiry == "1Y":
        return now + timedelta(days=365)
    else:
        raise ValueError(f"Invalid expiry format: {expiry}")


def generate_webhook_secret() -> str:
    return secrets.token_hex(32)


def sign_webhook_payload(payload: bytes, secret: str) -> str:
    """HMAC-SHA256 signature sent in X-Webhook-Signature"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Receiver-side check of a delivery signature"""
    expected_signature = sign_webhook_payload(payload, secret)
    return hmac.compare_digest(expected_signature, signature)
