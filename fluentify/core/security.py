from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import os
from jose import jwt, JWTError, ExpiredSignatureError

from fluentify.core.config import is_production
from fluentify.core.errors import InvalidAuthToken, TokenExpired

# ======================
# PASSWORDS
# ======================
# Stored as "pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>" so the work
# factor can be raised without invalidating existing accounts.

HASH_SCHEME = "pbkdf2_sha256"
HASH_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "120000"))


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = _derive(password, salt, HASH_ITERATIONS)
    return f"{HASH_SCHEME}${HASH_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        scheme, iterations, salt_hex, digest_hex = stored.split("$")
        if scheme != HASH_SCHEME:
            return False
        digest = _derive(password, bytes.fromhex(salt_hex), int(iterations))
        return hmac.compare_digest(digest, bytes.fromhex(digest_hex))
    except ValueError:
        return False


# ======================
# ACCESS TOKENS
# ======================

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=int(os.getenv("ACCESS_TOKEN_TTL_DAYS", "7")))


def _load_secret() -> str:
    secret = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET")
    if secret:
        print(f"[AUTH] signing secret loaded (length={len(secret)})", flush=True)
        return secret
    if is_production():
        raise RuntimeError("SECRET_KEY must be set when running in production")
    print("[AUTH] WARNING: no SECRET_KEY set, falling back to a development secret", flush=True)
    return "fluentify-dev-only-secret"


SECRET_KEY = _load_secret()


def create_access_token(claims: dict, expires_delta: timedelta | None = None) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + (expires_delta or TOKEN_TTL)
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims; raise TokenExpired or InvalidAuthToken."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        print("[AUTH DEBUG] token expired", flush=True)
        raise TokenExpired()
    except JWTError as e:
        print(f"[AUTH DEBUG] token rejected: {type(e).__name__}", flush=True)
        raise InvalidAuthToken()
