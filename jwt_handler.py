# jwt_handler.py
"""Admin session tokens: HS256 JWT whose subject is the admin email."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
import secrets
import os

SECRET_KEY = os.getenv("SECRET_KEY", "FLEET_REPORTS_SECRET_CHANGE_ME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES") or 12 * 60)


def create_access_token(email: str, expires_minutes: Optional[int] = None) -> str:
    issued = datetime.now(timezone.utc)
    ttl = timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Admin email carried by `token`; None when it is malformed, forged or expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub") or None
