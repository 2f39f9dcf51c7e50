# auth_utils.py

from typing import Optional

from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from database import get_db
from models import User
from jwt_handler import decode_access_token

# ========================================
# 🔐 ADMIN PASSWORDS (bcrypt)
# ========================================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt ignores everything past 72 bytes and newer releases reject it
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return pwd_context.hash(password[:BCRYPT_MAX_BYTES])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password[:BCRYPT_MAX_BYTES], hashed_password)


# ========================================
# 👤 ADMIN DEPENDENCIES (bearer JWT)
# get_current_user  -> settings mutations (401 without a valid token)
# get_optional_user -> /auth/register (None when no token is sent)
# ========================================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _admin_for_token(token: str, db: Session) -> User:
    email = decode_access_token(token)
    if not email:
        raise _unauthorized()

    admin = db.query(User).filter(User.email == email).first()
    if admin is None:
        raise _unauthorized()
    return admin


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    return _admin_for_token(token, db)


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not token:
        return None
    return _admin_for_token(token, db)
