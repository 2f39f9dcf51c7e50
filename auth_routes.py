# auth_routes.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import get_db
from models import User
from auth_utils import get_optional_user, hash_password, verify_password
from jwt_handler import create_access_token

router = APIRouter(prefix="/auth", tags=["Admin Auth"])


# ===============================
# 📦 Schemas
# ===============================
class AdminCredentials(BaseModel):
    email: str
    password: str


class NewAdmin(AdminCredentials):
    name: Optional[str] = None


def _email_key(email: Optional[str]) -> str:
    # emails are unique case-insensitively
    return (email or "").strip().lower()


# ===============================
# 👤 REGISTER ADMIN
# The first admin registers freely; after that only a logged-in admin can add more.
# ===============================
@router.post("/register")
def register_admin(
    body: NewAdmin,
    db: Session = Depends(get_db),
    current_admin: Optional[User] = Depends(get_optional_user),
):
    email = _email_key(body.email)
    if not email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    bootstrap = db.query(User.id).first() is None
    if not bootstrap and current_admin is None:
        raise HTTPException(status_code=403, detail="Only an admin can register new admins")

    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    admin = User(
        name=(body.name or "").strip() or email,
        email=email,
        hashed_password=hash_password(body.password),
    )
    try:
        db.add(admin)
        db.commit()
        db.refresh(admin)
    except SQLAlchemyError as e:
        print("❌ REGISTER ADMIN ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    print(f"👤 Admin {admin.email} registered (id={admin.id}, bootstrap={bootstrap})")
    return {"message": "Admin created", "id": admin.id}


# ===============================
# 🔑 LOGIN → bearer token
# ===============================
@router.post("/login")
def login_admin(body: AdminCredentials, db: Session = Depends(get_db)):
    admin = db.query(User).filter(User.email == _email_key(body.email)).first()

    if admin is None or not verify_password(body.password, admin.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return {
        "access_token": create_access_token(admin.email),
        "token_type": "bearer",
    }
