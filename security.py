import logging
import os
from datetime import timedelta

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pymongo.database import Database

from database import get_db, to_object_id, utcnow

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_EXPIRES_MIN = int(os.getenv("JWT_EXPIRES_MIN", "60"))
ADMIN_ROLE = "admin"

security = HTTPBearer()
password_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return password_ctx.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return password_ctx.verify(password, hashed)


def create_token(user: dict) -> str:
    now = utcnow()
    payload = {
        "sub": str(user["_id"]),
        "email": user.get("email"),
        "role": user.get("role"),
        "exp": now + timedelta(minutes=JWT_EXPIRES_MIN),
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def authenticate(database: Database, email: str, password: str) -> dict:
    user = database["users"].find_one({"email": email})
    if not user or not verify_password(password, user.get("hashed_password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    database: Database = Depends(get_db),
) -> dict:
    payload = decode_token(credentials.credentials)
    user = database["users"].find_one({"_id": to_object_id(payload.get("sub", ""))})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != ADMIN_ROLE:
        logger.warning(f"Denied non-admin principal {user.get('email')}")
        raise HTTPException(status_code=403, detail="Admin only")
    return user
