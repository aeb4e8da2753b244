from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
import bcrypt

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.db import get_session
from app.models.user import User
from app.services.access import Requester


JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())


def create_jwt_token(data: dict) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


async def _user_from_token(token: str, db: AsyncSession) -> User:
    payload = decode_jwt_token(token)
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Token payload invalid")

    user = await db.scalar(select(User).where(User.id == int(user_id)))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_session),
) -> User:
    return await _user_from_token(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
    db: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Для ручек, где можно и гостем (submit-score)."""
    if credentials is None:
        return None
    return await _user_from_token(credentials.credentials, db)


def to_requester(user: Optional[User]) -> Optional[Requester]:
    if user is None:
        return None
    return Requester(user_id=user.id, role=user.role)


async def get_requester(user: User = Depends(get_current_user)) -> Requester:
    return Requester(user_id=user.id, role=user.role)


async def get_optional_requester(user: Optional[User] = Depends(get_optional_user)) -> Optional[Requester]:
    return to_requester(user)
