"""
prepdesk/routes/auth.py
Bearer token verification.

Tokens are issued by the identity provider and signed with the shared
JWT_SECRET_KEY (HS256). The `sub` claim carries the user's email.
"""

import os
import logging
from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.errors import UnauthorizedError, ForbiddenError, ErrorCode

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token the way the identity provider does. Used by tests and tooling."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected token: {str(e)}")
        raise UnauthorizedError("Invalid or expired token", code=ErrorCode.AUTH_INVALID)

    email = payload.get("sub")
    if not email:
        raise UnauthorizedError("Invalid token payload", code=ErrorCode.AUTH_INVALID)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive", code=ErrorCode.AUTH_INVALID)

    return user


async def require_ai_access(current_user: User = Depends(get_current_user)) -> User:
    """AI endpoints are opt-in per user."""
    if not current_user.ai_enabled:
        raise ForbiddenError("AI features are not enabled for this account")
    return current_user
