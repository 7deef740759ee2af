"""Password hashing, JWT issuance and the dependencies that guard admin routes."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from models import User

logger = logging.getLogger(__name__)
settings = get_settings()

ADMIN_ROLES = ("admin", "super_admin")

bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except ValueError:
        return False


def create_access_token(
    user_id: int,
    email: str | None = None,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT carrying the user's identity and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": str(user_id), "exp": expire}
    if email is not None:
        payload["email"] = email
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT.

    Raises:
        HTTPException: 401 when the token is expired or malformed.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise invalid

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise invalid

    return user


def require_role(*roles: str):
    """Build a dependency that only admits users holding one of ``roles``."""

    async def checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            logger.warning(f"Forbidden: {current_user.email} ({current_user.role}) needs {roles}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required",
            )
        return current_user

    return checker


require_admin = require_role(*ADMIN_ROLES)


async def seed_admin_user(db: AsyncSession) -> User | None:
    """
    Create the configured super admin if it does not exist yet.

    Skipped when no admin password is configured.
    """
    if not settings.admin_password:
        logger.info("ADMIN_PASSWORD not set, skipping admin seed")
        return None

    result = await db.execute(select(User).where(User.email == settings.admin_email))
    if result.scalar_one_or_none():
        logger.info(f"Admin user already exists: {settings.admin_email}")
        return None

    user = User(
        email=settings.admin_email,
        hashed_password=get_password_hash(settings.admin_password),
        name=settings.admin_name,
        role="super_admin",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Default admin user created: {user.email}")
    return user
