# volunteer_tracker/auth.py
"""Session verification and role checks.

Sign-in is handled by an external identity provider which issues signed
JWT session tokens.  The ``sub`` claim is the provider's user id and doubles
as our ``users.id``; the ``email`` claim is only read the first time a user
signs in, when their local record is created.  Roles always come from the
database, never from the token.
"""

import os
import logging
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.acl import DEFAULT_ROLE
from volunteer_tracker.database import get_session
from volunteer_tracker.exceptions import ConflictError
from volunteer_tracker.models import User
from volunteer_tracker.crud import get_user, get_user_by_email, create_user

SECRET_KEY = os.getenv("AUTH_JWT_SECRET", "dev-insecure-secret")
ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE") or None
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    """Sign a session token the same way the identity provider does.

    Used by the seed script and tests; production tokens come from the
    provider.
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    if AUDIENCE and "aud" not in to_encode:
        to_encode["aud"] = AUDIENCE
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    options = {"verify_aud": AUDIENCE is not None}
    return jwt.decode(
        token,
        SECRET_KEY,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        options=options,
    )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the caller's local user record once per request.

    The record is stored on ``request.state.user`` so later code in the same
    request does not look it up again.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "code": "auth_invalid_session",
            "message": "Could not validate credentials",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_session_token(credentials.credentials)
        user_id: str = payload.get("sub")
        if not user_id:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await get_user(db, user_id)
    if user is None:
        email = payload.get("email")
        if not email:
            raise credentials_exception
        if await get_user_by_email(db, email):
            logger.warning(
                "Sign-in for %s rejected: email %s belongs to another user",
                user_id,
                email,
            )
            raise ConflictError("An account with this email already exists")
        # First sign-in: provision a parent without a family.
        user = await create_user(db, User(id=user_id, email=email, role=DEFAULT_ROLE))
        logger.info("Provisioned user %s (%s) on first sign-in", user.id, user.email)
    if user.archived_at is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "auth_account_archived", "message": "Account archived"},
        )
    request.state.user = user
    return user


def require_role(*roles: str):
    """Dependency factory to require a user role."""

    async def role_dependency(current_user: User = Depends(get_current_user)):
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "forbidden",
                    "message": "Insufficient permissions",
                },
            )
        return current_user

    return role_dependency
