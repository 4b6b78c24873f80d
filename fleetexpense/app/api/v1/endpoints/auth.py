"""
Owner authentication endpoints.

Sign up, log in, inspect the current account and log out. Tokens are
stateless JWTs; logout blacklists the presented token in Redis.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from fleetexpense.app.db.session import get_db
from fleetexpense.app.models.user import User
from fleetexpense.app.schemas.auth import OwnerRegister, OwnerLogin, TokenResponse, OwnerProfile
from fleetexpense.app.core.config import settings
from fleetexpense.app.core.exceptions import AuthenticationError, ConflictError
from fleetexpense.app.core.security import get_password_hash, verify_password
from fleetexpense.app.core.jwt import create_access_token
from fleetexpense.app.core.dependencies import get_current_user
from fleetexpense.app.core.redis_client import get_redis
from fleetexpense.app.core.token_revocation import revoke_token
from fleetexpense.app.services.audit import log_event, log_auth_event, AuditAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    token = create_access_token(data={"sub": user.username, "user_id": user.id})
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        user_id=user.id,
        username=user.username,
        email=user.email
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: OwnerRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Create an owner account and log it in.

    Username and email must both be unused.
    """
    result = await db.execute(
        select(User.username, User.email).where(
            or_(User.username == payload.username, User.email == payload.email)
        )
    )
    clash = result.first()
    if clash:
        field = "username" if clash.username == payload.username else "email"
        raise ConflictError(f"{field.capitalize()} already registered", details={"field": field})

    owner = User(
        email=payload.email,
        username=payload.username,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(owner)
    await db.commit()
    await db.refresh(owner)

    logger.info("Owner %s registered", owner.id)
    await log_event(db=db, action=AuditAction.USER_CREATED, actor_id=owner.id, actor_username=owner.username)

    return _issue_token(owner)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: OwnerLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange a username (or email) and password for a token.
    """
    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )
    owner = result.scalars().first()

    if owner is None or not verify_password(credentials.password, owner.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=owner.id if owner else None,
            username=credentials.username,
            metadata={"reason": "Invalid password" if owner else "Unknown account"}
        )
        raise AuthenticationError("Invalid credentials")

    if not owner.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=owner.id,
            username=owner.username,
            metadata={"reason": "Account is inactive"}
        )
        raise AuthenticationError("Account is inactive")

    owner.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await log_auth_event(db=db, action=AuditAction.LOGIN_SUCCESS, user_id=owner.id, username=owner.username)

    return _issue_token(owner)


@router.get("/me", response_model=OwnerProfile)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    The authenticated owner's account.
    """
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    return OwnerProfile.model_validate(result.scalar_one())


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Revoke the token used for this request.
    """
    await revoke_token(redis, current_user["token"], current_user["user_id"])
    await log_auth_event(
        db=db,
        action=AuditAction.TOKEN_REVOKED,
        user_id=current_user["user_id"],
        username=current_user.get("sub")
    )
