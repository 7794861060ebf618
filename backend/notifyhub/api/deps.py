from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import select

from notifyhub.core.config import settings
from notifyhub.core.exceptions import Unauthorized
from notifyhub.core.security import verify_token
from notifyhub.db import SessionDep
from notifyhub.models import User
from notifyhub.services.accounts import AccountDirectory
from notifyhub.services.dispatch import DispatchEngine
from notifyhub.services.history import DeliveryHistoryStore
from notifyhub.services.subscriptions import SubscriptionRegistry

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")


def get_current_user(
    session: SessionDep,
    token: str = Depends(oauth2_scheme),
) -> User:
    try:
        payload = verify_token(token, token_type="access")
        user_id = payload.get("sub")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    try:
        user_uuid = UUID(user_id) if user_id else None
    except ValueError:
        user_uuid = None
    if not user_uuid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = session.exec(select(User).where(User.id == user_uuid)).one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if not current_user.is_admin:
        raise Unauthorized("Admin access required")
    return current_user


def get_registry(request: Request) -> SubscriptionRegistry:
    return request.app.state.registry


def get_accounts(request: Request) -> AccountDirectory:
    return request.app.state.accounts


def get_history(request: Request) -> DeliveryHistoryStore:
    return request.app.state.history


def get_dispatch_engine(request: Request) -> DispatchEngine:
    return request.app.state.dispatch_engine


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
RegistryDep = Annotated[SubscriptionRegistry, Depends(get_registry)]
AccountsDep = Annotated[AccountDirectory, Depends(get_accounts)]
HistoryDep = Annotated[DeliveryHistoryStore, Depends(get_history)]
DispatchEngineDep = Annotated[DispatchEngine, Depends(get_dispatch_engine)]
