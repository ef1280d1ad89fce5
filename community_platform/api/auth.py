"""Join, login, and refresh endpoints for every identity kind.

Routes:
    POST /auth/guest/join
    POST /auth/{member|admin|adminUser}/join
    POST /auth/{member|admin|adminUser}/login
    POST /auth/{role}/refresh
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.db.engine import get_session
from community_platform.errors import NotFound
from community_platform.models.enums import IdentityType
from community_platform.schemas.identity import Authorized, JoinRequest, LoginRequest, RefreshRequest
from community_platform.services.accounts import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _account_role(role: IdentityType) -> IdentityType:
    if role is IdentityType.GUEST:
        raise NotFound("Guests have no password account")
    return role


@router.post("/guest/join", status_code=status.HTTP_201_CREATED)
async def join_guest(request: Request, db: AsyncSession = Depends(get_session)) -> Authorized:
    """Anonymous join — returns a guest token pair."""
    return await account_service.join_guest(
        db,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/{role}/join", status_code=status.HTTP_201_CREATED)
async def join(role: IdentityType, body: JoinRequest, db: AsyncSession = Depends(get_session)) -> Authorized:
    return await account_service.join(db, _account_role(role), body)


@router.post("/{role}/login")
async def login(role: IdentityType, body: LoginRequest, db: AsyncSession = Depends(get_session)) -> Authorized:
    return await account_service.login(db, _account_role(role), body)


@router.post("/{role}/refresh")
async def refresh(role: IdentityType, body: RefreshRequest, db: AsyncSession = Depends(get_session)) -> Authorized:
    """Rotate a refresh token. The presented one stops working."""
    return await account_service.refresh(db, role, body.refresh_token)
