from __future__ import annotations

import random
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..auth_utils import (
    create_session,
    get_current_user,
    hash_password,
    session_token,
    user_out,
    verify_password,
)
from ..constants import AUTH_COOKIE, SESSION_MAX_AGE
from ..logger import get_logger
from ..models import AuthSession, User
from ..schemas import AuthResponse, LoginRequest, SignupRequest, UserOut

router = APIRouter(prefix="/api", tags=["users"])
logger = get_logger(__name__)


async def _login_response(response: Response, user: User) -> AuthResponse:
    token = await create_session(user)
    response.set_cookie(AUTH_COOKIE, token, httponly=True, max_age=SESSION_MAX_AGE, samesite="lax")
    return AuthResponse(token=token, user=user_out(user))


@router.post("/auth/guest", response_model=AuthResponse)
async def guest_login(response: Response):
    user = await User.create(
        display_name=f"Gast {random.randint(0, 999)}",
        is_guest=True,
    )
    logger.info("Guest %s created", user.id)
    return await _login_response(response, user)


@router.post("/auth/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(req: SignupRequest, response: Response):
    if await User.filter(username=req.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")
    user = await User.create(
        username=req.username,
        password_hash=hash_password(req.password),
        display_name=req.display_name or req.username,
        spots=100,
    )
    return await _login_response(response, user)


@router.post("/auth/login", response_model=AuthResponse)
async def login(req: LoginRequest, response: Response):
    user = await User.filter(username=req.username).first()
    if not user or not user.password_hash or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return await _login_response(response, user)


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response, token: Optional[str] = Depends(session_token)):
    if token:
        await AuthSession.filter(token=token).delete()
    response.delete_cookie(AUTH_COOKIE)


@router.get("/profile", response_model=UserOut)
async def get_profile(current_user: User = Depends(get_current_user)):
    return user_out(current_user)
