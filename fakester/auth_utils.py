import secrets
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from passlib.context import CryptContext

from .constants import AUTH_COOKIE
from .models import AuthSession, User
from .schemas import Identity, UserOut

# -----------------------------
# Password hashing helpers
# -----------------------------

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    """Return a secure bcrypt hash of *password*."""
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    """Verify *password* against *hashed* bcrypt digest."""
    return pwd_context.verify(password, hashed)

# -----------------------------
# Sessions & identity provider
# -----------------------------

def generate_token() -> str:
    return secrets.token_urlsafe(32)

async def create_session(user: User) -> str:
    token = generate_token()
    await AuthSession.create(token=token, user=user)
    return token

async def get_session_user(token: Optional[str]) -> Optional[User]:
    """Return the *User* behind *token*, or ``None`` for a missing/unknown token."""
    if not token:
        return None
    session = await AuthSession.filter(token=token).prefetch_related("user").first()
    return session.user if session else None

async def resolve_identity(token: Optional[str]) -> Optional[Identity]:
    """Identity provider used at WebSocket handshake time."""
    user = await get_session_user(token)
    if user is None:
        return None
    return Identity(id=str(user.id), display_name=user.display_name)

def user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        username=user.username,
        displayName=user.display_name,
        xp=user.xp,
        spots=user.spots,
        isGuest=user.is_guest,
    )

# -----------------------------
# FastAPI dependency helpers
# -----------------------------

def session_token(
    auth_token: Optional[str] = Cookie(default=None, alias=AUTH_COOKIE),
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    """Session token from the cookie, or from an ``Authorization: Bearer`` header."""
    if auth_token:
        return auth_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None

async def get_current_user(token: Optional[str] = Depends(session_token)) -> User:
    """Return the logged-in *User*.

    Raises
    ------
    HTTPException
        If no valid session accompanies the request.
    """
    user = await get_session_user(token)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user

__all__ = [
    "pwd_context",
    "hash_password",
    "verify_password",
    "generate_token",
    "create_session",
    "get_session_user",
    "resolve_identity",
    "user_out",
    "session_token",
    "get_current_user",
]
