# Filename: dropdrive/auth.py
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session

from .config import settings
from .db import get_session
from .exceptions import UnauthorizedError
from .hierarchy import AuthContext
from .models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = settings.jwt_algorithm
SECRET_KEY = settings.secret_key
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
COOKIE_NAME = "access_token"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(subject), "exp": int(expire.timestamp()), "iat": int(now.timestamp())}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


class AuthProvider:
    """Checks a user id + credential pair against the configured auth mode."""

    def __init__(self, mode: str = settings.auth_mode, dev_password: str = settings.dev_password):
        self.mode = mode
        self.dev_password = dev_password

    def authenticate(self, session: Session, user_id: int, credential: str) -> Optional[User]:
        user = session.get(User, user_id)
        if user is None or not credential:
            return None
        if self.mode == "dev_pass":
            ok = bool(self.dev_password) and hmac.compare_digest(credential, self.dev_password)
        else:
            ok = bool(user.hashed_password) and verify_password(credential, user.hashed_password)
        if not ok:
            logger.warning("Failed login for user %s", user_id)
            return None
        return user


class SessionStore:
    """Reads the signed-in user id from a bearer token or the access_token cookie."""

    @staticmethod
    def _get_token_from_header_or_cookie(request: Request) -> Optional[str]:
        token_raw = request.headers.get("authorization") or request.cookies.get(COOKIE_NAME)
        if not token_raw:
            return None
        # token may be "Bearer <token>" or just "<token>"
        if token_raw.lower().startswith("bearer "):
            return token_raw.split(" ", 1)[1]
        return token_raw

    def current_user_id(self, request: Request) -> Optional[int]:
        token = self._get_token_from_header_or_cookie(request)
        if not token:
            return None
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            return None
        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            return None


auth_provider = AuthProvider()
session_store = SessionStore()


def get_auth_provider() -> AuthProvider:
    return auth_provider


def get_auth_context(request: Request, session: Session = Depends(get_session)) -> AuthContext:
    """Resolve the caller; 401 when nobody is signed in or the user no longer exists."""
    user_id = session_store.current_user_id(request)
    if user_id is None or session.get(User, user_id) is None:
        raise UnauthorizedError()
    return AuthContext(user_id=user_id)
