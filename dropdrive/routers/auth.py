# Filename: dropdrive/routers/auth.py
from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from ..auth import COOKIE_NAME, AuthProvider, create_access_token, get_auth_context, get_auth_provider
from ..db import get_session
from ..exceptions import UnauthorizedError
from ..hierarchy import AuthContext
from ..models import User
from ..schemas import LoginRequest, MessageOut, Token, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _login(session: Session, provider: AuthProvider, user_id: int, password: str) -> User:
    user = provider.authenticate(session, user_id, password)
    if user is None:
        raise UnauthorizedError("Incorrect user id or password")
    return user


@router.post("/token", response_model=Token)
def login_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
    provider: AuthProvider = Depends(get_auth_provider),
):
    try:
        user_id = int(form_data.username)
    except ValueError:
        raise UnauthorizedError("Incorrect user id or password")
    user = _login(session, provider, user_id, form_data.password)
    return {"access_token": create_access_token(user.id), "token_type": "bearer"}


# JSON login that also sets an HttpOnly cookie for browsers
@router.post("/login", response_model=Token)
def login(
    data: LoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    provider: AuthProvider = Depends(get_auth_provider),
):
    user = _login(session, provider, data.user_id, data.password)
    token = create_access_token(user.id)
    max_age = 60 * 60 * 24 * 30 if data.remember else None  # 30 days or session cookie
    response.set_cookie(COOKIE_NAME, token, httponly=True, secure=False, samesite="lax", max_age=max_age)
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return MessageOut()


@router.get("/me", response_model=UserOut)
def me(ctx: AuthContext = Depends(get_auth_context), session: Session = Depends(get_session)):
    return UserOut.model_validate(session.get(User, ctx.user_id))
