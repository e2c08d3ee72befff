# votely/deps.py
# FastAPI dependencies: services wired by create_app and the current user.
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from votely.config import ROLE_ADMIN, STATUS_ACTIVE
from votely.database import USERS
from votely.errors import AuthenticationError, AuthorizationError, ValidationError
from votely.security import decode_access_token
from votely.utils import parse_object_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db(request: Request):
    return request.app.state.db


def get_ledger(request: Request):
    return request.app.state.ledger


def get_tally(request: Request):
    return request.app.state.tally


def get_clock(request: Request):
    return request.app.state.clock


async def user_from_token(db, token: str) -> dict:
    payload = decode_access_token(token)
    try:
        user_oid = parse_object_id(payload["sub"], "user")
    except ValidationError:
        raise AuthenticationError()
    user = await db[USERS].find_one({"_id": user_oid}, {"password": 0})
    if user is None:
        raise AuthenticationError("User not found")
    if user.get("status") != STATUS_ACTIVE:
        raise AuthorizationError("Account is inactive")
    return user


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db=Depends(get_db)) -> dict:
    if not token:
        raise AuthenticationError()
    return await user_from_token(db, token)


async def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != ROLE_ADMIN:
        raise AuthorizationError("Not authorized as an admin")
    return current_user
