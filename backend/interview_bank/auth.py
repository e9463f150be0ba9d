"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens and two FastAPI
dependencies: `get_current_user`, which validates the bearer token and
returns the corresponding `User` model instance from the database, and
`get_optional_user`, which returns `None` for anonymous requests.

The implementation is intentionally small: token verification raises
HTTPExceptions on failure so it can be used directly inside route
dependencies.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import get_session
from . import models, repositories

bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def _user_from_token(token: str, db: Session) -> models.User:
    payload = decode_token(token)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail='user not found')
    return user


def get_current_user(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
                     db: Session = Depends(get_session)) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and performs a database lookup to return the `User` object. It raises
    an HTTPException(401) for any authentication issue.
    """
    return _user_from_token(credentials.credentials, db)


def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_bearer_scheme),
                      db: Session = Depends(get_session)) -> Optional[models.User]:
    """Like `get_current_user` but anonymous requests yield `None`.

    A token that is present but invalid is still rejected with 401.
    """
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)
