"""
Identity & session primitives: password hashing, token signing and the
cookie that carries the token between requests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Cookie, Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from storefront import config
from storefront.errors import UnauthorizedError
from storefront.schemas import Role

logger = logging.getLogger("storefront.security")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Principal(BaseModel):
    user_id: str
    name: str
    role: Role

    @classmethod
    def from_user(cls, user: Dict[str, Any]) -> "Principal":
        return cls(user_id=str(user["_id"]), name=user["name"], role=user.get("role", "user"))

    def to_claims(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "userName": self.name, "userRole": self.role}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(principal: Principal, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = principal.to_claims()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=config.TOKEN_LIFETIME_DAYS))
    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_token(token: Optional[str]) -> Principal:
    """Verify signature and expiry; every kind of failure is reported the same way."""
    if not token:
        raise UnauthorizedError("Authentication invalid")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        return Principal(
            user_id=payload["userId"],
            name=payload["userName"],
            role=payload["userRole"],
        )
    except (JWTError, KeyError, ValidationError):
        raise UnauthorizedError("Authentication invalid")


def attach_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.COOKIE_NAME,
        value=token,
        max_age=config.COOKIE_MAX_AGE,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    # An already-expired cookie makes the browser drop the token
    response.set_cookie(
        key=config.COOKIE_NAME,
        value="logout",
        max_age=0,
        expires=0,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


def issue_session(response: Response, principal: Principal) -> str:
    token = create_access_token(principal)
    attach_session_cookie(response, token)
    return token


# Dependency to get current user

def get_current_user(token: Optional[str] = Cookie(default=None, alias=config.COOKIE_NAME)) -> Principal:
    return decode_token(token)
