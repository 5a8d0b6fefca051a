import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
import jwt
from fastapi import Depends, Header, Request

import config
from database import Store, get_store
from logger import get_logger
from models import User

log = get_logger("auth")


class InvalidToken(Exception):
    pass


class UserNotFound(Exception):
    pass


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # stored hash is not a bcrypt hash
        return False


def _encode(user, lifetime: timedelta) -> str:
    claims = {
        "userID": user.id,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def issue_tokens(user) -> Tuple[str, str]:
    """Return (access_token, refresh_token) for the user. Signing errors propagate."""
    access = _encode(user, timedelta(hours=config.ACCESS_TOKEN_TTL_HOURS))
    refresh = _encode(user, timedelta(days=config.REFRESH_TOKEN_TTL_DAYS))
    return access, refresh


def user_id_from_header(authorization: Optional[str]) -> int:
    """
    Verify the bearer token in an Authorization header and return the user id it carries.

    The "Bearer " prefix is optional. Raises InvalidToken when the header is
    missing, the signature or algorithm does not match, the token expired, or
    the userID claim is absent.
    """
    if not authorization:
        raise InvalidToken("authorization header is missing")
    token = authorization[len("Bearer "):] if authorization.startswith("Bearer ") else authorization
    token = token.strip()
    try:
        claims = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as e:
        raise InvalidToken(f"invalid token: {e}") from e

    user_id = claims.get("userID")
    if isinstance(user_id, bool) or not isinstance(user_id, (int, float)):
        raise InvalidToken("userID not found in token")
    return int(user_id)


def resolve_identity(store, authorization: Optional[str]) -> User:
    user_id = user_id_from_header(authorization)
    user = store.get(User, user_id)
    if user is None:
        raise UserNotFound(f"user {user_id} not found")
    return user


def load_auth_user(
    request: Request,
    authorization: Optional[str] = Header(default=None, include_in_schema=False),
    store: Store = Depends(get_store),
) -> Optional[User]:
    """Attach the caller to request.state.user; never rejects the request."""
    request.state.user = None
    try:
        request.state.user = resolve_identity(store, authorization)
    except (InvalidToken, UserNotFound) as e:
        level = logging.INFO if authorization else logging.DEBUG
        log.log(level, f"Failed to get authenticated user: {e}, route: {request.url.path}")
    return request.state.user
