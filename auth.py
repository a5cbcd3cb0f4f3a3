# auth.py
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

from flask import current_app, g, request
from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from errors import Unauthorized

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_COOKIE = "token"
USER_NAME_COOKIE = "userName"
TOKEN_LIFETIME = timedelta(hours=1)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Salted hash comparison, constant time."""
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def issue_token(
    user_id: int, secret: str, now: datetime, lifetime: timedelta = TOKEN_LIFETIME
) -> str:
    payload = {
        "id": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: Optional[str], secret: str, now: datetime) -> Optional[int]:
    """
    Return the user id bound to a session token.

    None when the token is missing, malformed, signed with another secret or
    expired at `now`. Expiry is checked here rather than by jose so the result
    depends only on the arguments.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token, secret, algorithms=[ALGORITHM], options={"verify_exp": False}
        )
    except JWTError as e:
        logger.warning(f"Session token rejected: {e}")
        return None

    exp = payload.get("exp")
    user_id = payload.get("id")
    if not isinstance(exp, (int, float)) or now.timestamp() >= exp:
        logger.info("Session token expired")
        return None
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    return user_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def login_required(view):
    """Reject the request with Unauthorized unless the token cookie is valid."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = verify_token(
            request.cookies.get(TOKEN_COOKIE),
            current_app.config["JWT_SECRET"],
            utcnow(),
        )
        if user_id is None:
            raise Unauthorized()
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapper
