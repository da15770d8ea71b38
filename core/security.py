import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.orm import Session as SQLAlchemySession

from core.helper import get_current_time_in_timezone
from models import get_db_sync
from models.Token import Token
from models.User import User
from settings import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    SECRET_KEY,
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token/", auto_error=False)

# 32 random bytes, urlsafe base64 encoded to 43 characters
TICKET_ACCESS_TOKEN_BYTES = 32


@dataclass(frozen=True)
class AdminPrincipal:
    id: str
    username: str


def generate_ticket_access_token() -> str:
    """Capability token handed to the ticket holder, the only key to their ticket."""
    return secrets.token_urlsafe(TICKET_ACCESS_TOKEN_BYTES)


def generate_hash_password(password: str) -> str:
    hash = bcrypt.hashpw(str.encode(password), bcrypt.gensalt())
    return hash.decode()


def validated_password(hash: str, password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hash.encode())
    except ValueError:
        return False


def generate_token_from_user(db: SQLAlchemySession, user: User) -> str:
    expire = get_current_time_in_timezone() + timedelta(
        minutes=float(ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    """
    {
        "id": "aaaa-bbbb-cccc-dddd",
        "username": "someusername",
        "exp": 1641455971,
    }
    """
    payload = {
        "id": str(user.id),
        "username": user.username,
        "exp": expire,
        # unique per login so two logins in the same second get distinct tokens
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)
    new_token = Token(
        user=user,
        token=token,
        expired_at=expire,
        created_at=get_current_time_in_timezone(),
    )
    db.add(new_token)
    db.commit()
    return token


def get_user_from_token(db: SQLAlchemySession, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    now = get_current_time_in_timezone()
    try:
        payload = jwt.decode(jwt=token, key=SECRET_KEY, algorithms=[ALGORITHM])
        id = uuid.UUID(payload.get("id"))
    except (jwt.PyJWTError, TypeError, ValueError):
        invalidate_token(db=db, token=token)
        return None

    stmt = select(Token).where(
        Token.token == token, Token.user_id == id, Token.expired_at > now
    )
    session = db.execute(stmt).scalar()
    if session is None:
        return None
    if not session.user.is_active:
        return None

    return session.user


def invalidate_token(db: SQLAlchemySession, token: str):
    # clear all expired token and selected_token
    now = get_current_time_in_timezone()
    stmt = delete(Token).where(or_(Token.expired_at <= now, Token.token == token))
    db.execute(stmt)
    db.commit()


def require_admin(
    db: Session = Depends(get_db_sync), token: Optional[str] = Depends(oauth2_scheme)
) -> AdminPrincipal:
    """Resolve the bearer token into the admin performing the request.

    Raises:
        HTTPException: 401 without a valid session, 403 for non admin users
    """
    user = get_user_from_token(db=db, token=token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permissions to perform this action",
        )
    return AdminPrincipal(id=str(user.id), username=user.username)
