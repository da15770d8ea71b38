from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.helper import get_current_time_in_timezone
from models.User import User


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    stmt = select(User).where(User.username == username)
    data = db.execute(stmt).scalar()
    return data


def create_user(
    db: Session,
    username: str,
    password: str,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    is_active: bool = True,
    is_admin: bool = False,
    is_commit: bool = True,
) -> User:
    now = get_current_time_in_timezone()
    user = User(
        username=username,
        password=password,
        email=email,
        full_name=full_name,
        is_active=is_active,
        is_admin=is_admin,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.flush()
    if is_commit:
        db.commit()
        db.refresh(user)
    return user
