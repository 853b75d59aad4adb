from typing import Optional
from sqlalchemy.orm import Session

from app.models.all_models import User, UserRole
from app.utils.auth import get_password_hash


def get_display_name(user: User) -> str:
    """
    Utility function to get the name shown for a portal user.
    """
    return user.full_name or str(user.username).upper()

def create_user(db: Session,
    username: str,
    email: str,
    password: str,
    full_name: Optional[str] = None,
    role: UserRole = UserRole.COORDINATOR,
) -> User:
    try:
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=get_password_hash(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except Exception:
        db.rollback()
        raise
