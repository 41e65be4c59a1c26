from typing import Optional

from sqlalchemy.orm import Session
from dailydrop.users.models import User


def get_user(db: Session, user_id: str) -> Optional[User]:
    """
    Retrieves a user by ID.

    Args:
        db (Session): SQLAlchemy session.
        user_id (str): ID of the user.

    Returns:
        Optional[User]: The user if found, else None.
    """
    return db.query(User).filter(User.id == user_id).first()
