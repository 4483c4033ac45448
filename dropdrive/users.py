# Filename: dropdrive/users.py
import logging
from decimal import Decimal
from typing import Optional

from sqlmodel import Session

from .auth import get_password_hash
from .config import settings
from .exceptions import BadRequestError
from .models import User

logger = logging.getLogger(__name__)


def provision_user(
    session: Session,
    user_id: int,
    full_name: str,
    department: Optional[str] = None,
    total_storage_mb: Optional[Decimal] = None,
    password: Optional[str] = None,
) -> User:
    """Create the local record of a user that exists in the external directory."""
    if session.get(User, user_id) is not None:
        raise BadRequestError(f"User {user_id} already exists")
    user = User(
        id=user_id,
        full_name=full_name,
        department=department,
        total_storage_mb=total_storage_mb if total_storage_mb is not None else settings.default_total_storage_mb,
        hashed_password=get_password_hash(password) if password else None,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Provisioned user %s (%s MB quota)", user.id, user.total_storage_mb)
    return user
