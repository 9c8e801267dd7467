import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from albumrank.core.security import hash_password
from albumrank.db.models import User

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session, *, email: str, username: str, password: str, display_name: str = "Admin") -> User:
    """
    Creates (or promotes) the admin account on startup. Idempotent.
    """
    email = email.lower().strip()
    row = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if row:
        if row.role != "ADMIN":
            row.role = "ADMIN"
            db.commit()
            logger.info("promoted existing user=%s to ADMIN", row.id)
        return row

    admin = User(
        email=email,
        username=username,
        password_hash=hash_password(password),
        display_name=display_name,
        role="ADMIN",
    )
    db.add(admin)
    db.commit()
    logger.info("seeded admin user=%s", admin.id)
    return admin
