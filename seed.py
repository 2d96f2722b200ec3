"""
Create the tables and the first admin user.

    ADMIN_EMAIL=admin@alahas.com ADMIN_PASSWORD=secret python seed.py
"""

import logging

from sqlalchemy.orm import Session

from config.environment import settings
from database import engine, SessionLocal
from models import Base, UserModel, UserRole

logger = logging.getLogger("seed")


def create_tables(bind=engine):
    Base.metadata.create_all(bind=bind)


def ensure_admin(db: Session, email: str, password: str, full_name: str = "Administrador") -> UserModel:
    """Create the admin, or reset its password if it already exists."""
    email = email.lower()
    user = db.query(UserModel).filter(UserModel.email == email).first()
    if user is None:
        user = UserModel(email=email, full_name=full_name, role=UserRole.ADMIN, is_active=True)
        db.add(user)
        logger.info("Creating admin %s", email)
    else:
        logger.info("Resetting password for admin %s", email)
    user.set_password(password)
    db.commit()
    db.refresh(user)
    return user


def main():
    logging.basicConfig(level=settings.log_level)
    create_tables()
    if not settings.admin_email or not settings.admin_password:
        logger.warning("ADMIN_EMAIL / ADMIN_PASSWORD not set; skipping admin user")
        return
    db = SessionLocal()
    try:
        ensure_admin(db, settings.admin_email, settings.admin_password)
    finally:
        db.close()


if __name__ == "__main__":
    main()
