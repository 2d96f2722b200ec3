import logging
from datetime import datetime, timezone
from typing import Tuple

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.environment import settings
from errors import ConstraintViolation, NotFound, Unauthorized, ValidationError
from models.user import UserModel, UserRole
from serializers.user import UserSchema

logger = logging.getLogger(__name__)


def decode_token(token: str) -> dict:
    """Verify signature and expiry; returns the ``{userId, email, role}`` payload."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired") from None
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token") from None
    if "userId" not in payload:
        raise Unauthorized("Invalid token")
    return payload


def get_user_by_email(db: Session, email: str):
    return db.execute(select(UserModel).where(UserModel.email == email.lower())).scalar_one_or_none()


def authenticate(db: Session, email: str, password: str) -> Tuple[UserModel, str]:
    user = get_user_by_email(db, email)
    if user is None or not user.verify_password(password):
        logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("User is disabled")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user, user.generate_token()


def register_user(db: Session, data: UserSchema) -> Tuple[UserModel, str]:
    if get_user_by_email(db, data.email) is not None:
        raise ConstraintViolation("Email is already registered")

    user = UserModel(email=data.email.lower(), full_name=data.full_name, role=UserRole(data.role or UserRole.ADMIN))
    user.set_password(data.password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConstraintViolation("Email is already registered") from exc
    db.refresh(user)
    logger.info("Registered user %s", user.email)
    return user, user.generate_token()


def change_password(db: Session, user_id: int, old_password: str, new_password: str):
    user = db.get(UserModel, user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.verify_password(old_password):
        raise ValidationError("Current password is incorrect", errors={"oldPassword": ["is incorrect"]})
    user.set_password(new_password)
    db.commit()
