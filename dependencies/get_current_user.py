from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from errors import Unauthorized
from models.user import UserModel
from services.auth import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserModel:
    """Resolve the ``Authorization: Bearer <JWT>`` header to an active user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Not authorized. Token not provided.")

    payload = decode_token(credentials.credentials)

    user = db.get(UserModel, payload["userId"])
    if user is None or not user.is_active:
        raise Unauthorized("Invalid token")

    return user
