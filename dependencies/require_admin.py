from fastapi import Depends

from dependencies.get_current_user import get_current_user
from errors import Forbidden
from models.user import UserModel, UserRole


def require_role(*roles: UserRole):
    """Guard factory layered on top of ``get_current_user``."""
    def guard(current_user: UserModel = Depends(get_current_user)) -> UserModel:
        if current_user.role not in roles:
            raise Forbidden(f"Access denied. Requires role: {', '.join(r.value for r in roles)}")
        return current_user
    return guard


require_admin = require_role(UserRole.ADMIN)
