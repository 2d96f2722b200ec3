from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from models.user import UserModel
from serializers.common import Envelope, MessageResponse
from serializers.user import UserSchema, UserLogin, UserToken, UserResponseSchema, ChangePassword
from database import get_db
from dependencies.get_current_user import get_current_user
from dependencies.require_admin import require_admin
from services import auth

router = APIRouter()


@router.post('/auth/login', response_model=UserToken)
def login(user: UserLogin, db: Session = Depends(get_db)):
    """
    Exchange email + password for a JWT (`Authorization: Bearer <token>`).
    """
    db_user, token = auth.authenticate(db, user.email, user.password)
    return {"ok": True, "token": token, "user": db_user}


@router.get('/auth/me', response_model=Envelope[UserResponseSchema])
def get_me(current_user: UserModel = Depends(get_current_user)):
    return {"ok": True, "data": current_user}


# Only an existing admin can create more admin users
@router.post('/auth/register', response_model=UserToken, status_code=status.HTTP_201_CREATED)
def register(
    user: UserSchema,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    new_user, token = auth.register_user(db, user)
    return {"ok": True, "token": token, "user": new_user}


@router.post('/auth/change-password', response_model=MessageResponse)
def change_password(
    payload: ChangePassword,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user)
):
    auth.change_password(db, current_user.id, payload.old_password, payload.new_password)
    return {"ok": True, "message": "Password updated"}
