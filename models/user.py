from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from .base import BaseModel
from passlib.context import CryptContext
from datetime import datetime, timezone, timedelta
import jwt
from config.environment import settings
import enum

# Only back-office users log in; shoppers browse anonymously
class UserRole(str, enum.Enum):
    ADMIN = "admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class UserModel(BaseModel):

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.ADMIN, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    def set_password(self, password: str):
        self.password_hash = pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        return pwd_context.verify(password, self.password_hash)

    def generate_token(self):
        now = datetime.now(timezone.utc)
        payload = {
            "exp": now + timedelta(days=settings.jwt_expires_days),
            "iat": now,
            "userId": self.id,
            "email": self.email,
            "role": self.role.value
        }

        token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

        return token
