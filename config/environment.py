import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_pool_size: int
    db_pool_timeout: float
    jwt_secret: str
    jwt_expires_days: int
    cloudinary_cloud_name: Optional[str]
    cloudinary_api_key: Optional[str]
    cloudinary_api_secret: Optional[str]
    cloudinary_folder: str
    smtp_host: Optional[str]
    smtp_port: int
    smtp_user: Optional[str]
    smtp_password: Optional[str]
    mail_from: Optional[str]
    mail_to: Optional[str]
    frontend_url: Optional[str]
    log_level: str
    default_page_size: int
    max_page_size: int
    max_product_images: int
    admin_email: Optional[str]
    admin_password: Optional[str]


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def load_settings() -> Settings:
    """Read the process environment once and freeze it."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./catalog.db"),
        db_pool_size=_int("DB_POOL_SIZE", 20),
        db_pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "2")),
        jwt_secret=os.getenv("JWT_SECRET", "change-me"),
        jwt_expires_days=_int("JWT_EXPIRES_DAYS", 7),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", "alahas"),
        smtp_host=os.getenv("SMTP_HOST"),
        smtp_port=_int("SMTP_PORT", 587),
        smtp_user=os.getenv("SMTP_USER"),
        smtp_password=os.getenv("SMTP_PASS"),
        mail_from=os.getenv("MAIL_FROM"),
        mail_to=os.getenv("MAIL_TO"),
        frontend_url=os.getenv("FRONTENDURL"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        default_page_size=_int("DEFAULT_PAGE_SIZE", 50),
        max_page_size=_int("MAX_PAGE_SIZE", 100),
        max_product_images=_int("MAX_PRODUCT_IMAGES", 6),
        admin_email=os.getenv("ADMIN_EMAIL"),
        admin_password=os.getenv("ADMIN_PASSWORD"),
    )


settings = load_settings()
