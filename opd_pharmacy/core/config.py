# opd_pharmacy/core/config.py
import os
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "OPD Pharmacy")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "opd_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "opd_pharmacy")
    # async driver; aiomysql speaks the same protocol as pymysql
    DB_DRIVER: str = os.getenv("DB_DRIVER", "aiomysql")

    # Full URL override (e.g. sqlite+aiosqlite:///./opd.db for local runs)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

    DB_ECHO: bool = _flag("DB_ECHO")
    DB_AUTO_CREATE: bool = _flag("DB_AUTO_CREATE", "true")

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")

    # ---------- Billing ----------
    BILLING_COMMIT_TIMEOUT_SECONDS: float = float(
        os.getenv("BILLING_COMMIT_TIMEOUT_SECONDS", "10") or 10)
    # empty string = leave the driver default alone
    BILLING_ISOLATION_LEVEL: str = os.getenv("BILLING_ISOLATION_LEVEL",
                                             "REPEATABLE READ")

    # ---------- Inventory ----------
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    EXPIRY_ALERT_DAYS: int = int(os.getenv("EXPIRY_ALERT_DAYS", "30"))

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+{self.DB_DRIVER}://{quote_plus(self.MYSQL_USER)}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DB}?charset=utf8mb4")


settings = Settings()
