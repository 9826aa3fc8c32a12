# app/core/config.py
import os
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _decimal_or_none(value: Optional[str]) -> Optional[Decimal]:
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not d.is_finite() or d <= 0:
        return None
    return d


def _positive_int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        n = int(str(value).strip())
    except (ValueError, TypeError):
        return None
    return n if n > 0 else None


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Site Procurement API")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "procure_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "site_procurement")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # A full URL wins over the MYSQL_* parts (tests point this at SQLite)
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL") or (
        f"mysql+{DB_DRIVER}://{quote_plus(MYSQL_USER)}:{quote_plus(MYSQL_PASSWORD)}"
        f"@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}?charset=utf8mb4")

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")

    # ---------- Purchase orders ----------
    PO_COMPANY_CODE: str = os.getenv("PO_COMPANY_CODE", "DCTPL").strip().upper()
    # approve1 jumps straight to level 2 when the order total is <= this; unset disables
    PO_AUTO_APPROVE2_LIMIT: Optional[Decimal] = _decimal_or_none(
        os.getenv("PO_AUTO_APPROVE2_LIMIT"))
    PO_BUDGET_VALIDATION: bool = _flag("PO_BUDGET_VALIDATION", "true")
    # site_budget | indent | none
    PO_BUDGET_SOURCE: str = os.getenv("PO_BUDGET_SOURCE", "site_budget").strip().lower()
    # scale ceilings to this many days of the current month (e.g. 7 for weekly); unset keeps full ceilings
    PO_BUDGET_SLICE_DAYS: Optional[int] = _positive_int_or_none(os.getenv("PO_BUDGET_SLICE_DAYS"))


settings = Settings()
