import os
from dataclasses import dataclass
from datetime import date


CLASSES = [f"Class {n}" for n in range(3, 13)]

MONTHS = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

STAR_STUDENT = "Star Student"


@dataclass(frozen=True)
class Settings:
    admin_password: str = os.getenv("BRIGHTX_ADMIN_PASSWORD", "brightx@admin")
    storage_key: str = os.getenv("BRIGHTX_STORAGE_KEY", "BRIGHTXLEARN_DATA_V3")
    jwt_secret: str = os.getenv("BRIGHTX_JWT_SECRET", os.getenv("JWT_SECRET", "change-me-in-production"))
    jwt_algorithm: str = os.getenv("BRIGHTX_JWT_ALGORITHM", "HS256")
    jwt_exp_minutes: int = int(os.getenv("BRIGHTX_JWT_EXP_MINUTES", "480"))
    current_year: int = int(os.getenv("BRIGHTX_CURRENT_YEAR", str(date.today().year)))
    audit_log_limit: int = int(os.getenv("BRIGHTX_AUDIT_LOG_LIMIT", "200"))
    reminder_day: int = int(os.getenv("BRIGHTX_REMINDER_DAY", "12"))
    reminder_preview: int = int(os.getenv("BRIGHTX_REMINDER_PREVIEW", "6"))
    celebration_seconds: float = float(os.getenv("BRIGHTX_CELEBRATION_SECONDS", "3"))


settings = Settings()
