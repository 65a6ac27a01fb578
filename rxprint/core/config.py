# rxprint/core/config.py
import os
from typing import List, Optional
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus
from pathlib import Path

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Rx Overlay Print")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "rx_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "rx_overlay")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # Full URL wins over the MySQL parts (sqlite for local runs)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

    # ---------- Record store ----------
    # "sql" -> SqlRecordStore, "memory" -> InMemoryRecordStore (demo)
    RECORD_STORE: str = os.getenv("RECORD_STORE", "sql").strip().lower()

    # ---------- Printing ----------
    LAYOUT_TEMPLATE: str = os.getenv("LAYOUT_TEMPLATE", "overlay")
    OVERFLOW_POLICY: str = os.getenv("OVERFLOW_POLICY",
                                     "paginate").strip().lower()
    BACKGROUND_IMAGE_PATH: str = os.getenv("BACKGROUND_IMAGE_PATH",
                                           "./media/prescription-bg.jpg")
    BACKGROUND_IMAGE_URL: str = os.getenv("BACKGROUND_IMAGE_URL",
                                          "/media/prescription-bg.jpg")
    RTL_FONT_PATH: str = os.getenv("RTL_FONT_PATH", "")

    CLINIC_TIMEZONE: str = os.getenv("CLINIC_TIMEZONE", "Asia/Karachi")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # ---------- File storage ----------
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "./media")
    MEDIA_URL: str = os.getenv("MEDIA_URL", "/media")

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+{self.DB_DRIVER}://{quote_plus(self.MYSQL_USER)}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DB}")


settings = Settings()

Path(settings.STORAGE_DIR).resolve().mkdir(parents=True, exist_ok=True)
