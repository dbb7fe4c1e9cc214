from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "A11y Crawl"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["*"]

    # ── Database ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./a11y_crawl.db"

    # ── Crawl ───────────────────────────────────
    CRAWL_BATCH_SIZE: int = Field(default=5, ge=1, le=20)
    PAGE_LOAD_TIMEOUT: int = Field(default=30, ge=15, le=30)  # seconds
    SCRIPT_TIMEOUT: int = 30  # axe-core run, seconds
    STRIP_QUERY_STRING: bool = False

    # ── Browser ─────────────────────────────────
    CHROMEDRIVER_PATH: Optional[str] = None
    USE_WEBDRIVER_MANAGER: bool = False
    BROWSER_HEADLESS: bool = True
    BROWSER_WINDOW_WIDTH: int = 1280
    BROWSER_WINDOW_HEIGHT: int = 800

    # ── Kontent.ai spaces ───────────────────────
    KONTENT_MANAGEMENT_API_URL: str = "https://manage.kontent.ai/v2"
    KONTENT_API_KEY: Optional[str] = None
    KONTENT_PROJECT_ID: Optional[str] = None
    KONTENT_TIMEOUT: float = 10.0  # seconds

    # ── Logging ─────────────────────────────────
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
