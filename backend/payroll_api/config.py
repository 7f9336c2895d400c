"""Application settings and configuration helpers."""
from functools import lru_cache
import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(
        default="sqlite+aiosqlite:///./payroll.db", alias="DATABASE_URL"
    )
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    access_token_expires_minutes: int = Field(
        default=60 * 24, alias="ACCESS_TOKEN_EXPIRES_MINUTES"
    )
    default_page_size: int = Field(default=50, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=200, alias="MAX_PAGE_SIZE")
    host: str = Field(default="127.0.0.1", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    defaults = Settings.model_fields
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults["database_url"].default),
        secret_key=os.getenv("SECRET_KEY", defaults["secret_key"].default),
        access_token_expires_minutes=int(
            os.getenv(
                "ACCESS_TOKEN_EXPIRES_MINUTES",
                defaults["access_token_expires_minutes"].default,
            )
        ),
        default_page_size=int(
            os.getenv("DEFAULT_PAGE_SIZE", defaults["default_page_size"].default)
        ),
        max_page_size=int(os.getenv("MAX_PAGE_SIZE", defaults["max_page_size"].default)),
        host=os.getenv("API_HOST", defaults["host"].default),
        port=int(os.getenv("API_PORT", defaults["port"].default)),
    )
