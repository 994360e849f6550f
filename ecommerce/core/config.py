from pydantic_settings import BaseSettings
from pydantic import Field
import os
from typing import List


class Config(BaseSettings):
    # Database Configuration (SQLite by default, any async driver via DB_URL)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/ecommerce.db", alias="DB_URL"
    )
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # JWT Configuration
    jwt_secret: str = Field(default="change-me-in-production", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )
    refresh_token_expire_days: int = Field(default=7, alias="REFRESH_TOKEN_EXPIRE_DAYS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS
    cors_origins: str = Field(
        default="http://localhost,http://localhost:5173", alias="CORS_ORIGINS"
    )

    # Pagination
    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    is_production: bool = (
        os.getenv("ENVIRONMENT", "development").lower() == "production"
    )

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate the settings
config = Config()
