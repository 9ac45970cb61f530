"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from pydantic import computed_field
from functools import lru_cache
from typing import List
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # Database Configuration (Individual Parameters)
    db_host: str = ""
    db_port: int = 5432
    db_name: str
    db_user: str = ""
    db_password: str = ""
    db_driver: str = "postgresql"

    @computed_field
    @property
    def database_url(self) -> str:
        """Compile database URL from individual parameters"""
        if self.db_driver.startswith('sqlite'):
            return f"{self.db_driver}:///{self.db_name}"

        encoded_user = quote_plus(self.db_user)
        encoded_password = quote_plus(self.db_password)
        return f"{self.db_driver}://{encoded_user}:{encoded_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Security (Required from environment)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    jwt_issuer: str = "store-rating-platform"
    jwt_audience: str = "store-rating-users"

    # Application
    app_name: str = "Store Rating Platform"
    debug: bool = False

    # CORS - loaded from environment
    allowed_origins: str = "http://localhost:3000"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_file: bool = False
    log_file_path: str = "logs/store_ratings.log"
    log_max_size_mb: int = 10
    log_backup_count: int = 5
    log_to_console: bool = True
    log_verbosity: str = "minimal"  # "minimal" or "full" - full also echoes SQL

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
