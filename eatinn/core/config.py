from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    PROJECT_NAME: str = "EatInn Recipe API"
    VERSION: str = "1.0.0"
    ROOT_PATH: str = ""
    ENVIRONMENT: str = "development"  # development | testing | production

    # Database
    DATABASE_URL: str = "sqlite:///./db/recipes.db"
    # Upper bound, in seconds, for a single store operation including its transaction
    DB_OPERATION_TIMEOUT: float = 3.0

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000"
    ]

    # Rate limiting (per client IP)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT: str = "120/minute"

    # Structured request logging
    LOG_SLOW_THRESHOLD_MS: int = 500
    LOG_SAMPLE_RATE: float = 0.05

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
