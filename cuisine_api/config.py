"""
Configuration management for the Indian Cuisine API
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Indian Cuisine API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 3000

    # Database
    DATABASE_URL: str = "sqlite:///./cuisine.db"

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60  # 1 hour

    # Dataset import
    DISHES_CSV_PATH: str = "data/indian_food.csv"
    IMPORT_BATCH_SIZE: int = 500

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
