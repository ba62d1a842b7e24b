from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Session Data Collector"

    # Entity store (in-process, volatile)
    DATABASE_URL: str = "sqlite://"

    # File Storage
    PROJECTS_DIR: str = "projects"
    DATA_DIR: str = "data"
    CATEGORIES_FILE: str = "for_fake_reasons.csv"
    WAREHOUSES_FILE: str = "warehouses.csv"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024

    # Label rendering
    LABEL_COLOR: str = "#1976D2"
    LABEL_TEXT_COLOR: str = "#FFFFFF"
    LABEL_FONT: str = "DejaVuSans-Bold.ttf"

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
