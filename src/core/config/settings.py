from pydantic_settings import BaseSettings
from typing import Optional


class AppSettings(BaseSettings):
    APP_NAME: str = "Repohook"
    DEBUG: bool = True

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "repohook"
    MONGO_TIMEOUT_MS: int = 5000

    # org별 database: "{ORG_DB_PREFIX}{org}"
    ORG_DB_PREFIX: str = "org_"

    # ===== GitHub =====
    GITHUB_TOKEN: Optional[str] = None

    # ===== Delivery worker =====
    WORKER_ID: int = 1
    SCHEDULER_ENABLED: bool = True
    DELIVERY_MAX_ATTEMPTS: int = 3
    DELIVERY_POLL_INTERVAL: int = 10
    MONITOR_INTERVAL: int = 600

    class Config:
        # docker-compose env_file 환경변수 사용 중
        pass


settings = AppSettings()
