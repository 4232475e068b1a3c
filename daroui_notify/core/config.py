from pydantic_settings import BaseSettings
from typing import Optional
import os


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "daroui-notify"
    APP_ENV: str = os.getenv("APP_ENV", "development")
    LOG_LEVEL: str = "INFO"

    # REST collaborator
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000/api")
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Push channel
    WS_PATH: str = "/ws/notifications/"
    WS_CONNECT_TIMEOUT_SECONDS: float = 5.0
    WS_HEARTBEAT_SECONDS: float = 30.0
    WS_RECONNECT_BASE_SECONDS: float = 1.0
    WS_RECONNECT_MAX_SECONDS: float = 10.0
    WS_MAX_RECONNECT_ATTEMPTS: int = 3

    # Store
    NOTIFICATION_HISTORY_LIMIT: int = 50
    UNREAD_REFRESH_SECONDS: float = 30.0

    # Alerts
    SOUND_ENABLED: bool = True
    SOUND_ASSET_PATH: Optional[str] = os.getenv("SOUND_ASSET_PATH")
    SOUND_VOLUME: float = 0.5
    SOUND_TONE_FREQUENCY_HZ: float = 800.0
    SOUND_TONE_DURATION_SECONDS: float = 0.3
    TOAST_DURATION_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
