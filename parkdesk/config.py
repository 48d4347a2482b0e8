import logging
import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    PARKING_API_BASE_URL: str = os.getenv("PARKING_API_BASE_URL", "http://localhost:8000/api")
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", 20))
    STREAM_CONNECT_TIMEOUT: int = int(os.getenv("STREAM_CONNECT_TIMEOUT", 10))

    SEARCH_DEBOUNCE_MS: int = int(os.getenv("SEARCH_DEBOUNCE_MS", 300))
    SEARCH_MIN_QUERY_LENGTH: int = int(os.getenv("SEARCH_MIN_QUERY_LENGTH", 2))
    SEARCH_RESULT_LIMIT: int = int(os.getenv("SEARCH_RESULT_LIMIT", 10))

    STREAM_RECONNECT_DELAY_SEC: float = float(os.getenv("STREAM_RECONNECT_DELAY_SEC", 5))
    # 0 keeps retrying for as long as the console is open
    STREAM_MAX_RECONNECT_ATTEMPTS: int = int(os.getenv("STREAM_MAX_RECONNECT_ATTEMPTS", 0))
    ALERT_FRESHNESS_WINDOW_SEC: int = int(os.getenv("ALERT_FRESHNESS_WINDOW_SEC", 300))
    ENABLE_NOTIFICATION_STREAM: bool = os.getenv(
        "ENABLE_NOTIFICATION_STREAM", "true"
    ).lower() in ("true", "1", "t")

    NOTICE_DEFAULT_DURATION_MS: int = int(os.getenv("NOTICE_DEFAULT_DURATION_MS", 4000))
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "parkdesk")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "dev")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    class Config:
        arbitrary_types_allowed = True
        env_file = ".env"


httpx_logger = logging.getLogger("httpx")
httpx_logger.setLevel(logging.WARNING)
httpx_logger.propagate = False


settings = Settings()
