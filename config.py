import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    database_name: str
    cloudinary_cloud_name: Optional[str]
    cloudinary_api_key: Optional[str]
    cloudinary_api_secret: Optional[str]
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]
    store_url: str
    notify_timezone: str
    upload_dir: str
    static_dir: str
    port: int
    log_level: str
    log_format: str

    @property
    def media_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @property
    def bot_configured(self) -> bool:
        return bool(self.telegram_bot_token)


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
        database_name=os.getenv("DATABASE_NAME", "storefront"),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID"),
        store_url=os.getenv("STORE_URL", "http://localhost:5000"),
        notify_timezone=os.getenv("NOTIFY_TIMEZONE", "Europe/Kyiv"),
        upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
        static_dir=os.getenv("STATIC_DIR", "public"),
        port=int(os.getenv("PORT", 5000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "json").lower(),
    )


@lru_cache
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return load_settings()
