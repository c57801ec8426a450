from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

CHARSET_36 = "0123456789abcdefghijklmnopqrstuvwxyz"
CHARSET_62 = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Short Links"

    # Infrastructure Configs (Env Vars)
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: str = "shortlinks"
    POSTGRES_PASSWORD: str = "shortlinks"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "shortlinks"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    KEYWORD_CACHE_ENABLED: bool = True
    KEYWORD_CACHE_TTL: int = 86400

    # Installation root: short URLs are BASE_URL/<keyword>
    BASE_URL: str = "http://localhost:8080"

    # Keyword allocation
    URL_CONVERT: int = 36
    MAX_KEYWORD_LENGTH: int = 100
    RESERVED_KEYWORDS: List[str] = []
    UNIQUE_URLS: bool = True
    MAX_ALLOCATION_RETRIES: int = 5

    # Flood protection, 0 disables it
    FLOOD_DELAY_SECONDS: int = 0
    FLOOD_IP_WHITELIST: List[str] = []

    # Redirects and click log
    NOSTATS: bool = False
    REDIRECT_STATUS_CODE: int = 301
    NOT_FOUND_STATUS_CODE: int = 302

    ALLOWED_PROTOCOLS: List[str] = [
        "http://", "https://", "ftp://", "ftps://", "mailto:", "news:",
        "irc://", "ircs://", "gopher://", "nntp://", "feed://", "feed:",
        "telnet://", "mms://", "rtsp://", "svn://", "git://", "ssh://",
        "tel:", "sms:", "magnet:",
    ]

    PAGES_DIR: Optional[str] = None
    PLUGINS: List[str] = []
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def SHORTURL_CHARSET(self) -> str:
        # 64 was never a real option and maps to 62; anything else falls back to 36
        if self.URL_CONVERT in (62, 64):
            return CHARSET_62
        return CHARSET_36


settings = Settings()


def get_settings() -> Settings:
    return settings
