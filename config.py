"""
Configuration for the club site service.
Environment variables override the defaults below.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Settings:
    """Service configuration"""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    SITE_TITLE: str = "Club"

    # CORS
    CORS_ORIGINS: List[str] = field(default_factory=lambda: ["*"])

    # Document store
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: str = "club_site"
    STORE_TIMEOUT_MS: int = 5000

    # Auth service
    AUTH_API_KEY: Optional[str] = None
    AUTH_PROJECT_ID: Optional[str] = None
    AUTH_TIMEOUT: int = 10

    # Admin sessions idle longer than this many seconds are dropped
    SESSION_TTL: int = 8 * 60 * 60

    def __post_init__(self):
        """Load from environment variables"""
        for key in self.__dataclass_fields__:
            env_value = os.getenv(key)
            if env_value is None:
                continue
            field_type = self.__dataclass_fields__[key].type
            if field_type == bool:
                setattr(self, key, env_value.lower() in ("true", "1", "yes"))
            elif field_type == int:
                setattr(self, key, int(env_value))
            elif field_type == List[str]:
                setattr(self, key, [v.strip() for v in env_value.split(",") if v.strip()])
            else:
                setattr(self, key, env_value)

    @property
    def store_configured(self) -> bool:
        return bool(self.DATABASE_URL)


settings = Settings()
