"""
Configuration for the catalog service.

Settings come from the environment; a local .env file is loaded first.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _split_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API process."""

    database_url: Optional[str] = None
    database_name: Optional[str] = None
    log_level: str = "INFO"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url and self.database_name)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            database_name=os.getenv("DATABASE_NAME") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", 8000)),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
        )
