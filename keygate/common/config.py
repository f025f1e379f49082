import json
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_name: str = "Keygate Key Server"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server (bound to localhost, a reverse proxy sits in front)
    host: str = "127.0.0.1"
    port: int = 3000
    base_path: str = "/seven"

    # Database
    database_url: str | None = None
    db_file: str = "keys.db"

    # Key generation
    token_bytes: int = Field(default=24, ge=24)
    max_issue_attempts: int = Field(default=3, ge=1)

    # Issuer bot
    key_issuer_bot_token: str | None = None
    required_chat_id: str | None = None
    optional_chat_ids: str = ""
    bot_poll_timeout: int = 30
    bot_retry_delay: float = 5.0

    # CORS
    cors_origins: list[str] | str = '["http://localhost:3000"]'

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def sqlalchemy_url(self) -> str:
        """Database URL, falling back to a SQLite file next to the working directory."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{Path(self.db_file).resolve()}"

    @property
    def optional_chat_id_list(self) -> list[str]:
        return [c.strip() for c in self.optional_chat_ids.split(",") if c.strip()]

    @property
    def issuance_scopes(self) -> list[str]:
        """Chats a /getkey request is validated against, required chat first."""
        if not self.required_chat_id:
            return self.optional_chat_id_list
        return [self.required_chat_id, *self.optional_chat_id_list]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env


settings = Settings()
