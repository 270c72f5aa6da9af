"""Application configuration loaded from environment variables."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scriptforge.errors import ConfigurationError


class Settings(BaseSettings):
    """Global application settings."""

    environment: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    openai_api_key: Optional[str] = Field(
        default=None, description="Secret key for the generation model API."
    )
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_chat: str = "gpt-4.1-mini"
    generation_temperature: float = 0.7
    generation_max_output_tokens: int = 4000

    cloudinary_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_resource_type: str = "image"
    app_namespace: str = "scriptforge"
    upload_category: str = "pdf-files"
    upload_prefix: str = "pdf"

    max_upload_bytes: int = 50 * 1024 * 1024

    database_url: str = "sqlite:///data/scriptforge.sqlite"

    trusted_origins: str = "http://localhost:3000"

    rate_limit_points: int = 50
    rate_limit_duration_seconds: int = 10
    rate_limit_block_seconds: float = 10
    rate_limit_trust_forwarded: bool = False

    staging_timeout_seconds: float = 60
    fetch_timeout_seconds: float = 30
    generation_timeout_seconds: float = 120

    max_source_tokens: Optional[int] = 200_000
    allow_tiktoken_fallback: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def trusted_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.trusted_origins.split(",") if origin.strip()]

    @property
    def upload_folder(self) -> str:
        return f"{self.app_namespace}/{self.upload_category}"

    @property
    def sqlite_path(self) -> Optional[Path]:
        """Filesystem path of a file-backed SQLite database, if that is what we use."""
        prefix = "sqlite:///"
        if not self.database_url.startswith(prefix):
            return None
        raw = self.database_url[len(prefix):]
        if not raw or raw == ":memory:":
            return None
        return Path(raw)

    def require_credentials(self) -> None:
        """Refuse to run without storage and model credentials."""
        required = {
            "OPENAI_API_KEY": self.openai_api_key,
            "CLOUDINARY_NAME": self.cloudinary_name,
            "CLOUDINARY_API_KEY": self.cloudinary_api_key,
            "CLOUDINARY_API_SECRET": self.cloudinary_api_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(missing)
            )


def get_settings() -> Settings:
    return Settings()
