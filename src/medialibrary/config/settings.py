"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseModel):
    """Where the libraries and generated files live."""

    music_path: Path = Field(default=Path("./music"), description="Audio library root")
    video_path: Path = Field(default=Path("./videos"), description="Video library root")
    thumbnail_path: Path = Field(
        default=Path("./thumbnails"), description="Directory for generated thumbnails"
    )


class DatabaseSettings(BaseModel):
    """Catalog store connection."""

    url: str = "sqlite+aiosqlite:///./medialibrary.db"
    echo: bool = False


# Hey future me - the thumbnail sizes are FIXED for the whole catalog! Every album thumbnail is
# rendered at the same square size (initial creation AND backfill), otherwise the grid ends up
# with mixed resolutions depending on which song was scanned first.
class IndexingSettings(BaseModel):
    """Crawl and reconciliation behaviour."""

    album_thumbnail_size: int = Field(default=200, ge=16, le=2048)
    video_thumbnail_size: int = Field(default=238, ge=16, le=2048)
    thumbnail_uri_prefix: str = "/api/thumbnails"
    crawl_on_startup: bool = True

    @field_validator("thumbnail_uri_prefix")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or "/"


class ObservabilitySettings(BaseModel):
    """Logging output."""

    log_json_format: bool = False


class Settings(BaseSettings):
    """Top-level settings.

    Environment variables use the MEDIALIBRARY_ prefix and "__" for nesting, e.g.
    MEDIALIBRARY_STORAGE__MUSIC_PATH=/srv/music or MEDIALIBRARY_DATABASE__URL=...
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIALIBRARY_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "medialibrary"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8765

    storage: StorageSettings = Field(default_factory=StorageSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    indexing: IndexingSettings = Field(default_factory=IndexingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    def _get_sqlite_db_path(self) -> Path | None:
        """Get the database file path for SQLite URLs (None for other engines/in-memory)."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:" or path.startswith(":memory:"):
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
