"""Application configuration."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default=Path("data"), description="Directory for data storage")
    db_path: Path = Field(
        default=Path("data/peoples_thread.db"), description="SQLite article store path"
    )
    keywords_path: Path = Field(
        default=Path("data/keywords.json"), description="Monitored keywords file (JSON list)"
    )

    # Upstream feed
    feed_url: str = Field(
        default="https://www.pbs.org/newshour/feeds/rss/headlines",
        description="Syndication feed polled by the ingestion pipeline",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; PeoplesThread/1.0; +https://peoplesthread.com)",
        description="User-Agent sent with every feed request",
    )
    fetch_timeout: float = Field(default=20.0, description="Feed request timeout (seconds)")
    max_feed_items: int = Field(default=15, description="Max items taken from the top of the feed")

    # Persistence
    persist_timeout: float = Field(
        default=10.0, description="Timeout for writing a single article (seconds)"
    )
    item_delay_seconds: float = Field(
        default=0.0, description="Pause between items during a commit run"
    )

    # Scheduler
    scheduler_interval_minutes: float = Field(
        default=30.0, description="Minutes between scheduled commit runs"
    )
    scheduler_autostart: bool = Field(
        default=False, description="Start the scheduler when the API server starts"
    )

    # Trigger credentials (independent scopes)
    cron_secret: str | None = Field(default=None, description="Bearer secret for the cron trigger")
    ingest_api_key: str | None = Field(
        default=None, description="Bearer API key for preview/admin triggers"
    )

    # Article synthesis
    slug_max_length: int = Field(default=100, description="Max slug length")
    summary_max_length: int = Field(default=300, description="Max generated summary length")
    default_author: str = Field(
        default="Peoples Thread Editorial", description="Author recorded on ingested articles"
    )

    # API server
    api_host: str = Field(default="127.0.0.1", description="Bind address for the trigger API")
    api_port: int = Field(default=8000, description="Port for the trigger API")

    @property
    def scheduler_interval_seconds(self) -> float:
        """Scheduler interval expressed in seconds."""
        return self.scheduler_interval_minutes * 60


settings = Settings()
