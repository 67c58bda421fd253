"""Service configuration loaded from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_WORKBOOK_URL = (
    "https://onedrive.live.com/:x:/g/personal/1B6B1B5379E6C66A/"
    "EWrG5nlTG2sggBssAwAAAAABERzkNcKT07ITcs1gY_M2RQ"
)


class ServiceConfig(BaseSettings):
    """Court schedule service configuration.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Document viewer (browser-only, the workbook has no download API)
    workbook_url: str = Field(
        default=DEFAULT_WORKBOOK_URL,
        description="Shared link of the schedule workbook in the online viewer",
    )
    browser_headless: bool = Field(
        default=True,
        description="Run Chromium headless while downloading the workbook",
    )
    navigation_timeout_ms: int = Field(
        default=90000,
        description="Timeout for viewer navigation and iframe/menu waits",
    )
    download_timeout_ms: int = Field(
        default=30000,
        description="Timeout for the 'Download a Copy' file transfer",
    )
    acquisition_timeout_seconds: float = Field(
        default=180.0,
        description="Overall deadline for one workbook acquisition",
    )

    # Paths
    data_dir: str = Field(
        default="data",
        description="Directory for the cache file and the downloaded workbook",
    )
    cache_file_name: str = Field(
        default="schedule-cache.json",
        description="Persisted server cache file name (inside data_dir)",
    )
    workbook_file_name: str = Field(
        default="schedule.xlsx",
        description="Last downloaded workbook file name (inside data_dir)",
    )

    # Cache
    cache_ttl_seconds: int = Field(
        default=30 * 60,
        description="Server cache time-to-live and background refresh interval",
    )

    # HTTP API
    host: str = Field(default="0.0.0.0", description="API bind address")
    port: int = Field(default=3000, description="API port")
    cors_origins: list[str] = Field(
        default=[
            "https://tennisestateoneonta.com",
            "http://localhost:3000",
            "http://localhost:8080",
        ],
        description="Origins allowed to call the API from a browser",
    )

    # Client mirror
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the schedule API used by the client mirror",
    )
    client_ttl_seconds: int = Field(
        default=30 * 60,
        description="Client-side local copy time-to-live",
    )
    client_storage_path: str = Field(
        default="data/client-storage.json",
        description="File backing the client's local key/value storage",
    )
    client_request_timeout: float = Field(
        default=60.0,
        description="HTTP timeout (seconds) for client calls to the API",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cache_path(self) -> Path:
        return Path(self.data_dir) / self.cache_file_name

    @property
    def workbook_path(self) -> Path:
        return Path(self.data_dir) / self.workbook_file_name


# Singleton pattern
_config: ServiceConfig | None = None


def get_config() -> ServiceConfig:
    """Get the service configuration singleton.

    Returns:
        ServiceConfig: Service configuration instance
    """
    global _config
    if _config is None:
        _config = ServiceConfig()
    return _config
