from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "catalog-mirror"
    env: str = "dev"
    api_prefix: str = "/api/v1"
    log_dir: str = "logs"
    log_level: str = "INFO"

    # Local mirror of the remote catalog archive.
    cache_dir: str = ".cache"
    archive_url: str = "https://github.com/awslabs/open-data-registry/archive/refs/heads/main.tar.gz"
    datasets_path: str = "open-data-registry-main/datasets"
    record_suffix: str = ".yaml"
    download_timeout_seconds: float = 120.0

    default_search_limit: int = 25

    host: str = "127.0.0.1"
    port: int = 3000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def datasets_dir(self, cache_dir: str | Path | None = None) -> Path:
        return Path(cache_dir or self.cache_dir) / self.datasets_path


settings = Settings()
