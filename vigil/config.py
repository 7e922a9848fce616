"""VIGIL Configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class VigilSettings(BaseSettings):
    """Settings for the watcher scheduler."""

    # Elasticsearch
    es_url: str = "http://localhost:9200"
    watcher_index: str = "watcher"
    request_timeout: float = 30.0  # seconds

    # Search backend plugins, e.g. ["siren-vanguard"]
    search_plugins: list[str] = []
    distributed_search_plugin: str = "siren-vanguard"
    search_method_candidates: list[str] = ["kibi_search", "vanguard_search", "search"]

    # Scheduling
    reload_interval_seconds: int = 60
    misfire_grace_seconds: int = 300
    firing_timeout_seconds: float | None = None  # None = no limit

    # Read watchers from a JSON file instead of Elasticsearch
    watchers_file: Path | None = None

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "VIGIL_"


settings = VigilSettings()
