"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from config/settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if "server" in data:
            flattened["host"] = data["server"].get("host")
            flattened["port"] = data["server"].get("port")
        if "storage" in data:
            flattened["data_dir"] = data["storage"].get("data_dir")
            flattened["history_limit"] = data["storage"].get("history_limit")
        if "scoring" in data:
            scoring = data["scoring"]
            flattened["match_threshold"] = scoring.get("match_threshold")
            flattened["fluency_factor"] = scoring.get("fluency_factor")
            flattened["prosody_score"] = scoring.get("prosody_score")
            flattened["randomize_scores"] = scoring.get("randomize")
            flattened["random_seed"] = scoring.get("random_seed")
        if "progression" in data:
            flattened["leaderboard_size"] = data["progression"].get("leaderboard_size")
            flattened["max_engines"] = data["progression"].get("max_engines")

        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Storage
    data_dir: Path | None = Field(default=None)
    history_limit: int = Field(default=20, ge=1)

    # Scoring
    match_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    fluency_factor: float = Field(default=0.9, ge=0.0, le=1.0)
    prosody_score: int = Field(default=85, ge=0, le=100)
    randomize_scores: bool = Field(default=False)
    random_seed: int | None = Field(default=None)

    # Progression
    leaderboard_size: int = Field(default=10, ge=1)
    max_engines: int = Field(default=1024, ge=1)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir if self.data_dir is not None else self.project_root / "data"

    @property
    def stats_dir(self) -> Path:
        d = self.resolved_data_dir / "user_stats"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def history_dir(self) -> Path:
        d = self.resolved_data_dir / "score_history"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
