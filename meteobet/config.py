"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class LimitsConfig(BaseModel):
    """Stake bounds, per-category quotas and the anti-spam lock."""

    min_stake: int = 10
    max_stake: int = 1000
    rain_daily_cap: int = 3
    temperature_daily_cap: int = 2
    wind_window_cap: int = 2
    wind_window_hours: int = 12
    lock_timeout_seconds: float = 10.0  # Force-release a lock older than this
    lock_release_seconds: float = 2.0   # Cooldown after a successful placement


class ResolutionConfig(BaseModel):
    """Settlement retry and housekeeping parameters."""

    max_attempts: int = 5
    prune_after_days: int = 30


class SchedulerConfig(BaseModel):
    """Job scheduling intervals in minutes."""

    sweep_interval_minutes: int = 1
    gc_interval_minutes: int = 60


class WeatherConfig(BaseModel):
    """Observation source location and client behaviour."""

    city: str = "Málaga"
    latitude: float = 36.7213
    longitude: float = -4.4213
    cache_seconds: int = 300


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    openweather_api_key: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m meteobet init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["limits", "resolution", "scheduler", "weather"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name] or {})
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
