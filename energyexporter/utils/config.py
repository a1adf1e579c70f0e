"""
EnergyExporter Configuration Module

Centralized configuration management with validation using Pydantic Settings.
Loads configuration from environment variables and .env files.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _validate_topic(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("topic must not be empty")
    if "+" in v or "#" in v:
        raise ValueError("topic must not contain MQTT wildcards")
    if v.startswith("/") or v.endswith("/"):
        raise ValueError("topic must not start or end with '/'")
    return v


class MqttSettings(BaseSettings):
    """MQTT sink configuration."""

    model_config = SettingsConfigDict(env_prefix="MQTT_")

    enabled: bool = Field(default=False)
    broker_host: str = Field(default="localhost")
    broker_port: int = Field(default=1883, ge=1, le=65535)
    client_id: str = Field(default="energyexporter")
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    topic: str = Field(default="energy", description="Base topic for state messages")
    discovery_topic: str = Field(
        default="homeassistant", description="Home Assistant discovery prefix"
    )
    keepalive: int = Field(default=60, ge=5, le=3600)
    connect_timeout: float = Field(default=10.0, gt=0.0, le=120.0)

    @field_validator("topic", "discovery_topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        return _validate_topic(v)

    @model_validator(mode="after")
    def validate_credentials(self):
        if self.password and not self.username:
            raise ValueError("username is required when password is set")
        return self


class PrometheusSettings(BaseSettings):
    """Prometheus endpoint configuration."""

    model_config = SettingsConfigDict(env_prefix="PROMETHEUS_")

    enabled: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")  # nosec B104 - intentional for server
    port: int = Field(default=9090, ge=1, le=65535)


class InfluxDbSettings(BaseSettings):
    """InfluxDB sink configuration."""

    model_config = SettingsConfigDict(env_prefix="INFLUXDB_")

    enabled: bool = Field(default=False)
    url: str = Field(default="http://localhost:8086")
    org: str = Field(default="energy")
    bucket: str = Field(default="energy")
    token: str | None = Field(default=None)
    timeout_seconds: int = Field(default=10, ge=1, le=120)

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_token(self):
        if self.enabled and not self.token:
            raise ValueError("token is required when InfluxDB output is enabled")
        return self


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: str = Field(default="development", validation_alias="ENERGYEXPORTER_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    json_logs: bool = Field(default=True, validation_alias="JSON_LOGS")

    # Sinks
    mqtt: MqttSettings = Field(default_factory=MqttSettings)
    prometheus: PrometheusSettings = Field(default_factory=PrometheusSettings)
    influxdb: InfluxDbSettings = Field(default_factory=InfluxDbSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production", "test"]
        if v.lower() not in valid_envs:
            raise ValueError(f"env must be one of {valid_envs}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.
    Settings are loaded once and cached.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).
    Use this when environment variables have changed.
    """
    get_settings.cache_clear()
    return get_settings()
