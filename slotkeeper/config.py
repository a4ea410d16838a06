"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import BookableTemplate, ExternalCalendarCredential, HostAvailabilityContext


class SchedulingPolicy(BaseModel):
    """Fixed scheduling constants, exposed as configuration for testability."""
    minimum_lead_time_hours: int = 24
    slot_minutes: int = 60
    busy_cache_ttl_seconds: int = 300
    calendar_timeout_seconds: float = 10.0

    @field_validator("minimum_lead_time_hours")
    @classmethod
    def validate_lead_time(cls, value: int) -> int:
        """Lead time may be zero but never negative."""
        if value < 0:
            raise ValueError("minimum_lead_time_hours must not be negative")
        return value

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Slots must tile an hour exactly."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_minutes must be a positive divisor of 60, got {value}")
        return value

    @field_validator("busy_cache_ttl_seconds", "calendar_timeout_seconds")
    @classmethod
    def validate_positive(cls, value):
        """Ensure TTL and timeout are positive."""
        if value <= 0:
            raise ValueError("Value must be greater than zero")
        return value

    def lead_time(self) -> pendulum.Duration:
        return pendulum.duration(hours=self.minimum_lead_time_hours)

    def slot_length(self) -> pendulum.Duration:
        return pendulum.duration(minutes=self.slot_minutes)

    def cache_ttl(self) -> pendulum.Duration:
        return pendulum.duration(seconds=self.busy_cache_ttl_seconds)


class CalendarConfig(BaseModel):
    """External calendar access for a host."""
    access_token: str
    calendar_id: str = "primary"


class HostConfig(BaseModel):
    """Host configuration entry."""
    id: str
    name: str = ""
    timezone: str = "UTC"
    bookable_hours: BookableTemplate = Field(default_factory=BookableTemplate)
    calendar: CalendarConfig | None = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone exists in the tz database."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: '{value}'") from exc
        return value

    def display_name(self) -> str:
        return self.name or self.id

    def to_context(self) -> HostAvailabilityContext:
        """Build the read snapshot consumed by the availability engine."""
        credential = None
        if self.calendar is not None:
            credential = ExternalCalendarCredential(
                access_token=self.calendar.access_token,
                calendar_id=self.calendar.calendar_id,
            )
        return HostAvailabilityContext(
            bookable_template=self.bookable_hours,
            timezone=self.timezone,
            external_calendar_credential=credential,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    hosts: List[HostConfig] = Field(default_factory=list)
    scheduling: SchedulingPolicy = Field(default_factory=SchedulingPolicy)
    database_url: str = "sqlite:///slotkeeper.db"

    @field_validator("hosts")
    @classmethod
    def validate_hosts(cls, value: List[HostConfig]) -> List[HostConfig]:
        """Ensure host ids are unique."""
        seen: set[str] = set()
        for host in value:
            if host.id in seen:
                raise ValueError(f"Duplicate host id detected: {host.id}")
            seen.add(host.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_host(self, host_id: str) -> HostConfig | None:
        """Find a host by id."""
        for host in self.hosts:
            if host.id == host_id:
                return host
        return None


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
