"""Configuration handling for the room booking service."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# Load environment variables from .env file if it exists
load_dotenv()


@dataclass
class WorkingHoursConfig:
    """Working hours used for business-hours grids and instant lookups."""

    start: str
    end: str
    workdays: List[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])

    def __post_init__(self):
        """Validate working hours configuration."""
        # Validate time format (must be exactly HH:MM)
        time_pattern = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

        if not time_pattern.match(self.start):
            raise ValueError(
                f"start time '{self.start}' must be in HH:MM format (e.g., 09:00)"
            )
        if not time_pattern.match(self.end):
            raise ValueError(
                f"end time '{self.end}' must be in HH:MM format (e.g., 17:00)"
            )

        start_h, start_m = map(int, self.start.split(":"))
        end_h, end_m = map(int, self.end.split(":"))

        if start_h * 60 + start_m >= end_h * 60 + end_m:
            raise ValueError(
                f"Working hours start time must be before end time (start: {self.start}, end: {self.end})"
            )

        if not self.workdays:
            raise ValueError("workdays must contain at least one workday")

        for day in self.workdays:
            if not (1 <= day <= 7):
                raise ValueError(
                    f"Invalid workday: {day}. workdays must be between 1 and 7 (1=Monday, 7=Sunday)"
                )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkingHoursConfig":
        """Create WorkingHoursConfig from dictionary."""
        return cls(
            start=data.get("start", "09:00"),
            end=data.get("end", "18:00"),
            workdays=data.get("workdays", [1, 2, 3, 4, 5]),
        )


@dataclass
class BookingConfig:
    """Tunables for the booking engine."""

    default_duration_minutes: int = 60
    min_duration_minutes: int = 15
    max_duration_minutes: int = 600
    instant_tick_minutes: int = 5
    instant_max_results: int = 3
    team_slot_step_minutes: int = 60
    team_max_results: int = 3
    team_max_days: int = 31
    recurring_max_occurrences: int = 12

    def __post_init__(self):
        if self.min_duration_minutes < 1:
            raise ValueError("min_duration_minutes must be at least 1")
        if self.max_duration_minutes < self.min_duration_minutes:
            raise ValueError(
                "max_duration_minutes must be greater than or equal to min_duration_minutes"
            )
        if not (
            self.min_duration_minutes
            <= self.default_duration_minutes
            <= self.max_duration_minutes
        ):
            raise ValueError(
                f"default_duration_minutes ({self.default_duration_minutes}) must lie between "
                f"{self.min_duration_minutes} and {self.max_duration_minutes}"
            )
        for name in (
            "instant_tick_minutes",
            "instant_max_results",
            "team_slot_step_minutes",
            "team_max_results",
            "team_max_days",
            "recurring_max_occurrences",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingConfig":
        defaults = cls()
        return cls(
            default_duration_minutes=data.get(
                "default_duration_minutes", defaults.default_duration_minutes
            ),
            min_duration_minutes=data.get(
                "min_duration_minutes", defaults.min_duration_minutes
            ),
            max_duration_minutes=data.get(
                "max_duration_minutes", defaults.max_duration_minutes
            ),
            instant_tick_minutes=data.get(
                "instant_tick_minutes", defaults.instant_tick_minutes
            ),
            instant_max_results=data.get(
                "instant_max_results", defaults.instant_max_results
            ),
            team_slot_step_minutes=data.get(
                "team_slot_step_minutes", defaults.team_slot_step_minutes
            ),
            team_max_results=data.get("team_max_results", defaults.team_max_results),
            team_max_days=data.get("team_max_days", defaults.team_max_days),
            recurring_max_occurrences=data.get(
                "recurring_max_occurrences", defaults.recurring_max_occurrences
            ),
        )


@dataclass
class PostgresConfig:
    """PostgreSQL database configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "rooms"
    user: str = "rooms"
    password: str = ""
    ssl_mode: str = "prefer"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PostgresConfig":
        return cls(
            host=data.get("host") or os.environ.get("POSTGRES_HOST", "localhost"),
            port=int(data.get("port") or os.environ.get("POSTGRES_PORT", "5432")),
            database=data.get("database")
            or os.environ.get("POSTGRES_DATABASE", "rooms"),
            user=data.get("user") or os.environ.get("POSTGRES_USER", "rooms"),
            password=data.get("password") or os.environ.get("POSTGRES_PASSWORD", ""),
            ssl_mode=data.get("ssl_mode", "prefer"),
        )


@dataclass
class DatabaseConfig:
    """Database configuration."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    statement_timeout_seconds: float = 5.0
    pool_min_size: int = 1
    pool_max_size: int = 10

    def __post_init__(self):
        if self.statement_timeout_seconds <= 0:
            raise ValueError("statement_timeout_seconds must be positive")
        if self.pool_min_size < 1 or self.pool_max_size < self.pool_min_size:
            raise ValueError(
                f"Invalid pool sizes (min: {self.pool_min_size}, max: {self.pool_max_size})"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseConfig":
        backend = str(data.get("backend", "postgres")).lower().strip()
        if backend not in ("postgres", "postgresql"):
            raise ValueError(f"Invalid database backend '{backend}'. Must be 'postgres'.")

        return cls(
            postgres=PostgresConfig.from_dict(data.get("postgres", {})),
            statement_timeout_seconds=float(
                data.get("statement_timeout_seconds")
                or os.environ.get("DB_STATEMENT_TIMEOUT", "5")
            ),
            pool_min_size=data.get("pool_min_size", 1),
            pool_max_size=data.get("pool_max_size", 10),
        )


@dataclass
class ApiConfig:
    """HTTP API configuration."""

    host: str = "127.0.0.1"
    port: int = 8080
    user_header: str = "X-User-Id"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiConfig":
        return cls(
            host=data.get("host", "127.0.0.1"),
            port=int(data.get("port", 8080)),
            user_header=data.get("user_header", "X-User-Id"),
        )


@dataclass
class ServerConfig:
    """Top-level service configuration."""

    timezone: str
    working_hours: WorkingHoursConfig
    booking: BookingConfig = field(default_factory=BookingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    def __post_init__(self):
        """Validate server configuration."""
        try:
            ZoneInfo(self.timezone)
        except Exception as e:
            raise ValueError(
                f"Invalid timezone '{self.timezone}': {e}. "
                "Must be a valid IANA timezone (e.g., 'Europe/Paris')"
            )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Create configuration from dictionary."""
        if "timezone" not in data:
            raise ValueError(
                "Missing required 'timezone' configuration. "
                "Please specify a valid IANA timezone (e.g., 'Europe/Paris')"
            )

        if "working_hours" not in data:
            raise ValueError(
                "Missing required 'working_hours' configuration. "
                "Please specify start and end times (e.g., start: '09:00', end: '18:00')"
            )

        return cls(
            timezone=data["timezone"],
            working_hours=WorkingHoursConfig.from_dict(data["working_hours"]),
            booking=BookingConfig.from_dict(data.get("booking", {}) or {}),
            database=DatabaseConfig.from_dict(data.get("database", {}) or {}),
            api=ApiConfig.from_dict(data.get("api", {}) or {}),
        )


def load_config(config_path: Optional[str] = None) -> ServerConfig:
    """Load configuration from file or environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        Server configuration

    Raises:
        ValueError: If configuration is invalid
    """
    default_locations = [
        Path("config/config.yaml"),
        Path("config/config.yml"),
        Path("config.yaml"),
        Path("config.yml"),
        Path("~/.config/room-concierge/config.yaml"),
        Path("/etc/room-concierge/config.yaml"),
    ]

    config_data: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {config_path}")
    else:
        for path in default_locations:
            expanded_path = path.expanduser()
            if expanded_path.exists():
                with open(expanded_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {expanded_path}")
                break

    if not config_data:
        logger.info("No configuration file found, using environment variables")
        config_data = {
            "timezone": os.environ.get("ROOM_CONCIERGE_TIMEZONE", "UTC"),
            "working_hours": {
                "start": os.environ.get("WORKING_HOURS_START", "09:00"),
                "end": os.environ.get("WORKING_HOURS_END", "18:00"),
                "workdays": list(
                    map(
                        int,
                        os.environ.get("WORKING_HOURS_DAYS", "1,2,3,4,5").split(","),
                    )
                ),
            },
            "api": {
                "host": os.environ.get("API_HOST", "127.0.0.1"),
                "port": int(os.environ.get("API_PORT", "8080")),
            },
        }

    try:
        return ServerConfig.from_dict(config_data)
    except KeyError as e:
        raise ValueError(f"Missing required configuration: {e}")
