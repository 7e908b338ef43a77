"""
Application settings and configuration management.
"""
import os
import logging
from dataclasses import dataclass, fields
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Tuple
from dotenv import load_dotenv
import yaml

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"
LOGS_DIR = BASE_DIR / "logs"

ANALYTICS_CONFIG_FILE = CONFIG_DIR / "analytics_config.yaml"

# Rolling window lengths are part of the output schema and not configurable
FIXED_ROLLING_WINDOWS: Tuple[int, ...] = (30, 60, 90)


class Settings:
    """Application settings loaded from environment and config files."""

    # Analytics
    RISK_FREE_RATE: float = float(os.getenv("RISK_FREE_RATE", "2.0"))
    HISTOGRAM_BIN_COUNT: int = int(os.getenv("HISTOGRAM_BIN_COUNT", "20"))
    ANNUALIZATION_FACTOR: int = int(os.getenv("ANNUALIZATION_FACTOR", "252"))
    ROLLING_RETURN_WINDOW: int = int(os.getenv("ROLLING_RETURN_WINDOW", "90"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def load_analytics_config(cls, config_path: Optional[Path] = None) -> dict:
        """Load analytics configuration from YAML file."""
        config_path = config_path or ANALYTICS_CONFIG_FILE
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    return yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logging.getLogger(__name__).error(f"Failed to parse {config_path}: {e}")
                return {}
        return {}


@dataclass(frozen=True)
class AnalyticsConfig:
    """
    Inputs that parameterize the analytics engine.

    Rates are annual percentages (2.0 == 2%).
    """
    risk_free_rate: float = 2.0
    histogram_bin_count: int = 20
    annualization_factor: int = 252
    rolling_windows: Tuple[int, ...] = FIXED_ROLLING_WINDOWS
    rolling_return_window: int = 90

    def __post_init__(self):
        if tuple(self.rolling_windows) != FIXED_ROLLING_WINDOWS:
            raise ValueError(f"rolling_windows must be {FIXED_ROLLING_WINDOWS}, got {self.rolling_windows}")
        if self.histogram_bin_count < 1:
            raise ValueError(f"histogram_bin_count must be positive, got {self.histogram_bin_count}")
        if self.annualization_factor < 1:
            raise ValueError(f"annualization_factor must be positive, got {self.annualization_factor}")
        if self.rolling_return_window < 1:
            raise ValueError(f"rolling_return_window must be positive, got {self.rolling_return_window}")

    @classmethod
    def from_settings(cls, config_path: Optional[Path] = None, **overrides) -> "AnalyticsConfig":
        """
        Build config from environment settings, the YAML file and overrides.

        Later sources win: environment (or defaults), then YAML, then
        keyword overrides.
        """
        values = {
            "risk_free_rate": Settings.RISK_FREE_RATE,
            "histogram_bin_count": Settings.HISTOGRAM_BIN_COUNT,
            "annualization_factor": Settings.ANNUALIZATION_FACTOR,
            "rolling_return_window": Settings.ROLLING_RETURN_WINDOW,
        }

        known = {f.name for f in fields(cls)}
        file_config = Settings.load_analytics_config(config_path).get("analytics", {}) or {}
        unknown = set(file_config) - known
        if unknown:
            logging.getLogger(__name__).warning(f"Ignoring unknown analytics settings: {sorted(unknown)}")
        values.update({k: v for k, v in file_config.items() if k in known})

        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown analytics settings: {sorted(unknown)}")
        values.update(overrides)

        if "rolling_windows" in values:
            values["rolling_windows"] = tuple(values["rolling_windows"])

        return cls(**values)


def setup_logging(log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure application logging."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = getattr(logging, Settings.LOG_LEVEL.upper(), logging.INFO)

    log_dir = Path(log_dir) if log_dir is not None else LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    # Configure root logger with rotating file handler (10MB max, 5 backups)
    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.StreamHandler(),
            RotatingFileHandler(
                log_dir / "portfolio_analytics.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
            )
        ],
        force=True
    )

    return logging.getLogger("portfolio_analytics")


settings = Settings()
