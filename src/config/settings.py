"""
Configuration management for the cost report engine and dashboard.

Uses dynaconf for flexible configuration with YAML files and environment overrides.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from dynaconf import Dynaconf, Validator

logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"

DEFAULT_TOP_N = 15
DEFAULT_OTHER_EPSILON = 0.005
DEFAULT_EXCHANGE_RATES = {"USD": 1.0, "EUR": 1.1, "GBP": 1.25, "SEK": 0.095, "NOK": 0.094}

# Initialize dynaconf with multiple configuration sources
settings = Dynaconf(
    envvar_prefix="COSTREPORT",
    settings_files=[
        str(CONFIG_DIR / "config.yaml"),  # Base configuration
        str(CONFIG_DIR / "config.local.yaml"),  # Local overrides (git-ignored)
        str(CONFIG_DIR / ".secrets.yaml"),  # Secrets file (git-ignored)
    ],
    environments=False,
    load_dotenv=True,
    merge_enabled=True,
    envvar_separator="__",  # Support nested config via COSTREPORT__ENGINE__TOP_N=10
    validators=[
        Validator("engine.top_n", gte=1),
        Validator("engine.other_epsilon", gte=0),
        Validator("engine.trend_window_days", gte=1),
        Validator("dashboard.port", gte=1024, lte=65535),
        Validator("dashboard.host", must_exist=True),
    ],
)


class ReportConfig:
    """Configuration wrapper for engine, normalizer and dashboard settings."""

    def __init__(self):
        self.settings = settings
        self._validate_config()

    def _validate_config(self):
        """Validate the configuration on initialization."""
        try:
            settings.validators.validate()
        except Exception as e:
            # Fall back to defaults rather than refusing to start
            logger.warning(f"Configuration validation warning: {e}")

    @property
    def engine(self) -> Dict[str, Any]:
        """Aggregation engine settings (top-N size, epsilon, trend window)."""
        return self.settings.get("engine", {})

    @property
    def normalizer(self) -> Dict[str, Any]:
        """Fact normalizer settings (currency handling)."""
        return self.settings.get("normalizer", {})

    @property
    def dashboard(self) -> Dict[str, Any]:
        """Dashboard configuration."""
        return self.settings.get("dashboard", {})

    @property
    def top_n(self) -> int:
        return int(self.engine.get("top_n", DEFAULT_TOP_N))

    @property
    def other_epsilon(self) -> float:
        return float(self.engine.get("other_epsilon", DEFAULT_OTHER_EPSILON))

    @property
    def exchange_rates(self) -> Dict[str, float]:
        """Exchange rates (units of USD per unit of currency)."""
        rates = self.normalizer.get("exchange_rates") or DEFAULT_EXCHANGE_RATES
        return {str(code).upper(): float(rate) for code, rate in dict(rates).items()}

    def get_engine_option(self, key: str, default: Optional[Any] = None) -> Any:
        """Get a single engine option with a default."""
        value = self.engine.get(key)
        return default if value is None else value

    def override_from_cli(self, cli_args: Dict[str, Any]):
        """Override configuration with CLI arguments."""
        # Map CLI arguments to configuration paths
        cli_mapping = {
            "top_n": "engine.top_n",
            "other_epsilon": "engine.other_epsilon",
            "dashboard_port": "dashboard.port",
            "dashboard_host": "dashboard.host",
            "debug": "dashboard.debug",
        }

        for cli_key, config_path in cli_mapping.items():
            if cli_args.get(cli_key) is not None:
                self.settings.set(config_path, cli_args[cli_key])

        # Re-validate after overrides
        self._validate_config()


# Global configuration instance
config = ReportConfig()


def get_config() -> ReportConfig:
    """Get the global configuration instance."""
    return config


def reload_config():
    """Reload configuration from files."""
    global config
    settings.reload()
    config = ReportConfig()
    return config
