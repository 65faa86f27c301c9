"""
Raw cost record model and record source interface.

Defines the input contract between the data-collection side (cost exports,
scan results) and the cost report engine, plus the shared exception hierarchy.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)


# Canonical field name -> accepted source column names (lower-cased), in priority order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "date": (
        "date",
        "usagedate",
        "usage_date",
        "day",
        "billingperiodstartdate",
        "serviceperiodstartdate",
    ),
    "subscription_id": ("subscriptionid", "subscription_id", "subscriptionguid"),
    "subscription_name": ("subscriptionname", "subscription_name"),
    "resource_id": ("resourceid", "resource_id", "instanceid"),
    "resource_name": ("resourcename", "resource_name"),
    "resource_group": ("resourcegroup", "resourcegroupname", "resource_group"),
    "meter_category": ("metercategory", "meter_category", "category"),
    "meter_subcategory": ("metersubcategory", "meter_subcategory", "subcategory"),
    "meter_name": ("metername", "meter_name", "meter"),
    "cost_local": ("costinbillingcurrency", "cost_local", "costlocal", "pretaxcost", "cost"),
    "cost_usd": ("costinusd", "cost_usd", "costusd", "pretaxcostusd"),
    "currency": ("billingcurrency", "billingcurrencycode", "currency"),
}


class CostRecord(BaseModel):
    """A single raw cost line item as delivered by a record source.

    Every field is optional. Column names are matched case-insensitively
    against ``FIELD_ALIASES`` so Azure cost exports, API payloads and
    hand-written fixtures all load into the same shape. The date is kept
    unparsed; the fact normalizer decides whether it is usable.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: Any = None
    subscription_id: str | None = None
    subscription_name: str | None = None
    resource_id: str | None = None
    resource_name: str | None = None
    resource_group: str | None = None
    meter_category: str | None = None
    meter_subcategory: str | None = None
    meter_name: str | None = None
    cost_local: float | None = None
    cost_usd: float | None = None
    currency: str | None = None

    @model_validator(mode="before")
    @classmethod
    def map_source_columns(cls, data: Any) -> Any:
        """Map source column names onto canonical field names."""
        if not isinstance(data, dict):
            return data

        lowered = {str(key).strip().lower(): value for key, value in data.items()}
        mapped = {}
        for field_name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                if alias in lowered and lowered[alias] is not None:
                    mapped[field_name] = lowered[alias]
                    break
        return mapped

    @field_validator(
        "subscription_id",
        "subscription_name",
        "resource_id",
        "resource_name",
        "resource_group",
        "meter_category",
        "meter_subcategory",
        "meter_name",
        "currency",
        mode="before",
    )
    @classmethod
    def clean_text(cls, v: Any) -> str | None:
        """Strip whitespace; blank values become None."""
        if v is None:
            return None
        stripped = str(v).strip()
        return stripped if stripped else None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @field_validator("cost_local", "cost_usd", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> float | None:
        """Parse numeric or text amounts; anything unparseable or non-finite becomes None."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int | float):
            amount = float(v)
        else:
            text = str(v).strip().replace(",", "")
            if not text:
                return None
            try:
                amount = float(text)
            except ValueError:
                logger.debug(f"Could not parse cost amount: '{v}'")
                return None
        if not math.isfinite(amount):
            logger.debug(f"Ignoring non-finite cost amount: '{v}'")
            return None
        return amount


class CostReportError(Exception):
    """Base exception for cost report errors."""

    pass


class RecordLoadError(CostReportError):
    """Raised when a record source cannot be read."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class InvalidSelectionError(CostReportError):
    """Raised for unknown pick dimensions, modes, or malformed scope values."""

    pass


class ConfigurationError(CostReportError):
    """Configuration-related errors."""

    pass


class RecordSource(ABC):
    """Abstract base class for raw cost record sources."""

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or {}
        self.source_name = self._get_source_name()

    @abstractmethod
    def _get_source_name(self) -> str:
        """Return a short name for logging (file path, 'memory', ...)."""
        pass

    @abstractmethod
    def read_raw(self) -> list[dict[str, Any]]:
        """
        Read raw record dictionaries from the source.

        Raises:
            RecordLoadError: If the source cannot be read or decoded
        """
        pass

    def load_records(self) -> list[CostRecord]:
        """Read the source and wrap every entry in a CostRecord."""
        raw_records = self.read_raw()
        records = []
        for position, raw in enumerate(raw_records):
            if not isinstance(raw, dict):
                logger.warning(
                    f"Skipping non-object entry {position} in {self.source_name}: {type(raw).__name__}"
                )
                continue
            records.append(CostRecord.model_validate(raw))

        logger.info(f"Loaded {len(records)} cost records from {self.source_name}")
        return records


class SourceFactory:
    """Factory class for creating record sources by file type."""

    _sources: dict[str, type] = {}

    @classmethod
    def register_source(cls, name: str, source_class: type):
        """Register a source class with the factory."""
        cls._sources[name.lower()] = source_class

    @classmethod
    def create_source(cls, name: str, config: dict[str, Any]) -> RecordSource:
        """
        Create a record source instance.

        Args:
            name: Source type name ('json', 'csv', 'memory')
            config: Source-specific configuration

        Returns:
            Record source instance

        Raises:
            ConfigurationError: If the source type is not registered
        """
        name = name.lower()
        if name not in cls._sources:
            raise ConfigurationError(
                f"Unknown record source '{name}'. "
                f"Available: {', '.join(sorted(cls._sources))}"
            )

        source_class = cls._sources[name]
        return source_class(config)

    @classmethod
    def get_available_sources(cls) -> list[str]:
        """Get list of registered source types."""
        return sorted(cls._sources.keys())
