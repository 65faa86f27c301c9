"""
Fact normalization for cost report data.

Converts heterogeneous raw cost records into immutable, uniform fact rows with
precomputed canonical keys so the indexing and aggregation layers never have
to special-case missing or inconsistently formatted values.
"""

import logging
import math
import re
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..providers.base import CostRecord

logger = logging.getLogger(__name__)

# Sentinels substituted for missing dimension values
UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"
NO_RESOURCE = "(no resource)"

KEY_SEPARATOR = "|"

# "/Date(1706659200000)/" or "/Date(1706659200000+0100)/" as emitted by .NET JSON serializers
WRAPPED_EPOCH_PATTERN = re.compile(r"^\\?/?Date\((-?\d+)([+-]\d{4})?\)\\?/?$")
TEXT_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y%m%d")
_WHITESPACE = re.compile(r"\s+")


def normalize_key(*parts: str) -> str:
    """Lower-case, trim and whitespace-collapse each part, then join with '|'."""
    return KEY_SEPARATOR.join(_WHITESPACE.sub(" ", str(part)).strip().lower() for part in parts)


def _day_from_epoch_ms(millis: float, offset: str | None = None) -> str | None:
    if not math.isfinite(millis):
        return None
    try:
        moment = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=millis)
    except OverflowError:
        return None
    if offset:
        sign = 1 if offset[0] == "+" else -1
        moment += sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[3:5]))
    return moment.date().isoformat()


def parse_day(value: Any) -> str | None:
    """
    Parse a raw date value into an ISO ``YYYY-MM-DD`` day key.

    Three encodings are accepted: a native date (``date``/``datetime`` object
    or date text), an epoch-millisecond number, and a wrapped numeric-in-text
    form such as ``/Date(1706659200000)/`` (bare digit text is treated the
    same way).

    Returns:
        The ISO day string, or None if no encoding applies
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, int | float):
        return _day_from_epoch_ms(float(value))

    text = str(value).strip()
    if not text:
        return None

    match = WRAPPED_EPOCH_PATTERN.match(text)
    if match:
        return _day_from_epoch_ms(float(match.group(1)), match.group(2))

    # Eight digits is a compact calendar date (20240131), longer is epoch millis
    if text.isdigit() and len(text) > 8:
        return _day_from_epoch_ms(float(text))

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass

    for date_format in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format).date().isoformat()
        except ValueError:
            continue

    return None


class FactRow(BaseModel):
    """One normalized cost line item. Immutable after load."""

    model_config = ConfigDict(frozen=True)

    day: str = Field(..., description="ISO calendar day, YYYY-MM-DD")
    subscription_id: str
    subscription_name: str
    resource_id: str | None = None
    resource_name: str
    resource_group: str
    resource_key: str = Field(..., min_length=1)
    meter_category: str
    meter_subcategory: str
    meter_name: str
    meter_key: str
    cost_local: float = Field(..., ge=0)
    cost_usd: float = Field(..., ge=0)
    currency: str = "USD"

    @property
    def has_resource_id(self) -> bool:
        return self.resource_id is not None

    @property
    def subcategory_key(self) -> str:
        """Per-subscription subcategory key: subscription|category|subcategory."""
        return KEY_SEPARATOR.join(
            (self.subscription_id, self.meter_category, self.meter_subcategory)
        )

    @property
    def subcategory_global_key(self) -> str:
        """Subscription-independent subcategory key: category|subcategory."""
        return KEY_SEPARATOR.join((self.meter_category, self.meter_subcategory))


class NormalizationResult(BaseModel):
    """Output of a normalization pass."""

    rows: list[FactRow] = Field(default_factory=list)
    skipped_records: int = 0
    clamped_costs: int = 0
    currencies: dict[str, int] = Field(default_factory=dict)

    @property
    def primary_currency(self) -> str:
        """Most frequent local currency, USD when there are no rows."""
        if not self.currencies:
            return "USD"
        return sorted(self.currencies.items(), key=lambda item: (-item[1], item[0]))[0][0]


class CurrencyConverter:
    """Converts local amounts to USD with a static rate table."""

    def __init__(self, exchange_rates: dict[str, float] | None = None):
        self.exchange_rates = {
            code.upper(): float(rate) for code, rate in (exchange_rates or {"USD": 1.0}).items()
        }
        self._warned: set[str] = set()

    def to_usd(self, amount: float, currency: str) -> float:
        """
        Convert an amount to USD.

        Args:
            amount: Amount in ``currency``
            currency: ISO currency code

        Returns:
            The USD amount, or 0.0 when no rate is known for the currency
        """
        currency = currency.upper()
        if currency == "USD":
            return amount

        rate = self.exchange_rates.get(currency)
        if rate is None:
            if currency not in self._warned:
                logger.warning(f"No exchange rate for {currency}; USD amounts will be 0")
                self._warned.add(currency)
            return 0.0
        return amount * rate


class FactNormalizer:
    """Turns raw cost records into fact rows."""

    def __init__(
        self,
        exchange_rates: dict[str, float] | None = None,
        default_currency: str = "USD",
    ):
        """
        Initialize the normalizer.

        Args:
            exchange_rates: USD per unit of each currency, for records without a USD amount
            default_currency: Currency assumed when a record carries none
        """
        self.default_currency = default_currency.upper()
        self.currency_converter = CurrencyConverter(exchange_rates)

    def normalize(self, records: Iterable[CostRecord | dict[str, Any]]) -> NormalizationResult:
        """
        Normalize a batch of raw records.

        Records whose date cannot be parsed are skipped with a warning; every
        other missing field falls back to a sentinel.
        """
        rows: list[FactRow] = []
        skipped = 0
        clamped = 0
        currencies: Counter[str] = Counter()

        for position, raw in enumerate(records):
            record = raw if isinstance(raw, CostRecord) else CostRecord.model_validate(raw)

            day = parse_day(record.date)
            if day is None:
                skipped += 1
                logger.warning(f"Skipping cost record {position}: unparseable date {record.date!r}")
                continue

            row, was_clamped = self._build_row(record, day)
            if was_clamped:
                clamped += 1
            currencies[row.currency] += 1
            rows.append(row)

        if clamped:
            logger.warning(f"Clamped {clamped} negative cost amounts to 0")
        logger.info(f"Normalized {len(rows)} fact rows ({skipped} records skipped)")

        return NormalizationResult(
            rows=rows, skipped_records=skipped, clamped_costs=clamped, currencies=dict(currencies)
        )

    def normalize_record(self, record: CostRecord | dict[str, Any]) -> FactRow | None:
        """Normalize one record; None when its date is unusable."""
        if not isinstance(record, CostRecord):
            record = CostRecord.model_validate(record)
        day = parse_day(record.date)
        if day is None:
            return None
        return self._build_row(record, day)[0]

    def _build_row(self, record: CostRecord, day: str) -> tuple[FactRow, bool]:
        currency = record.currency or self.default_currency
        subscription_id = record.subscription_id or UNKNOWN
        resource_group = record.resource_group or NOT_AVAILABLE
        resource_id = record.resource_id
        resource_name = self._resource_name(record)

        if resource_id:
            resource_key = resource_id
        else:
            resource_key = KEY_SEPARATOR.join((subscription_id, resource_group, resource_name))

        category = record.meter_category or UNKNOWN
        subcategory = record.meter_subcategory or UNKNOWN
        meter = record.meter_name or UNKNOWN

        cost_local = record.cost_local if record.cost_local is not None else 0.0
        if record.cost_usd is not None:
            cost_usd = record.cost_usd
        else:
            cost_usd = self.currency_converter.to_usd(cost_local, currency)

        was_clamped = cost_local < 0 or cost_usd < 0
        row = FactRow(
            day=day,
            subscription_id=subscription_id,
            subscription_name=record.subscription_name or UNKNOWN,
            resource_id=resource_id,
            resource_name=resource_name,
            resource_group=resource_group,
            resource_key=resource_key,
            meter_category=category,
            meter_subcategory=subcategory,
            meter_name=meter,
            meter_key=normalize_key(category, subcategory, meter),
            cost_local=max(cost_local, 0.0),
            cost_usd=max(cost_usd, 0.0),
            currency=currency,
        )
        return row, was_clamped

    @staticmethod
    def _resource_name(record: CostRecord) -> str:
        if record.resource_name:
            return record.resource_name
        if not record.resource_id:
            return NO_RESOURCE
        # ARM ids end in the resource name: /subscriptions/.../providers/Type/name
        tail = record.resource_id.rstrip("/").rsplit("/", 1)[-1]
        return tail or UNKNOWN
