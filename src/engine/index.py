"""
Dimension indexing over the fact table.

Builds inverted indices (dimension value -> row ids) in a single pass over the
normalized fact rows. Indices are frozen after the build and shared read-only
by every selection and aggregation computed against the same snapshot.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Sequence
from enum import Enum

from ..utils.data_normalizer import KEY_SEPARATOR, FactRow, normalize_key

logger = logging.getLogger(__name__)

RowIds = frozenset[int]
EMPTY_ROWS: RowIds = frozenset()


class Dimension(Enum):
    """Indexed dimensions of a fact row."""

    SUBSCRIPTION_ID = "subscription_id"
    SUBSCRIPTION_NAME = "subscription_name"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"  # subscription|category|subcategory
    SUBCATEGORY_GLOBAL = "subcategory_global"  # category|subcategory
    METER = "meter"  # normalized meter name
    METER_KEY = "meter_key"
    RESOURCE_ID = "resource_id"
    RESOURCE_KEY = "resource_key"
    RESOURCE_NAME = "resource_name"
    RESOURCE_GROUP = "resource_group"
    DAY = "day"


DIMENSION_EXTRACTORS: dict[Dimension, Callable[[FactRow], str | None]] = {
    Dimension.SUBSCRIPTION_ID: lambda row: row.subscription_id,
    Dimension.SUBSCRIPTION_NAME: lambda row: row.subscription_name,
    Dimension.CATEGORY: lambda row: row.meter_category,
    Dimension.SUBCATEGORY: lambda row: row.subcategory_key,
    Dimension.SUBCATEGORY_GLOBAL: lambda row: row.subcategory_global_key,
    Dimension.METER: lambda row: normalize_key(row.meter_name),
    Dimension.METER_KEY: lambda row: row.meter_key,
    Dimension.RESOURCE_ID: lambda row: row.resource_id,
    Dimension.RESOURCE_KEY: lambda row: row.resource_key,
    Dimension.RESOURCE_NAME: lambda row: row.resource_name,
    Dimension.RESOURCE_GROUP: lambda row: row.resource_group,
    Dimension.DAY: lambda row: row.day,
}

# Dimensions whose lookup values are normalized the same way as at build time
NORMALIZED_DIMENSIONS: dict[Dimension, Callable[[str], str]] = {
    Dimension.METER: normalize_key,
    Dimension.METER_KEY: lambda value: normalize_key(*value.split(KEY_SEPARATOR)),
}


class DimensionIndex:
    """Read-only inverted index: dimension -> value -> row ids."""

    def __init__(self, buckets: dict[Dimension, dict[str, RowIds]], row_count: int):
        self._buckets = buckets
        self.row_count = row_count
        self.all_row_ids: RowIds = frozenset(range(row_count))

    @classmethod
    def build(cls, rows: Sequence[FactRow]) -> "DimensionIndex":
        """
        Index every row under every applicable dimension value.

        Subcategories are written to both the per-subscription and the global
        bucket; both are valid lookup paths for the same rows. Rows without a
        true resource id get no resource-id bucket.
        """
        start = time.time()
        staging: dict[Dimension, defaultdict[str, list[int]]] = {
            dimension: defaultdict(list) for dimension in Dimension
        }

        for row_id, row in enumerate(rows):
            for dimension, extract in DIMENSION_EXTRACTORS.items():
                value = extract(row)
                if value is not None:
                    staging[dimension][value].append(row_id)

        buckets = {
            dimension: {value: frozenset(ids) for value, ids in values.items()}
            for dimension, values in staging.items()
        }

        elapsed = time.time() - start
        logger.info(
            f"Indexed {len(rows)} rows across {len(Dimension)} dimensions in {elapsed:.3f}s"
        )
        return cls(buckets, len(rows))

    def _lookup_value(self, dimension: Dimension, value: str) -> str:
        normalizer = NORMALIZED_DIMENSIONS.get(dimension)
        return normalizer(value) if normalizer else value

    def rows(self, dimension: Dimension, value: str) -> RowIds:
        """Row ids carrying ``value`` in ``dimension``; empty when unknown."""
        return self._buckets[dimension].get(self._lookup_value(dimension, value), EMPTY_ROWS)

    def rows_for_values(self, dimension: Dimension, values) -> RowIds:
        """Union of the buckets for several values."""
        result: set[int] = set()
        for value in values:
            result.update(self.rows(dimension, value))
        return frozenset(result)

    def subcategory_rows(self, key: str) -> RowIds:
        """Resolve a subcategory key in either form (per-subscription first, then global)."""
        bucket = self._buckets[Dimension.SUBCATEGORY].get(key)
        if bucket is not None:
            return bucket
        return self._buckets[Dimension.SUBCATEGORY_GLOBAL].get(key, EMPTY_ROWS)

    def has_value(self, dimension: Dimension, value: str) -> bool:
        return self._lookup_value(dimension, value) in self._buckets[dimension]

    def values(self, dimension: Dimension) -> list[str]:
        """All indexed values of a dimension, sorted."""
        return sorted(self._buckets[dimension])

    def bucket(self, dimension: Dimension) -> dict[str, RowIds]:
        """The whole value -> row ids mapping of one dimension (do not mutate)."""
        return self._buckets[dimension]

    @property
    def days(self) -> list[str]:
        return self.values(Dimension.DAY)

    @property
    def subscription_ids(self) -> list[str]:
        return self.values(Dimension.SUBSCRIPTION_ID)

    def stats(self) -> dict[str, int]:
        """Number of distinct values per dimension."""
        return {dimension.value: len(values) for dimension, values in self._buckets.items()}


def intersect(a: RowIds | set[int], b: RowIds | set[int]) -> RowIds:
    """Intersect two row-id sets, iterating the smaller one."""
    if len(a) > len(b):
        a, b = b, a
    return frozenset(row_id for row_id in a if row_id in b)
