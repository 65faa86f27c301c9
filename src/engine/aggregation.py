"""
Aggregation functions over a row-id set and the fact table.

Every function is pure: the same rows and row ids always give the same result,
and an empty row-id set gives neutral zero-valued output. Group-by results
always add up to ``sum_costs`` over the same row ids.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from ..utils.data_normalizer import FactRow
from .index import RowIds

logger = logging.getLogger(__name__)


class CostTotals(BaseModel):
    """Summed cost in both currencies."""

    local: float = 0.0
    usd: float = 0.0
    item_count: int = 0


class DailyCost(BaseModel):
    """Cost for one calendar day."""

    day: str
    local: float = 0.0
    usd: float = 0.0


class CostGroup(BaseModel):
    """One group of a group-by, with descriptive fields for display."""

    key: str
    label: str
    local: float = 0.0
    usd: float = 0.0
    item_count: int = 0
    attributes: dict[str, Any] = Field(default_factory=dict)


def ordered_ids(row_ids: RowIds) -> list[int]:
    """Row ids in ascending order, so summation order is stable."""
    return sorted(row_ids)


def sum_costs(rows: Sequence[FactRow], row_ids: RowIds) -> CostTotals:
    local = 0.0
    usd = 0.0
    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        local += row.cost_local
        usd += row.cost_usd
    return CostTotals(local=local, usd=usd, item_count=len(row_ids))


def trend_by_day(rows: Sequence[FactRow], row_ids: RowIds) -> list[DailyCost]:
    """Daily totals sorted by ISO day (fixed-width strings sort chronologically)."""
    totals: dict[str, list[float]] = {}
    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        day_total = totals.setdefault(row.day, [0.0, 0.0])
        day_total[0] += row.cost_local
        day_total[1] += row.cost_usd

    return [
        DailyCost(day=day, local=local, usd=usd) for day, (local, usd) in sorted(totals.items())
    ]


def group_rows(
    rows: Sequence[FactRow],
    row_ids: RowIds,
    key_fn: Callable[[FactRow], str],
    label_fn: Callable[[FactRow], str],
    attributes_fn: Callable[[FactRow], dict[str, Any]] | None = None,
) -> list[CostGroup]:
    """
    Group rows by ``key_fn`` and sum their costs.

    Labels and attributes come from the lowest row id of each group. Groups
    are sorted by local cost descending, ties broken by key.
    """
    groups: dict[str, CostGroup] = {}
    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        key = key_fn(row)
        group = groups.get(key)
        if group is None:
            group = CostGroup(
                key=key,
                label=label_fn(row),
                attributes=attributes_fn(row) if attributes_fn else {},
            )
            groups[key] = group
        group.local += row.cost_local
        group.usd += row.cost_usd
        group.item_count += 1

    return sort_groups(list(groups.values()))


def sort_groups(groups: list[CostGroup]) -> list[CostGroup]:
    return sorted(groups, key=lambda group: (-group.local, group.key))


def group_by_category(rows: Sequence[FactRow], row_ids: RowIds) -> list[CostGroup]:
    return group_rows(rows, row_ids, lambda r: r.meter_category, lambda r: r.meter_category)


def group_by_subcategory(
    rows: Sequence[FactRow], row_ids: RowIds, per_subscription: bool = False
) -> list[CostGroup]:
    """Group by subcategory, keyed globally (category|subcategory) or per subscription."""
    key_fn = (lambda r: r.subcategory_key) if per_subscription else (lambda r: r.subcategory_global_key)
    return group_rows(
        rows,
        row_ids,
        key_fn,
        lambda r: r.meter_subcategory,
        lambda r: {
            "category": r.meter_category,
            **({"subscription_id": r.subscription_id} if per_subscription else {}),
        },
    )


def group_by_meter(rows: Sequence[FactRow], row_ids: RowIds) -> list[CostGroup]:
    return group_rows(
        rows,
        row_ids,
        lambda r: r.meter_key,
        lambda r: r.meter_name,
        lambda r: {"category": r.meter_category, "subcategory": r.meter_subcategory},
    )


def group_by_resource(rows: Sequence[FactRow], row_ids: RowIds) -> list[CostGroup]:
    """Group by canonical resource key; non-resource rows keep their composite key."""
    return group_rows(
        rows,
        row_ids,
        lambda r: r.resource_key,
        lambda r: r.resource_name,
        lambda r: {
            "resource_id": r.resource_id,
            "resource_group": r.resource_group,
            "subscription_id": r.subscription_id,
            "subscription_name": r.subscription_name,
            "pickable": r.has_resource_id,
        },
    )


def group_by_subscription(rows: Sequence[FactRow], row_ids: RowIds) -> list[CostGroup]:
    return group_rows(rows, row_ids, lambda r: r.subscription_id, lambda r: r.subscription_name)
