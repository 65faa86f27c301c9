"""
Summary cards and the drill-down tree.

Output contracts for the presentation layer: headline figures for the active
row set, and nested category -> subcategory -> meter -> resource aggregates.
"""

import logging
from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, Field

from ..utils.data_normalizer import FactRow
from .aggregation import DailyCost, ordered_ids, sum_costs, trend_by_day
from .index import RowIds

logger = logging.getLogger(__name__)

DEFAULT_TREND_WINDOW_DAYS = 3
DEFAULT_TREND_FLAT_THRESHOLD = 2.0  # percent


class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class SummaryCards(BaseModel):
    """Headline figures for the summary cards."""

    total_local: float = 0.0
    total_usd: float = 0.0
    subscription_count: int = 0
    category_count: int = 0
    trend_percent: float = 0.0
    trend_direction: TrendDirection = TrendDirection.FLAT
    currency: str = "USD"
    day_count: int = 0
    item_count: int = 0


class DrilldownLevel(Enum):
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    METER = "meter"
    RESOURCE = "resource"


LEVEL_ORDER = [
    DrilldownLevel.CATEGORY,
    DrilldownLevel.SUBCATEGORY,
    DrilldownLevel.METER,
    DrilldownLevel.RESOURCE,
]


class DrilldownNode(BaseModel):
    """One node of the drill-down tree with its subtree."""

    key: str
    label: str
    level: DrilldownLevel
    cost_local: float = 0.0
    cost_usd: float = 0.0
    item_count: int = 0
    children: list["DrilldownNode"] = Field(default_factory=list)


DrilldownNode.model_rebuild()


def compute_trend(
    daily: list[DailyCost],
    window_days: int = DEFAULT_TREND_WINDOW_DAYS,
    flat_threshold: float = DEFAULT_TREND_FLAT_THRESHOLD,
) -> tuple[float, TrendDirection]:
    """
    Compare the average of the last days against the first days.

    The window shrinks to half the available days. A zero baseline gives a
    neutral 0% rather than a division error.
    """
    if len(daily) < 2:
        return 0.0, TrendDirection.FLAT

    window = max(1, min(window_days, len(daily) // 2))
    first_avg = sum(entry.local for entry in daily[:window]) / window
    last_avg = sum(entry.local for entry in daily[-window:]) / window

    if first_avg == 0:
        return 0.0, TrendDirection.FLAT

    change_pct = (last_avg - first_avg) / first_avg * 100
    if abs(change_pct) < flat_threshold:
        return change_pct, TrendDirection.FLAT
    if change_pct > 0:
        return change_pct, TrendDirection.UP
    return change_pct, TrendDirection.DOWN


def build_summary_cards(
    rows: Sequence[FactRow],
    row_ids: RowIds,
    currency: str = "USD",
    window_days: int = DEFAULT_TREND_WINDOW_DAYS,
    flat_threshold: float = DEFAULT_TREND_FLAT_THRESHOLD,
) -> SummaryCards:
    if not row_ids:
        return SummaryCards(currency=currency)

    totals = sum_costs(rows, row_ids)
    daily = trend_by_day(rows, row_ids)
    trend_percent, direction = compute_trend(daily, window_days, flat_threshold)

    subscriptions = set()
    categories = set()
    for row_id in row_ids:
        row = rows[row_id]
        subscriptions.add(row.subscription_id)
        categories.add(row.meter_category)

    return SummaryCards(
        total_local=totals.local,
        total_usd=totals.usd,
        subscription_count=len(subscriptions),
        category_count=len(categories),
        trend_percent=trend_percent,
        trend_direction=direction,
        currency=currency,
        day_count=len(daily),
        item_count=totals.item_count,
    )


class _Accumulator:
    __slots__ = ("label", "local", "usd", "count", "children")

    def __init__(self, label: str):
        self.label = label
        self.local = 0.0
        self.usd = 0.0
        self.count = 0
        self.children: dict[str, "_Accumulator"] = {}


def _path(row: FactRow) -> list[tuple[str, str]]:
    return [
        (row.meter_category, row.meter_category),
        (row.subcategory_global_key, row.meter_subcategory),
        (row.meter_key, row.meter_name),
        (row.resource_key, row.resource_name),
    ]


def _to_nodes(children: dict[str, _Accumulator], depth: int) -> list[DrilldownNode]:
    nodes = [
        DrilldownNode(
            key=key,
            label=acc.label,
            level=LEVEL_ORDER[depth],
            cost_local=acc.local,
            cost_usd=acc.usd,
            item_count=acc.count,
            children=_to_nodes(acc.children, depth + 1),
        )
        for key, acc in children.items()
    ]
    return sorted(nodes, key=lambda node: (-node.cost_local, node.key))


def build_drilldown(
    rows: Sequence[FactRow], row_ids: RowIds, depth: int = len(LEVEL_ORDER)
) -> list[DrilldownNode]:
    """
    Nest aggregates category -> subcategory -> meter -> resource.

    Every level's children add up to their parent, and the top level adds up
    to ``sum_costs`` over the same rows.

    Args:
        rows: Fact table
        row_ids: Rows to aggregate
        depth: Number of levels to build (1-4)
    """
    depth = max(1, min(depth, len(LEVEL_ORDER)))
    root: dict[str, _Accumulator] = {}

    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        level = root
        for key, label in _path(row)[:depth]:
            acc = level.get(key)
            if acc is None:
                acc = level[key] = _Accumulator(label)
            acc.local += row.cost_local
            acc.usd += row.cost_usd
            acc.count += 1
            level = acc.children

    return _to_nodes(root, 0)
