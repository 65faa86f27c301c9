"""
Breakdown and chart dataset construction.

Turns an active row set into a stacked time series: the top-N entities of the
requested breakdown view, each with a per-day series, plus an "Other"
remainder series that always renders last.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from .aggregation import ordered_ids, trend_by_day
from .index import Dimension, DimensionIndex, RowIds, intersect
from ..utils.data_normalizer import FactRow

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 15
OTHER_EPSILON = 0.005
OTHER_KEY = "__other__"
OTHER_LABEL = "Other"
NO_DATA_KEY = "__no_data__"
NO_DATA_LABEL = "No data"
TOTAL_KEY = "__total__"
TOTAL_LABEL = "Total"


class BreakdownView(Enum):
    """What the chart is broken down by."""

    TOTAL = "total"
    BY_CATEGORY = "category"
    BY_SUBSCRIPTION = "subscription"
    BY_METER = "meter"
    BY_RESOURCE = "resource"


@dataclass(frozen=True)
class ViewSpec:
    """How a breakdown view finds its entities."""

    dimension: Dimension
    entity_key: Callable[[FactRow], str | None]
    entity_label: Callable[[FactRow], str]
    title: str


VIEW_SPECS: dict[BreakdownView, ViewSpec] = {
    BreakdownView.BY_CATEGORY: ViewSpec(
        Dimension.CATEGORY,
        lambda row: row.meter_category,
        lambda row: row.meter_category,
        "Daily cost by category",
    ),
    BreakdownView.BY_SUBSCRIPTION: ViewSpec(
        Dimension.SUBSCRIPTION_ID,
        lambda row: row.subscription_id,
        lambda row: row.subscription_name,
        "Daily cost by subscription",
    ),
    BreakdownView.BY_METER: ViewSpec(
        Dimension.METER_KEY,
        lambda row: row.meter_key,
        lambda row: row.meter_name,
        "Daily cost by meter",
    ),
    # Only rows with a real resource id are resource entities; the rest land in "Other"
    BreakdownView.BY_RESOURCE: ViewSpec(
        Dimension.RESOURCE_KEY,
        lambda row: row.resource_key if row.has_resource_id else None,
        lambda row: row.resource_name,
        "Daily cost by resource",
    ),
}

VIEW_TITLES = {BreakdownView.TOTAL: "Daily cost", **{v: s.title for v, s in VIEW_SPECS.items()}}


class ChartDataset(BaseModel):
    """One stacked series: a value per day label."""

    key: str
    label: str
    values: list[float] = Field(default_factory=list)
    total: float = 0.0
    is_other: bool = False


class BreakdownDataset(BaseModel):
    """Ordered day labels plus ordered series, ready for a stacked chart."""

    view: BreakdownView
    title: str
    days: list[str] = Field(default_factory=list)
    datasets: list[ChartDataset] = Field(default_factory=list)
    total_local: float = 0.0
    has_data: bool = True

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


def coerce_view(view: BreakdownView | str) -> BreakdownView:
    if isinstance(view, BreakdownView):
        return view
    try:
        return BreakdownView(str(view).lower())
    except ValueError:
        valid = ", ".join(v.value for v in BreakdownView)
        raise ValueError(f"Unknown breakdown view '{view}'. Must be one of: {valid}")


def empty_breakdown(view: BreakdownView) -> BreakdownDataset:
    """The explicit "no data" result for an empty active set."""
    return BreakdownDataset(
        view=view,
        title=VIEW_TITLES[view],
        days=[],
        datasets=[ChartDataset(key=NO_DATA_KEY, label=NO_DATA_LABEL)],
        total_local=0.0,
        has_data=False,
    )


def disambiguate_labels(datasets: list[ChartDataset]) -> list[ChartDataset]:
    """
    Suffix repeated labels with ' (2)', ' (3)', ... in list order.

    The "Other" series keeps its label; an entity that shares it is suffixed instead.
    """
    seen: dict[str, int] = {dataset.label: 1 for dataset in datasets if dataset.is_other}
    taken = {dataset.label for dataset in datasets}
    result = []
    for dataset in datasets:
        if dataset.is_other:
            result.append(dataset)
            continue

        count = seen.get(dataset.label, 0) + 1
        seen[dataset.label] = count
        if count == 1:
            result.append(dataset)
            continue

        suffix = count
        label = f"{dataset.label} ({suffix})"
        while label in taken:
            suffix += 1
            label = f"{dataset.label} ({suffix})"
        taken.add(label)
        result.append(dataset.model_copy(update={"label": label}))
    return result


def _daily_series(
    rows: Sequence[FactRow], row_ids: RowIds, day_positions: dict[str, int]
) -> list[float]:
    values = [0.0] * len(day_positions)
    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        values[day_positions[row.day]] += row.cost_local
    return values


def rank_entities(
    rows: Sequence[FactRow], row_ids: RowIds, spec: ViewSpec
) -> list[tuple[str, str, float]]:
    """(key, label, total) per entity, cost descending, ties by key."""
    totals: dict[str, float] = {}
    labels: dict[str, str] = {}
    for row_id in ordered_ids(row_ids):
        row = rows[row_id]
        key = spec.entity_key(row)
        if key is None:
            continue
        if key not in totals:
            totals[key] = 0.0
            labels[key] = spec.entity_label(row)
        totals[key] += row.cost_local

    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [(key, labels[key], total) for key, total in ranked]


def build_breakdown(
    view: BreakdownView | str,
    rows: Sequence[FactRow],
    index: DimensionIndex,
    row_ids: RowIds,
    top_n: int = DEFAULT_TOP_N,
    other_epsilon: float = OTHER_EPSILON,
) -> BreakdownDataset:
    """
    Build the stacked chart dataset for a breakdown view.

    The top ``top_n`` entities get their own series, computed by intersecting
    the active rows with the entity's index bucket so each row is counted once
    for its single entity. The "Other" series is the clamped per-day remainder,
    dropped when its total is below ``other_epsilon``, and always placed last.

    Args:
        view: Breakdown view (or its string value)
        rows: Fact table
        index: Dimension index built over ``rows``
        row_ids: Active row set
        top_n: Number of entities shown individually
        other_epsilon: Minimum total for the "Other" series to be kept

    Returns:
        Day labels plus ordered datasets, or the "No data" dataset when empty
    """
    view = coerce_view(view)
    if not row_ids:
        return empty_breakdown(view)

    daily = trend_by_day(rows, row_ids)
    days = [entry.day for entry in daily]
    day_totals = [entry.local for entry in daily]
    day_positions = {day: position for position, day in enumerate(days)}
    total_local = sum(day_totals)

    if view is BreakdownView.TOTAL:
        return BreakdownDataset(
            view=view,
            title=VIEW_TITLES[view],
            days=days,
            datasets=[
                ChartDataset(key=TOTAL_KEY, label=TOTAL_LABEL, values=day_totals, total=total_local)
            ],
            total_local=total_local,
        )

    spec = VIEW_SPECS[view]
    ranked = rank_entities(rows, row_ids, spec)
    bucket = index.bucket(spec.dimension)

    datasets = []
    top_per_day = [0.0] * len(days)
    for key, label, total in ranked[:top_n]:
        entity_rows = intersect(row_ids, bucket.get(key, frozenset()))
        values = _daily_series(rows, entity_rows, day_positions)
        for position, value in enumerate(values):
            top_per_day[position] += value
        datasets.append(ChartDataset(key=key, label=label, values=values, total=total))

    other_values = [max(0.0, day_total - top) for day_total, top in zip(day_totals, top_per_day)]
    other_total = sum(other_values)

    datasets.sort(key=lambda dataset: (-dataset.total, dataset.key))
    if other_total >= other_epsilon:
        datasets.append(
            ChartDataset(
                key=OTHER_KEY,
                label=OTHER_LABEL,
                values=other_values,
                total=other_total,
                is_other=True,
            )
        )

    logger.debug(
        f"Breakdown {view.value}: {len(ranked)} entities, top {min(top_n, len(ranked))}, "
        f"other={other_total:.2f}"
    )

    return BreakdownDataset(
        view=view,
        title=VIEW_TITLES[view],
        days=days,
        datasets=disambiguate_labels(datasets),
        total_local=total_local,
    )
