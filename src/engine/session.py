"""
Cost explorer session: the engine's interface to the presentation layer.

A CostExplorer owns one read-only fact table and dimension index plus one
SelectionState. Presentation code translates user gestures into the named
selection operations here and reads back aggregates for the chart, summary
cards and drill-down tree.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from ..providers.base import CostRecord
from ..utils.data_normalizer import FactNormalizer, FactRow, NormalizationResult
from . import aggregation
from .aggregation import CostGroup, CostTotals, DailyCost
from .datasets import DEFAULT_TOP_N, OTHER_EPSILON, BreakdownDataset, BreakdownView, build_breakdown
from .index import Dimension, DimensionIndex, RowIds, intersect
from .selection import PickDimension, PickMode, SelectionState, coerce_pick_dimension
from .summary import (
    DEFAULT_TREND_FLAT_THRESHOLD,
    DEFAULT_TREND_WINDOW_DAYS,
    DrilldownNode,
    SummaryCards,
    build_drilldown,
    build_summary_cards,
)

logger = logging.getLogger(__name__)


class CostExplorer:
    """Faceted query engine over one in-memory cost snapshot."""

    def __init__(
        self,
        rows: Sequence[FactRow],
        index: DimensionIndex | None = None,
        selection: SelectionState | None = None,
        currency: str = "USD",
        top_n: int = DEFAULT_TOP_N,
        other_epsilon: float = OTHER_EPSILON,
        trend_window_days: int = DEFAULT_TREND_WINDOW_DAYS,
        trend_flat_threshold: float = DEFAULT_TREND_FLAT_THRESHOLD,
    ):
        self._rows = tuple(rows)
        self._index = index or DimensionIndex.build(self._rows)
        self.selection = selection or SelectionState()
        self.currency = currency
        self.top_n = top_n
        self.other_epsilon = other_epsilon
        self.trend_window_days = trend_window_days
        self.trend_flat_threshold = trend_flat_threshold
        self._active_cache: tuple[tuple[int, int], RowIds] | None = None
        self.skipped_records = 0

    @classmethod
    def from_records(
        cls,
        records: Iterable[CostRecord | dict[str, Any]],
        normalizer: FactNormalizer | None = None,
        **options,
    ) -> "CostExplorer":
        """Normalize raw records and index them into a new session."""
        result = (normalizer or FactNormalizer()).normalize(records)
        return cls.from_normalized(result, **options)

    @classmethod
    def from_normalized(cls, result: NormalizationResult, **options) -> "CostExplorer":
        options.setdefault("currency", result.primary_currency)
        explorer = cls(result.rows, **options)
        explorer.skipped_records = result.skipped_records
        return explorer

    def with_selection(self, selection: SelectionState) -> "CostExplorer":
        """A session sharing this fact table and index but with its own selection."""
        return CostExplorer(
            self._rows,
            index=self._index,
            selection=selection,
            currency=self.currency,
            top_n=self.top_n,
            other_epsilon=self.other_epsilon,
            trend_window_days=self.trend_window_days,
            trend_flat_threshold=self.trend_flat_threshold,
        )

    @property
    def rows(self) -> tuple[FactRow, ...]:
        return self._rows

    @property
    def index(self) -> DimensionIndex:
        return self._index

    # Selection operations

    def set_scope_subscriptions(self, subscription_ids: Iterable[str] | None):
        """
        Restrict the scope to some subscriptions.

        Choosing every selectable subscription is stored as "no restriction"
        (the empty set).
        """
        chosen = {str(s) for s in (subscription_ids or [])}
        if chosen and chosen.issuperset(self._index.subscription_ids):
            chosen = set()
        self.selection.set_scope_subscriptions(chosen)

    def select_no_subscriptions(self):
        """Scope to no subscriptions at all; every aggregate becomes empty."""
        self.selection.select_no_subscriptions()

    def set_scope_day_range(self, day_from: str | date | None, day_to: str | date | None):
        self.selection.set_scope_day_range(day_from, day_to)

    def toggle_pick(
        self, dimension: PickDimension | str, value: str, mode: PickMode | str = PickMode.TOGGLE
    ) -> bool:
        return self.selection.toggle_pick(dimension, value, mode)

    def handle_facet_click(self, dimension: PickDimension | str, value: str, multi: bool = False) -> bool:
        """
        Apply a click on a facet row.

        A plain click selects only this value, or clears it when it is already
        the sole selection. A modifier click toggles it within the dimension.

        Returns:
            Whether the value is selected afterwards
        """
        dimension = coerce_pick_dimension(dimension)
        if dimension is PickDimension.RESOURCE and not self.is_resource_pickable(value):
            logger.debug(f"Ignoring click on non-resource cost line {value!r}")
            return False

        if multi:
            return self.selection.toggle_pick(dimension, value, PickMode.TOGGLE)

        if self.selection.picks(dimension) == {value}:
            return self.selection.toggle_pick(dimension, value, PickMode.REMOVE)
        return self.selection.toggle_pick(dimension, value, PickMode.REPLACE)

    def is_resource_pickable(self, resource_key: str) -> bool:
        """Only keys backed by a real resource id can be picked."""
        return self._index.has_value(Dimension.RESOURCE_ID, resource_key)

    def clear_picks(self):
        self.selection.clear_picks()

    def clear_scope(self):
        self.selection.clear_scope()

    @property
    def pick_sets(self) -> dict[PickDimension, frozenset[str]]:
        return self.selection.pick_sets

    # Row sets

    def get_scope_row_ids(self) -> RowIds:
        return self.selection.scope_row_ids(self._index)

    def get_active_row_ids(self) -> RowIds:
        """Active rows, cached until the selection changes."""
        cache_key = (id(self.selection), self.selection.version)
        if self._active_cache is not None and self._active_cache[0] == cache_key:
            return self._active_cache[1]

        active = self.selection.active_row_ids(self._index)
        self._active_cache = (cache_key, active)
        return active

    @staticmethod
    def intersect(a: RowIds, b: RowIds) -> RowIds:
        return intersect(a, b)

    def _resolve(self, row_ids: RowIds | None) -> RowIds:
        return self.get_active_row_ids() if row_ids is None else row_ids

    # Aggregates (default to the active rows)

    def sum_costs(self, row_ids: RowIds | None = None) -> CostTotals:
        return aggregation.sum_costs(self._rows, self._resolve(row_ids))

    def trend_by_day(self, row_ids: RowIds | None = None) -> list[DailyCost]:
        return aggregation.trend_by_day(self._rows, self._resolve(row_ids))

    def group_by_category(self, row_ids: RowIds | None = None) -> list[CostGroup]:
        return aggregation.group_by_category(self._rows, self._resolve(row_ids))

    def group_by_subcategory(
        self, row_ids: RowIds | None = None, per_subscription: bool = False
    ) -> list[CostGroup]:
        return aggregation.group_by_subcategory(
            self._rows, self._resolve(row_ids), per_subscription=per_subscription
        )

    def group_by_meter(self, row_ids: RowIds | None = None) -> list[CostGroup]:
        return aggregation.group_by_meter(self._rows, self._resolve(row_ids))

    def group_by_resource(self, row_ids: RowIds | None = None) -> list[CostGroup]:
        return aggregation.group_by_resource(self._rows, self._resolve(row_ids))

    def group_by_subscription(self, row_ids: RowIds | None = None) -> list[CostGroup]:
        return aggregation.group_by_subscription(self._rows, self._resolve(row_ids))

    def breakdown(
        self,
        view: BreakdownView | str = BreakdownView.BY_CATEGORY,
        row_ids: RowIds | None = None,
        top_n: int | None = None,
    ) -> BreakdownDataset:
        return build_breakdown(
            view,
            self._rows,
            self._index,
            self._resolve(row_ids),
            top_n=self.top_n if top_n is None else top_n,
            other_epsilon=self.other_epsilon,
        )

    def summary_cards(self, row_ids: RowIds | None = None) -> SummaryCards:
        return build_summary_cards(
            self._rows,
            self._resolve(row_ids),
            currency=self.currency,
            window_days=self.trend_window_days,
            flat_threshold=self.trend_flat_threshold,
        )

    def drilldown(self, row_ids: RowIds | None = None, depth: int = 4) -> list[DrilldownNode]:
        """Drill-down tree; defaults to the scope rows so every facet stays visible."""
        rows = self.get_scope_row_ids() if row_ids is None else row_ids
        return build_drilldown(self._rows, rows, depth=depth)

    def subscriptions(self) -> list[CostGroup]:
        """Every subscription in the snapshot with its total cost, for scope pickers."""
        return aggregation.group_by_subscription(self._rows, self._index.all_row_ids)

    def snapshot(self) -> dict[str, Any]:
        """Everything the presentation layer needs after one interaction."""
        return {
            "selection": self.selection.to_dict(),
            "summary": self.summary_cards().model_dump(mode="json"),
            "trend": [entry.model_dump() for entry in self.trend_by_day()],
        }
