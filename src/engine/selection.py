"""
Selection state for the cost report cross-filter.

Holds the two selection tiers: scope (subscription set and day range, AND-combined)
and picks (per-dimension value sets, unioned across dimensions). All mutation goes
through named operations so the exclusivity rule between pick dimensions is
enforced in one place.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date
from enum import Enum
from typing import Any

from ..providers.base import InvalidSelectionError
from ..utils.data_normalizer import KEY_SEPARATOR, parse_day
from .index import EMPTY_ROWS, Dimension, DimensionIndex, RowIds, intersect

logger = logging.getLogger(__name__)


class PickDimension(Enum):
    """Dimensions a user can pick facet values from."""

    RESOURCE = "resource"  # canonical resource key
    RESOURCE_ID = "resource_id"
    RESOURCE_NAME = "resource_name"
    RESOURCE_GROUP = "resource_group"
    METER = "meter"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"


class PickMode(Enum):
    """How a pick changes its dimension's selection set."""

    TOGGLE = "toggle"
    REPLACE = "replace"
    ADD = "add"
    REMOVE = "remove"


def _meter_rows(index: DimensionIndex, value: str) -> RowIds:
    # A full category|subcategory|meter key, or a bare meter name
    if KEY_SEPARATOR in value:
        return index.rows(Dimension.METER_KEY, value)
    return index.rows(Dimension.METER, value)


PICK_RESOLVERS: dict[PickDimension, Callable[[DimensionIndex, str], RowIds]] = {
    # Only keys backed by a real resource id; composite keys of non-resource lines match nothing
    PickDimension.RESOURCE: lambda index, value: index.rows(Dimension.RESOURCE_ID, value),
    PickDimension.RESOURCE_ID: lambda index, value: index.rows(Dimension.RESOURCE_ID, value),
    PickDimension.RESOURCE_NAME: lambda index, value: index.rows(Dimension.RESOURCE_NAME, value),
    PickDimension.RESOURCE_GROUP: lambda index, value: index.rows(Dimension.RESOURCE_GROUP, value),
    PickDimension.METER: _meter_rows,
    PickDimension.CATEGORY: lambda index, value: index.rows(Dimension.CATEGORY, value),
    PickDimension.SUBCATEGORY: lambda index, value: index.subcategory_rows(value),
}


def coerce_pick_dimension(dimension: PickDimension | str) -> PickDimension:
    if isinstance(dimension, PickDimension):
        return dimension
    try:
        return PickDimension(str(dimension).lower())
    except ValueError:
        valid = ", ".join(d.value for d in PickDimension)
        raise InvalidSelectionError(f"Unknown pick dimension '{dimension}'. Must be one of: {valid}")


def coerce_pick_mode(mode: PickMode | str) -> PickMode:
    if isinstance(mode, PickMode):
        return mode
    try:
        return PickMode(str(mode).lower())
    except ValueError:
        valid = ", ".join(m.value for m in PickMode)
        raise InvalidSelectionError(f"Unknown pick mode '{mode}'. Must be one of: {valid}")


def _coerce_day(value: str | date | None, label: str) -> str | None:
    if value is None or value == "":
        return None
    day = parse_day(value)
    if day is None:
        raise InvalidSelectionError(f"Invalid {label} day: {value!r}")
    return day


class SelectionState:
    """Scope and pick sets for one report session."""

    def __init__(self):
        self._scope_subscriptions: set[str] = set()
        self._no_subscriptions = False
        self._day_from: str | None = None
        self._day_to: str | None = None
        self._picks: dict[PickDimension, set[str]] = {dimension: set() for dimension in PickDimension}
        self.version = 0

    def _touch(self):
        self.version += 1

    # Scope

    def set_scope_subscriptions(self, subscription_ids: Iterable[str] | None):
        """Replace the subscription scope. An empty set means no restriction."""
        self._scope_subscriptions = {str(s) for s in (subscription_ids or []) if str(s).strip()}
        self._no_subscriptions = False
        self._touch()
        logger.debug(f"Scope subscriptions set to {len(self._scope_subscriptions)} ids")

    def select_no_subscriptions(self):
        """Scope to an explicitly empty subscription set, which matches no rows."""
        self._scope_subscriptions = set()
        self._no_subscriptions = True
        self._touch()
        logger.debug("Scope subscriptions set to none")

    def set_scope_day_range(self, day_from: str | date | None, day_to: str | date | None):
        """Replace the inclusive day range; either end may be open (None)."""
        start = _coerce_day(day_from, "start")
        end = _coerce_day(day_to, "end")
        if start and end and start > end:
            raise InvalidSelectionError(f"Day range start {start} is after end {end}")
        self._day_from, self._day_to = start, end
        self._touch()
        logger.debug(f"Scope day range set to {start}..{end}")

    def clear_scope(self):
        self._scope_subscriptions = set()
        self._no_subscriptions = False
        self._day_from = self._day_to = None
        self._touch()

    @property
    def scope_subscriptions(self) -> frozenset[str]:
        return frozenset(self._scope_subscriptions)

    @property
    def no_subscriptions(self) -> bool:
        return self._no_subscriptions

    @property
    def day_range(self) -> tuple[str | None, str | None]:
        return self._day_from, self._day_to

    @property
    def has_scope(self) -> bool:
        return (
            self._no_subscriptions
            or bool(self._scope_subscriptions)
            or self._day_from is not None
            or self._day_to is not None
        )

    # Picks

    def toggle_pick(
        self,
        dimension: PickDimension | str,
        value: str,
        mode: PickMode | str = PickMode.TOGGLE,
    ) -> bool:
        """
        Change one pick dimension's selection set.

        Inserting a value into a dimension clears every other pick dimension,
        while the target dimension keeps its set for multi-select. REMOVE never
        touches other dimensions.

        Args:
            dimension: Pick dimension to change
            value: Facet value (resource key, meter name or key, category, ...)
            mode: TOGGLE, REPLACE (single-select), ADD or REMOVE

        Returns:
            Whether ``value`` is selected after the operation
        """
        dimension = coerce_pick_dimension(dimension)
        mode = coerce_pick_mode(mode)
        value = str(value)
        selected = self._picks[dimension]

        if mode is PickMode.REMOVE or (mode is PickMode.TOGGLE and value in selected):
            selected.discard(value)
            is_selected = False
        else:
            self._clear_other_picks(dimension)
            if mode is PickMode.REPLACE:
                selected.clear()
            selected.add(value)
            is_selected = True

        self._touch()
        logger.debug(f"Pick {mode.value} {dimension.value}={value!r} -> selected={is_selected}")
        return is_selected

    def _clear_other_picks(self, dimension: PickDimension):
        for other, values in self._picks.items():
            if other is not dimension and values:
                logger.debug(f"Clearing {len(values)} {other.value} picks")
                values.clear()

    def clear_picks(self):
        for values in self._picks.values():
            values.clear()
        self._touch()

    def picks(self, dimension: PickDimension | str) -> frozenset[str]:
        return frozenset(self._picks[coerce_pick_dimension(dimension)])

    @property
    def pick_sets(self) -> dict[PickDimension, frozenset[str]]:
        """Snapshot of every pick dimension's set."""
        return {dimension: frozenset(values) for dimension, values in self._picks.items()}

    @property
    def has_picks(self) -> bool:
        return any(self._picks.values())

    # Row sets

    def scope_row_ids(self, index: DimensionIndex) -> RowIds:
        """Rows satisfying the scope only; picks are ignored."""
        if self._no_subscriptions:
            return EMPTY_ROWS
        row_ids = index.all_row_ids

        if self._scope_subscriptions:
            subscription_rows = index.rows_for_values(
                Dimension.SUBSCRIPTION_ID, self._scope_subscriptions
            )
            row_ids = intersect(row_ids, subscription_rows)

        if self._day_from is not None or self._day_to is not None:
            in_range = [
                day
                for day in index.days
                if (self._day_from is None or day >= self._day_from)
                and (self._day_to is None or day <= self._day_to)
            ]
            row_ids = intersect(row_ids, index.rows_for_values(Dimension.DAY, in_range))

        return row_ids

    def pick_row_ids(self, index: DimensionIndex) -> RowIds | None:
        """Union of all pick sets' rows, or None when nothing is picked."""
        if not self.has_picks:
            return None

        picked: set[int] = set()
        for dimension, values in self._picks.items():
            resolve = PICK_RESOLVERS[dimension]
            for value in values:
                picked.update(resolve(index, value))
        return frozenset(picked) if picked else EMPTY_ROWS

    def active_row_ids(self, index: DimensionIndex) -> RowIds:
        """Scope rows when nothing is picked, else scope ∩ union(picks)."""
        scope = self.scope_row_ids(index)
        picked = self.pick_row_ids(index)
        if picked is None:
            return scope
        return intersect(scope, picked)

    # Serialization for client-side stores

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": {
                "subscriptions": sorted(self._scope_subscriptions),
                "no_subscriptions": self._no_subscriptions,
                "day_from": self._day_from,
                "day_to": self._day_to,
            },
            "picks": {
                dimension.value: sorted(values) for dimension, values in self._picks.items() if values
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SelectionState":
        """Rebuild a state from ``to_dict`` output; None gives an empty state."""
        state = cls()
        if not data:
            return state

        scope = data.get("scope") or {}
        state._scope_subscriptions = {str(s) for s in scope.get("subscriptions") or []}
        state._no_subscriptions = bool(scope.get("no_subscriptions")) and not state._scope_subscriptions
        state._day_from = _coerce_day(scope.get("day_from"), "start")
        state._day_to = _coerce_day(scope.get("day_to"), "end")

        for name, values in (data.get("picks") or {}).items():
            state._picks[coerce_pick_dimension(name)] = {str(v) for v in values}
        return state

    def copy(self) -> "SelectionState":
        return SelectionState.from_dict(self.to_dict())

    def __repr__(self) -> str:
        picked = {d.value: len(v) for d, v in self._picks.items() if v}
        subscriptions = "none" if self._no_subscriptions else len(self._scope_subscriptions)
        return (
            f"SelectionState(subscriptions={subscriptions}, "
            f"days={self._day_from}..{self._day_to}, picks={picked}, version={self.version})"
        )
