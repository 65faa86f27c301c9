"""
Selection callbacks for the dashboard.

Translates user gestures (subscription checkboxes, date range, facet table
clicks, chart clicks and the clear buttons) into selection operations and
stores the resulting selection in the browser.
"""

import logging
from typing import Any

import dash
from dash import Input, Output, State
from dash.exceptions import PreventUpdate

from ....engine.datasets import BreakdownView, coerce_view
from ....engine.selection import PickDimension
from ....engine.session import CostExplorer
from ....providers.base import InvalidSelectionError

logger = logging.getLogger(__name__)

TABLE_DIMENSIONS = {
    "category-table": PickDimension.CATEGORY,
    "subcategory-table": PickDimension.SUBCATEGORY,
    "meter-table": PickDimension.METER,
    "resource-table": PickDimension.RESOURCE,
}

# Breakdown views whose series map onto a pick dimension
CHART_VIEW_DIMENSIONS = {
    BreakdownView.BY_CATEGORY: PickDimension.CATEGORY,
    BreakdownView.BY_METER: PickDimension.METER,
    BreakdownView.BY_RESOURCE: PickDimension.RESOURCE,
}


def _clicked_series_key(click_data: dict[str, Any] | None) -> str | None:
    points = (click_data or {}).get("points") or []
    if not points:
        return None
    key = points[0].get("customdata")
    if isinstance(key, list):
        key = key[0] if key else None
    # Synthetic series ("Other", "Total") cannot be picked
    if not key or str(key).startswith("__"):
        return None
    return str(key)


def apply_selection_event(
    explorer: CostExplorer,
    trigger: str,
    value: Any = None,
    multi: bool = False,
    view: str | None = None,
) -> bool:
    """
    Apply one user gesture to the explorer's selection.

    Args:
        explorer: Session bound to the selection being edited
        trigger: Id of the component that fired
        value: The component's new value (checklist values, (start, end) dates,
            an active cell, chart click data)
        multi: Whether the multi-select modifier is on
        view: Current breakdown view, for chart clicks

    Returns:
        Whether the selection changed
    """
    before = explorer.selection.version

    if trigger == "subscription-checklist":
        # An unchecked list shows nothing; "all costs" is the full list or the clear button
        if value:
            explorer.set_scope_subscriptions(value)
        else:
            explorer.select_no_subscriptions()
    elif trigger == "date-range-picker":
        start, end = value or (None, None)
        explorer.set_scope_day_range(start, end)
    elif trigger in TABLE_DIMENSIONS:
        if not value or value.get("row_id") is None:
            return False
        explorer.handle_facet_click(TABLE_DIMENSIONS[trigger], str(value["row_id"]), multi=multi)
    elif trigger == "breakdown-chart":
        dimension = CHART_VIEW_DIMENSIONS.get(coerce_view(view or BreakdownView.BY_CATEGORY))
        key = _clicked_series_key(value)
        if dimension is None or key is None:
            return False
        explorer.handle_facet_click(dimension, key, multi=multi)
    elif trigger == "btn-clear-picks":
        explorer.clear_picks()
    elif trigger == "btn-clear-scope":
        explorer.clear_scope()
    else:
        logger.debug(f"Ignoring selection event from {trigger}")
        return False

    return explorer.selection.version != before


def setup_selection_callbacks(dashboard):
    """Set up the callback that owns the selection store."""

    table_ids = list(TABLE_DIMENSIONS)

    @dashboard.app.callback(
        [
            Output("selection-store", "data"),
            Output("subscription-checklist", "value"),
            Output("date-range-picker", "start_date"),
            Output("date-range-picker", "end_date"),
        ]
        + [Output(table_id, "active_cell") for table_id in table_ids],
        [
            Input("subscription-checklist", "value"),
            Input("date-range-picker", "start_date"),
            Input("date-range-picker", "end_date"),
            Input("breakdown-chart", "clickData"),
            Input("btn-clear-picks", "n_clicks"),
            Input("btn-clear-scope", "n_clicks"),
        ]
        + [Input(table_id, "active_cell") for table_id in table_ids],
        [
            State("selection-store", "data"),
            State("multi-select-switch", "value"),
            State("view-selector", "value"),
        ],
        prevent_initial_call=True,
    )
    def update_selection(
        subscriptions, start_date, end_date, click_data, clear_picks, clear_scope, *rest
    ):
        """Update the stored selection from whichever control fired."""
        active_cells = rest[: len(table_ids)]
        selection_data, multi, view = rest[len(table_ids) :]
        ctx = dash.callback_context
        if not ctx.triggered:
            raise PreventUpdate
        trigger = ctx.triggered[0]["prop_id"].split(".")[0]

        values = {
            "subscription-checklist": subscriptions,
            "date-range-picker": (start_date, end_date),
            "breakdown-chart": click_data,
            **dict(zip(table_ids, active_cells)),
        }

        # Resetting a table's active cell re-fires with None
        if trigger in TABLE_DIMENSIONS and not values[trigger]:
            raise PreventUpdate

        explorer = dashboard.data_manager.session_for(selection_data)
        try:
            changed = apply_selection_event(
                explorer, trigger, values.get(trigger), multi=bool(multi), view=view
            )
        except InvalidSelectionError as e:
            logger.warning(f"Rejected selection change from {trigger}: {e}")
            raise PreventUpdate

        logger.debug(f"Selection event {trigger}: changed={changed} -> {explorer.selection!r}")

        checklist = dash.no_update
        dates = (dash.no_update, dash.no_update)
        if trigger == "btn-clear-scope":
            checklist = [group.key for group in explorer.subscriptions()]
            dates = (None, None)

        # Clear active cells so the same row can be clicked again
        cell_resets = [None if table_id == trigger else dash.no_update for table_id in table_ids]
        store = explorer.selection.to_dict() if changed else dash.no_update
        return [store, checklist, *dates] + cell_resets
