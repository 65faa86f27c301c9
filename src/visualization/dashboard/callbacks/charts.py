"""
Chart-related callbacks for the dashboard.

Rebuilds the stacked breakdown chart, the summary cards and the selection
summary line whenever the selection or the breakdown view changes.
"""

import logging

from dash import Input, Output, html

from ....engine.datasets import BreakdownView
from ..components.figures import create_breakdown_figure, create_no_data_figure
from ..components.tables import create_summary_cards

logger = logging.getLogger(__name__)


def describe_selection(explorer) -> str:
    """One-line description of the scope and picks for display."""
    selection = explorer.selection
    parts = []

    if selection.no_subscriptions:
        return "No subscriptions selected"

    subscriptions = selection.scope_subscriptions
    if subscriptions:
        parts.append(f"{len(subscriptions)} subscription(s)")

    day_from, day_to = selection.day_range
    if day_from or day_to:
        parts.append(f"{day_from or '…'} to {day_to or '…'}")

    for dimension, values in selection.pick_sets.items():
        if values:
            parts.append(f"{dimension.value}: {len(values)} picked")

    if not parts:
        return "Showing all costs"
    active = len(explorer.get_active_row_ids())
    return f"Filtered by {', '.join(parts)} ({active} line items)"


def setup_chart_callbacks(dashboard):
    """Set up all chart-related callbacks."""
    _setup_breakdown_chart_callback(dashboard)
    _setup_summary_callback(dashboard)


def _setup_breakdown_chart_callback(dashboard):
    """Set up the stacked breakdown chart callback."""

    @dashboard.app.callback(
        Output("breakdown-chart", "figure"),
        [Input("selection-store", "data"), Input("view-selector", "value")],
    )
    def update_breakdown_chart(selection_data, view):
        """Render the stacked breakdown chart for the active rows."""
        try:
            dashboard.performance_monitor.start_operation("breakdown_chart")
            explorer = dashboard.data_manager.session_for(selection_data)
            breakdown = explorer.breakdown(view or BreakdownView.BY_CATEGORY)
            fig = create_breakdown_figure(breakdown, explorer.currency)
            dashboard.performance_monitor.end_operation("breakdown_chart")
            return fig
        except Exception as e:
            logger.error(f"Error building breakdown chart: {e}")
            return create_no_data_figure(f"Error: {e}")


def _setup_summary_callback(dashboard):
    """Set up the summary cards callback."""

    @dashboard.app.callback(
        [Output("summary-cards", "children"), Output("selection-summary", "children")],
        [Input("selection-store", "data")],
    )
    def update_summary(selection_data):
        """Update the summary cards and selection description."""
        try:
            explorer = dashboard.data_manager.session_for(selection_data)
            return create_summary_cards(explorer.summary_cards()), describe_selection(explorer)
        except Exception as e:
            logger.error(f"Error updating summary cards: {e}")
            return [], html.Span(f"❌ Error: {e}", className="text-danger")
