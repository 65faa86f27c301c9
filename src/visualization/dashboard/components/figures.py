"""
Plotly figure builders.

Pure functions from engine output to figures, so callbacks stay thin and the
figures can be tested without a running app.
"""

import plotly.graph_objects as go

from ....engine.datasets import BreakdownDataset
from ..themes import DashboardTheme
from ..utils import CURRENCY_SYMBOLS, truncate_label


def _base_layout(**overrides) -> dict:
    layout = dict(DashboardTheme.LAYOUT)
    layout.update(overrides)
    return layout


def create_no_data_figure(message: str = "No data for the current selection", title: str = ""):
    """Empty figure with a centered message."""
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
        xanchor="center",
        yanchor="middle",
        showarrow=False,
        font=dict(size=16, color=DashboardTheme.COLORS["text_muted"]),
    )
    fig.update_layout(
        title=title,
        xaxis=dict(showgrid=False, showticklabels=False, zeroline=False),
        yaxis=dict(showgrid=False, showticklabels=False, zeroline=False),
        **_base_layout(margin={"l": 20, "r": 20, "t": 40, "b": 20}),
    )
    return fig


def create_breakdown_figure(breakdown: BreakdownDataset, currency: str = "USD"):
    """
    Stacked daily bar chart for a breakdown dataset.

    Series keep the dataset order, so "Other" is stacked on top and listed
    last in the legend.
    """
    if not breakdown.has_data or not breakdown.days:
        return create_no_data_figure(title=breakdown.title)

    symbol = CURRENCY_SYMBOLS.get(currency, "")
    fig = go.Figure()

    for position, dataset in enumerate(breakdown.datasets):
        color = DashboardTheme.COLORS["other"] if dataset.is_other else DashboardTheme.series_color(position)
        fig.add_trace(
            go.Bar(
                x=breakdown.days,
                y=dataset.values,
                name=truncate_label(dataset.label),
                customdata=[dataset.key] * len(breakdown.days),
                marker_color=color,
                hovertemplate=(
                    f"<b>{dataset.label}</b><br>"
                    "Date: %{x}<br>"
                    f"Cost: {symbol}%{{y:,.2f}}<extra></extra>"
                ),
            )
        )

    fig.update_layout(
        title=breakdown.title,
        barmode="stack",
        xaxis_title="Date",
        yaxis_title=f"Cost ({currency})",
        yaxis=dict(tickformat=",.0f", gridcolor="rgba(59,66,97,0.5)"),
        xaxis=dict(
            type="category",
            tickangle=-45,
            gridcolor="rgba(59,66,97,0.3)",
        ),
        legend=dict(
            orientation="h",
            traceorder="normal",
            yanchor="top",
            y=-0.25,
            xanchor="center",
            x=0.5,
            font=dict(size=10, color=DashboardTheme.COLORS["text"]),
        ),
        **_base_layout(margin={"l": 60, "r": 20, "t": 40, "b": 120}),
    )
    return fig
