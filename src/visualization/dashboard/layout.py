"""
Dashboard layout configuration and HTML structure.

Contains the main layout function and component definitions
for the dashboard UI structure.
"""

import dash_bootstrap_components as dbc
from dash import dcc, html

from ...engine.datasets import BreakdownView
from ...engine.selection import SelectionState
from .components.tables import create_facet_table

VIEW_OPTIONS = [
    {"label": "Total", "value": BreakdownView.TOTAL.value},
    {"label": "Category", "value": BreakdownView.BY_CATEGORY.value},
    {"label": "Subscription", "value": BreakdownView.BY_SUBSCRIPTION.value},
    {"label": "Meter", "value": BreakdownView.BY_METER.value},
    {"label": "Resource", "value": BreakdownView.BY_RESOURCE.value},
]

# (table id, card title, detail column)
FACET_TABLES = [
    ("category-table", "Categories", "Detail"),
    ("subcategory-table", "Subcategories", "Category"),
    ("meter-table", "Meters", "Category"),
    ("resource-table", "Resources", "Resource group"),
]


def _get_plotly_config(debug_mode=False):
    """Get Plotly configuration based on environment."""
    if debug_mode:
        return {"displaylogo": False}
    return {"displaylogo": False, "modeBarButtonsToRemove": ["lasso2d", "select2d"]}


def _subscription_options(dashboard) -> list[dict]:
    return [
        {"label": f" {group.label}", "value": group.key}
        for group in dashboard.data_manager.explorer.subscriptions()
    ]


def _create_scope_controls(dashboard):
    explorer = dashboard.data_manager.explorer
    days = explorer.index.days
    options = _subscription_options(dashboard)

    return dbc.Card(
        [
            dbc.CardHeader("🔎 Scope"),
            dbc.CardBody(
                [
                    html.Small("Subscriptions", className="text-muted"),
                    dcc.Checklist(
                        id="subscription-checklist",
                        options=options,
                        value=[option["value"] for option in options],
                        labelStyle={"display": "block"},
                        className="mb-3",
                    ),
                    html.Small("Date range", className="text-muted d-block"),
                    dcc.DatePickerRange(
                        id="date-range-picker",
                        min_date_allowed=days[0] if days else None,
                        max_date_allowed=days[-1] if days else None,
                        start_date=None,
                        end_date=None,
                        display_format="YYYY-MM-DD",
                        clearable=True,
                        className="mb-3",
                    ),
                    dbc.Button(
                        "Reset scope",
                        id="btn-clear-scope",
                        color="secondary",
                        size="sm",
                        className="d-block",
                    ),
                ]
            ),
        ],
        className="mb-3",
    )


def _create_chart_controls():
    return dbc.Row(
        [
            dbc.Col(
                dbc.RadioItems(
                    id="view-selector",
                    options=VIEW_OPTIONS,
                    value=BreakdownView.BY_CATEGORY.value,
                    inline=True,
                ),
                md=7,
            ),
            dbc.Col(
                dbc.Switch(id="multi-select-switch", label="Multi-select", value=False),
                md=2,
            ),
            dbc.Col(
                dbc.Button(
                    "Clear selections",
                    id="btn-clear-picks",
                    color="warning",
                    size="sm",
                    outline=True,
                ),
                md=3,
                className="text-end",
            ),
        ],
        className="mb-2 align-items-center",
    )


def _create_facet_row():
    return dbc.Row(
        [
            dbc.Col(
                dbc.Card(
                    [
                        dbc.CardHeader(title),
                        dbc.CardBody(create_facet_table(table_id, detail_name)),
                    ],
                    className="mb-3",
                ),
                lg=6,
            )
            for table_id, title, detail_name in FACET_TABLES
        ]
    )


def create_dashboard_layout(dashboard):
    """Create the main dashboard layout."""
    plotly_config = _get_plotly_config(debug_mode=dashboard.debug)

    return dbc.Container(
        [
            dcc.Store(id="selection-store", data=SelectionState().to_dict()),
            # Header
            dbc.Row(
                dbc.Col(
                    [
                        html.H1("💰 Cost Report Explorer", className="text-center mb-1"),
                        html.P(
                            id="source-info",
                            children=dashboard.source_description,
                            className="text-center text-muted mb-4",
                        ),
                    ]
                )
            ),
            dbc.Row(
                [
                    dbc.Col(_create_scope_controls(dashboard), lg=3),
                    dbc.Col(
                        [
                            dbc.Row(id="summary-cards"),
                            html.Div(id="selection-summary", className="text-muted small mb-2"),
                            _create_chart_controls(),
                            dcc.Loading(
                                dcc.Graph(
                                    id="breakdown-chart",
                                    config=plotly_config,
                                    style={"height": "480px"},
                                ),
                                type="circle",
                            ),
                        ],
                        lg=9,
                    ),
                ],
                className="mb-4",
            ),
            _create_facet_row(),
            dbc.Row(
                dbc.Col(
                    dbc.Card(
                        [
                            dbc.CardHeader("🌳 Cost drill-down"),
                            dbc.CardBody(html.Div(id="drilldown-tree")),
                        ],
                        className="mb-4",
                    )
                )
            ),
        ],
        fluid=True,
    )
