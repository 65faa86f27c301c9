"""
Facet tables, summary cards and the drill-down tree.

Builders take engine output (cost groups, summary cards, drill-down nodes)
and return Dash components or plain table rows.
"""

import dash_bootstrap_components as dbc
from dash import dash_table, html

from ....engine.aggregation import CostGroup
from ....engine.summary import DrilldownNode, SummaryCards, TrendDirection
from ..themes import DashboardTheme
from ..utils import format_currency, format_currency_compact

TREND_ARROWS = {
    TrendDirection.UP: "▲",
    TrendDirection.DOWN: "▼",
    TrendDirection.FLAT: "▶",
}


def facet_table_rows(groups: list[CostGroup], total: float, currency: str = "USD") -> list[dict]:
    """
    DataTable rows for a facet: label, detail, cost and share of the total.

    The group key doubles as the row id, so a clicked cell reports it
    directly as ``active_cell["row_id"]``.
    """
    rows = []
    for group in groups:
        share = (group.local / total * 100) if total else 0.0
        rows.append(
            {
                "id": group.key,
                "key": group.key,
                "label": group.label,
                "detail": group.attributes.get("category")
                or group.attributes.get("resource_group")
                or "",
                "cost": format_currency(group.local, currency),
                "share": f"{share:.1f}%",
                "pickable": group.attributes.get("pickable", True),
            }
        )
    return rows


def selected_row_styles(rows: list[dict], picked: frozenset[str]) -> list[dict]:
    """Highlight picked rows and dim rows that cannot be picked."""
    styles = []
    for position, row in enumerate(rows):
        if row["key"] in picked:
            styles.append(
                {
                    "if": {"row_index": position},
                    "backgroundColor": DashboardTheme.COLORS["selected"],
                    "fontWeight": "bold",
                }
            )
        elif not row.get("pickable", True):
            styles.append(
                {
                    "if": {"row_index": position},
                    "color": DashboardTheme.COLORS["text_muted"],
                    "cursor": "default",
                }
            )
    return styles


def create_facet_table(table_id: str, detail_name: str = "Detail") -> dash_table.DataTable:
    """Empty facet table; rows and highlight styles are filled in by callbacks."""
    return dash_table.DataTable(
        id=table_id,
        data=[],
        columns=[
            {"name": "Name", "id": "label"},
            {"name": detail_name, "id": "detail"},
            {"name": "Cost", "id": "cost"},
            {"name": "Share", "id": "share"},
        ],
        style_data_conditional=[],
        page_size=15,
        page_action="native",
        style_table={"overflowX": "auto"},
        **DashboardTheme.TABLE_STYLE,
    )


def create_summary_cards(cards: SummaryCards) -> list:
    """Summary card columns: total, subscriptions, categories and trend."""
    trend_color = DashboardTheme.TREND_COLORS[cards.trend_direction.value]
    arrow = TREND_ARROWS[cards.trend_direction]

    def card(header: str, body, class_name: str = "text-primary"):
        return dbc.Col(
            dbc.Card(
                [
                    dbc.CardHeader(header),
                    dbc.CardBody(html.H4(body, className=f"{class_name} mb-0")),
                ],
                className="metric-card mb-3",
            ),
            md=3,
        )

    return [
        card("Total Cost", format_currency_compact(cards.total_local, cards.currency)),
        card("Subscriptions", str(cards.subscription_count), "text-info"),
        card("Categories", str(cards.category_count), "text-info"),
        dbc.Col(
            dbc.Card(
                [
                    dbc.CardHeader("Trend"),
                    dbc.CardBody(
                        html.H4(
                            f"{arrow} {cards.trend_percent:+.1f}%",
                            className="mb-0",
                            style={"color": trend_color},
                        )
                    ),
                ],
                className="metric-card mb-3",
            ),
            md=3,
        ),
    ]


def create_drilldown_tree(nodes: list[DrilldownNode], currency: str = "USD", open_levels: int = 1):
    """Nested collapsible list of drill-down nodes."""
    if not nodes:
        return html.P("No cost data for the current scope.", className="text-muted")
    return html.Div([_drilldown_node(node, currency, 0, open_levels) for node in nodes])


def _drilldown_node(node: DrilldownNode, currency: str, depth: int, open_levels: int):
    summary = html.Summary(
        [
            html.Span(node.label),
            html.Span(
                format_currency(node.cost_local, currency),
                className="float-end text-muted",
            ),
        ]
    )
    if not node.children:
        return html.Div(summary.children, className="ms-4 small", style={"paddingLeft": "1rem"})

    return html.Details(
        [summary]
        + [_drilldown_node(child, currency, depth + 1, open_levels) for child in node.children],
        open=depth < open_levels,
        className="ms-2",
    )
