"""
Table-related callbacks for the dashboard.

Facet tables and the drill-down tree list everything available under the
current scope, so picked rows stay visible next to the ones not picked.
"""

import logging

from dash import Input, Output

from ....engine.selection import PickDimension
from ..components.tables import create_drilldown_tree, facet_table_rows, selected_row_styles

logger = logging.getLogger(__name__)

# Table id -> (group-by method name, pick dimension highlighted in it)
FACET_SOURCES = {
    "category-table": ("group_by_category", PickDimension.CATEGORY),
    "subcategory-table": ("group_by_subcategory", PickDimension.SUBCATEGORY),
    "meter-table": ("group_by_meter", PickDimension.METER),
    "resource-table": ("group_by_resource", PickDimension.RESOURCE),
}


def build_facet_tables(explorer) -> dict[str, tuple[list[dict], list[dict]]]:
    """(rows, highlight styles) per facet table, grouped over the scope rows."""
    scope = explorer.get_scope_row_ids()
    total = explorer.sum_costs(scope).local
    tables = {}
    for table_id, (method, dimension) in FACET_SOURCES.items():
        groups = getattr(explorer, method)(scope)
        rows = facet_table_rows(groups, total, explorer.currency)
        tables[table_id] = (rows, selected_row_styles(rows, explorer.selection.picks(dimension)))
    return tables


def setup_table_callbacks(dashboard):
    """Set up all table-related callbacks."""
    _setup_facet_tables_callback(dashboard)
    _setup_drilldown_callback(dashboard)


def _setup_facet_tables_callback(dashboard):
    """Set up the facet tables callback."""
    outputs = []
    for table_id in FACET_SOURCES:
        outputs.append(Output(table_id, "data"))
        outputs.append(Output(table_id, "style_data_conditional"))

    @dashboard.app.callback(outputs, [Input("selection-store", "data")])
    def update_facet_tables(selection_data):
        """Refresh facet rows and highlight the picked ones."""
        explorer = dashboard.data_manager.session_for(selection_data)
        tables = build_facet_tables(explorer)

        result = []
        for table_id in FACET_SOURCES:
            rows, styles = tables[table_id]
            result.extend([rows, styles])
        return result


def _setup_drilldown_callback(dashboard):
    """Set up the drill-down tree callback."""

    @dashboard.app.callback(
        Output("drilldown-tree", "children"),
        [Input("selection-store", "data")],
    )
    def update_drilldown(selection_data):
        """Rebuild the category -> subcategory -> meter -> resource tree."""
        explorer = dashboard.data_manager.session_for(selection_data)
        return create_drilldown_tree(explorer.drilldown(), explorer.currency)
