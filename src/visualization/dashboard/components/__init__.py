"""
Reusable dashboard components: Plotly figures, facet tables and cards.
"""

from .figures import create_breakdown_figure, create_no_data_figure
from .tables import (
    create_drilldown_tree,
    create_facet_table,
    create_summary_cards,
    facet_table_rows,
    selected_row_styles,
)

__all__ = [
    "create_breakdown_figure",
    "create_drilldown_tree",
    "create_facet_table",
    "create_no_data_figure",
    "create_summary_cards",
    "facet_table_rows",
    "selected_row_styles",
]
