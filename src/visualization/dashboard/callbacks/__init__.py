"""
Dashboard callbacks organized by functionality.

Contains callback modules for:
- Selection handling (scope, facet picks, clear actions)
- Chart and summary card updates
- Facet tables and the drill-down tree
"""

from .charts import setup_chart_callbacks
from .selection import setup_selection_callbacks
from .tables import setup_table_callbacks

__all__ = ["setup_chart_callbacks", "setup_selection_callbacks", "setup_table_callbacks"]
