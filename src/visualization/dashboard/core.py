"""
Core dashboard application and initialization.

Contains the main CostReportDashboard class: loads the cost snapshot, builds
the Dash app, and wires layout and callbacks together.
"""

import logging
from pathlib import Path

import dash
import dash_bootstrap_components as dbc

from ...config.settings import ReportConfig, get_config
from .data_manager import ReportDataManager
from .themes import DashboardTheme
from .utils import PerformanceMonitor

logger = logging.getLogger(__name__)

DASHBOARD_CSS = """
        body, .container-fluid {
            background-color: var(--background) !important;
            color: var(--text) !important;
        }
        .card, .card-body {
            background-color: var(--surface) !important;
            border-color: var(--border) !important;
            color: var(--text) !important;
        }
        .card-header {
            background-color: var(--tool) !important;
            border-bottom: 1px solid var(--border) !important;
        }
        .metric-card {
            transition: transform 0.15s ease-in-out;
        }
        .dash-table-container .dash-spreadsheet-container td.focused {
            background-color: var(--selected) !important;
        }
        details > summary {
            cursor: pointer;
            padding: 2px 0;
        }
        details > summary:hover {
            color: var(--primary);
        }
        .text-muted {
            color: var(--text-muted) !important;
        }
"""


class CostReportDashboard:
    """Main dashboard application class."""

    def __init__(
        self,
        data_manager: ReportDataManager | None = None,
        config: ReportConfig | None = None,
        source_path: str | Path | None = None,
    ):
        logger.info("🏗️ Initializing CostReportDashboard...")
        self.config = config or get_config()
        self.data_manager = data_manager or ReportDataManager(self.config)
        self.performance_monitor = PerformanceMonitor()

        if source_path is not None:
            self.data_manager.load_file(source_path)
        if not self.data_manager.is_loaded:
            raise ValueError("The dashboard needs cost data: pass source_path or a loaded data manager")

        # Dashboard configuration
        dashboard_config = self.config.dashboard
        self.host = dashboard_config.get("host", "127.0.0.1")
        self.port = int(dashboard_config.get("port", 8050))
        self.debug = bool(dashboard_config.get("debug", False))

        self.app = dash.Dash(
            __name__,
            external_stylesheets=[dbc.themes.DARKLY],
            title="Cost Report Explorer",
            suppress_callback_exceptions=False,
        )
        self.app.index_string = self._get_index_template()

        self._setup_layout()
        self._setup_callbacks()
        logger.info("🎯 Dashboard initialized successfully")

    @property
    def source_description(self) -> str:
        explorer = self.data_manager.explorer
        days = explorer.index.days
        source = self.data_manager.source_path.name if self.data_manager.source_path else "in-memory data"
        if not days:
            return f"{source}: no cost rows"
        return f"{source}: {len(explorer.rows)} line items, {days[0]} to {days[-1]} ({explorer.currency})"

    def _get_index_template(self) -> str:
        """HTML shell with the theme colors exposed as CSS variables."""
        css_vars = "\n".join(
            f"            --{name.replace('_', '-')}: {color};"
            for name, color in DashboardTheme.COLORS.items()
        )
        return (
            "<!DOCTYPE html>\n<html>\n<head>\n"
            "{%metas%}\n<title>{%title%}</title>\n{%favicon%}\n{%css%}\n"
            "<style>\n        :root {\n"
            + css_vars
            + "\n        }\n"
            + DASHBOARD_CSS
            + "</style>\n</head>\n<body>\n{%app_entry%}\n"
            "<footer>\n{%config%}\n{%scripts%}\n{%renderer%}\n</footer>\n"
            "</body>\n</html>\n"
        )

    def _setup_layout(self):
        """Set up the dashboard layout."""
        from .layout import create_dashboard_layout

        self.app.layout = create_dashboard_layout(self)

    def _setup_callbacks(self):
        """Set up all dashboard callbacks."""
        from .callbacks.charts import setup_chart_callbacks
        from .callbacks.selection import setup_selection_callbacks
        from .callbacks.tables import setup_table_callbacks

        setup_selection_callbacks(self)
        setup_chart_callbacks(self)
        setup_table_callbacks(self)

    def run(self):
        """Start the dashboard server."""
        try:
            logger.info(f"🚀 Starting dashboard on {self.host}:{self.port}")
            self.app.run(host=self.host, port=self.port, debug=self.debug)
        except Exception as e:
            logger.error(f"Failed to start dashboard: {e}")
            raise
