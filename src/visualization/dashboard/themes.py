"""
Dashboard theme configuration and styling.

Color scheme, the stacked-series palette and shared Plotly layout options.
"""


class DashboardTheme:
    """Dashboard theme configuration - Tokyonight dark theme."""

    COLORS = {
        "primary": "#7aa2f7",
        "secondary": "#bb9af7",
        "success": "#9ece6a",
        "warning": "#e0af68",
        "danger": "#f7768e",
        "info": "#7dcfff",
        "background": "#1a1b26",
        "surface": "#24283b",
        "tool": "#1e2030",
        "text": "#c0caf5",
        "text_muted": "#565f89",
        "border": "#3b4261",
        "selected": "#3d59a1",
        "other": "#565f89",
    }

    # One color per top-N series, in chart order
    SERIES_COLORS = [
        "#7aa2f7",
        "#9ece6a",
        "#e0af68",
        "#f7768e",
        "#bb9af7",
        "#7dcfff",
        "#73daca",
        "#ff9e64",
        "#c0caf5",
        "#2ac3de",
        "#c3e88d",
        "#ffc777",
        "#c099ff",
        "#4fd6be",
        "#fc7b7b",
        "#82aaff",
    ]

    TREND_COLORS = {
        "up": "#f7768e",
        "down": "#9ece6a",
        "flat": "#565f89",
    }

    LAYOUT = {
        "font_family": '-apple-system, BlinkMacSystemFont, "Segoe UI", system-ui, sans-serif',
        "font_size": 12,
        "font_color": "#c0caf5",
        "paper_bgcolor": "#1a1b26",
        "plot_bgcolor": "#1a1b26",
    }

    TABLE_STYLE = {
        "style_cell": {
            "textAlign": "left",
            "padding": "6px 10px",
            "backgroundColor": "#24283b",
            "color": "#c0caf5",
            "border": "1px solid #3b4261",
            "cursor": "pointer",
            "maxWidth": "320px",
            "overflow": "hidden",
            "textOverflow": "ellipsis",
        },
        "style_header": {
            "backgroundColor": "#1e2030",
            "color": "#7aa2f7",
            "fontWeight": "bold",
        },
    }

    @classmethod
    def series_color(cls, position: int) -> str:
        return cls.SERIES_COLORS[position % len(cls.SERIES_COLORS)]
