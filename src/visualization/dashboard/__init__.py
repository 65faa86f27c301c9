"""
Interactive cost report dashboard.

This package provides:
- Selection callbacks that translate gestures into engine operations
- Chart, summary card, facet table and drill-down updates
- Reusable figure and table components
- Centralized theme management
"""

from .core import CostReportDashboard
from .data_manager import ReportDataManager
from .themes import DashboardTheme
from .utils import PerformanceMonitor

__all__ = [
    "CostReportDashboard",
    "DashboardTheme",
    "PerformanceMonitor",
    "ReportDataManager",
]
