"""
Cross-filtering and aggregation engine for interactive cost reports.

This package provides:
- Dimension indexing over normalized fact rows
- Scope/pick selection state with cross-dimension exclusivity
- Pure aggregation functions (totals, daily trend, group-bys)
- Top-N + "Other" chart dataset construction
- Summary cards and the drill-down tree
"""

from .aggregation import CostGroup, CostTotals, DailyCost
from .datasets import BreakdownDataset, BreakdownView, ChartDataset, build_breakdown
from .index import Dimension, DimensionIndex, intersect
from .selection import PickDimension, PickMode, SelectionState
from .session import CostExplorer
from .summary import DrilldownNode, SummaryCards, TrendDirection

__all__ = [
    "BreakdownDataset",
    "BreakdownView",
    "ChartDataset",
    "CostExplorer",
    "CostGroup",
    "CostTotals",
    "DailyCost",
    "Dimension",
    "DimensionIndex",
    "DrilldownNode",
    "PickDimension",
    "PickMode",
    "SelectionState",
    "SummaryCards",
    "TrendDirection",
    "build_breakdown",
    "intersect",
]
