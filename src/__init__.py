"""
Cost Report Explorer

Interactive cross-filtering of cloud cost exports: scope by subscription and
day range, pick categories, meters or resources, and read back totals,
trends and top-N breakdowns.
"""

__version__ = "1.0.0"
__author__ = "Cost Report Team"
