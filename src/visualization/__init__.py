"""Visualization layer for the cost report explorer."""
