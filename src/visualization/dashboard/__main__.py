"""
Main entry point for the dashboard when run as a module.
Usage: python -m src.visualization.dashboard <cost-export.json|csv>
"""

import sys

from ...main import cli


def main_entry():
    """Run the ``dashboard`` CLI command with the given arguments."""
    cli(["dashboard", *sys.argv[1:]])


if __name__ == "__main__":
    main_entry()
