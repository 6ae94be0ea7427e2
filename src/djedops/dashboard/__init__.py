"""Dashboard module serving the JSON API."""

from djedops.dashboard.server import create_app
from djedops.dashboard.state import DashboardServices


__all__ = [
    "DashboardServices",
    "create_app",
]
