"""Dashboard: media list, submission form and offline controls."""

from .dashboard_window import DashboardWindow
from .media_form import MediaForm

__all__ = ['DashboardWindow', 'MediaForm']
