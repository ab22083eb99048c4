"""
工作区界面组件
"""

from .module_views import DashboardView, ModuleView, NotFoundView
from .tab_strip import TabStrip
from .view_boundary import ViewBoundary

__all__ = ["DashboardView", "ModuleView", "NotFoundView", "TabStrip", "ViewBoundary"]
