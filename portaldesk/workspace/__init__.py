"""
工作区模块

manager 子包包含与界面无关的标签页生命周期、持久化和挂载控制逻辑，
workspace_app 为基于Textual的宿主界面。
"""

from .manager import (
    MountController,
    MountPlan,
    TabLifecycleManager,
    TabStateManager,
    ViewRegistry,
    default_view_registry,
)

__all__ = [
    "MountController",
    "MountPlan",
    "TabLifecycleManager",
    "TabStateManager",
    "ViewRegistry",
    "default_view_registry",
]
