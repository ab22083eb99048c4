from .tab_lifecycle import TabLifecycleManager
from .tab_state import TabStateManager
from .view_cache import DEFAULT_FALLBACK_VIEW, MountController, MountDelta, MountPlan, ViewMount
from .view_registry import DEFAULT_VIEW_CONFIGS, ViewRegistry, default_view_registry

__all__ = [
    'TabLifecycleManager',
    'TabStateManager',
    'MountController',
    'DEFAULT_FALLBACK_VIEW',
    'MountDelta',
    'MountPlan',
    'ViewMount',
    'ViewRegistry',
    'DEFAULT_VIEW_CONFIGS',
    'default_view_registry'
]
