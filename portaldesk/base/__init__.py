from .workspace import (
    TabType,
    RenderState,
    ViewConfig,
    ViewConfigError,
    TabState,
    RegistryState,
    resolve_tab_type,
    serialize_state,
    deserialize_state
)

__all__ = [
    'TabType',
    'RenderState',
    'ViewConfig',
    'ViewConfigError',
    'TabState',
    'RegistryState',
    'resolve_tab_type',
    'serialize_state',
    'deserialize_state'
]
