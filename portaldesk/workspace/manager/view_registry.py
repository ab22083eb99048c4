"""Registry mapping every tab type to its view configuration.

The set of tab types is closed (``TabType``); a registry must configure all
of them, so a missing type fails when the registry is built instead of when a
tab of that type is first rendered.
"""

from __future__ import annotations

from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from ...base.workspace import TabType, ViewConfig, ViewConfigError, resolve_tab_type


# Reference configuration: only the product catalog stays warm in the background.
DEFAULT_VIEW_CONFIGS: Mapping[TabType, ViewConfig] = MappingProxyType({
    TabType.PRODUCTS: ViewConfig(title="Products", icon="📦", keep_alive=True, preload=True),
    TabType.CUSTOMERS: ViewConfig(title="Customers", icon="👥"),
    TabType.ORDERS: ViewConfig(title="Orders", icon="🧾"),
    TabType.COA: ViewConfig(title="COA Manager", icon="📄"),
    TabType.MEDIA: ViewConfig(title="Media Manager", icon="🖼"),
    TabType.REPORTS: ViewConfig(title="Reports", icon="📊"),
    TabType.SETTINGS: ViewConfig(title="Settings", icon="⚙"),
})

_OVERRIDABLE_FIELDS = {
    "title": str,
    "icon": str,
    "keep_alive": bool,
    "preload": bool,
}


class ViewRegistry:
    """Typed, read-only mapping of ``TabType`` to ``ViewConfig``.

    Usage:
        registry = ViewRegistry(DEFAULT_VIEW_CONFIGS)
        registry.get(TabType.ORDERS).keep_alive
        registry.config_for_tab("orders:1042")
    """

    def __init__(self, configs: Mapping[TabType, ViewConfig]) -> None:
        unknown = [key for key in configs if not isinstance(key, TabType)]
        if unknown:
            raise ViewConfigError(f"View config keys must be TabType members: {unknown}")

        missing = [tab_type.value for tab_type in TabType if tab_type not in configs]
        if missing:
            raise ViewConfigError(f"No view config registered for tab types: {missing}")

        for tab_type, config in configs.items():
            if not isinstance(config, ViewConfig):
                raise ViewConfigError(f"Config for {tab_type.value} is not a ViewConfig: {config!r}")

        self._configs: Mapping[TabType, ViewConfig] = MappingProxyType(dict(configs))

    def get(self, tab_type: TabType) -> ViewConfig:
        return self._configs[tab_type]

    def config_for_tab(self, tab_id: str) -> Optional[ViewConfig]:
        """Config for a tab id, or None when the id names no known tab type."""
        tab_type = resolve_tab_type(tab_id)
        if tab_type is None:
            return None
        return self._configs[tab_type]

    def title_for(self, tab_type: TabType) -> str:
        return self._configs[tab_type].title

    def list(self) -> List[TabType]:
        return list(TabType)

    def items(self):
        return [(tab_type, self._configs[tab_type]) for tab_type in TabType]

    def with_components(self, components: Mapping[TabType, Callable[..., Any]]) -> "ViewRegistry":
        """Return a registry whose configs carry the given view factories."""
        configs: Dict[TabType, ViewConfig] = dict(self._configs)
        for tab_type, component in components.items():
            if not isinstance(tab_type, TabType):
                raise ViewConfigError(f"Component key must be a TabType member: {tab_type!r}")
            configs[tab_type] = replace(configs[tab_type], component=component)
        return ViewRegistry(configs)

    def with_overrides(self, overrides: Mapping[str, Mapping[str, Any]]) -> "ViewRegistry":
        """Return a registry with per-type field overrides applied.

        ``overrides`` is keyed by tab type name (``"orders"``); only title,
        icon, keep_alive and preload may be overridden.
        """
        configs: Dict[TabType, ViewConfig] = dict(self._configs)
        for name, fields in overrides.items():
            try:
                tab_type = TabType(name)
            except ValueError:
                raise ViewConfigError(f"Unknown tab type in view overrides: {name!r}") from None

            if not isinstance(fields, Mapping):
                raise ViewConfigError(f"Overrides for {name!r} must be a mapping")

            changes = {}
            for field_name, value in fields.items():
                expected = _OVERRIDABLE_FIELDS.get(field_name)
                if expected is None:
                    raise ViewConfigError(f"Field {field_name!r} of {name!r} cannot be overridden")
                if not isinstance(value, expected):
                    raise ViewConfigError(
                        f"Override {name}.{field_name} must be {expected.__name__}, got {value!r}"
                    )
                changes[field_name] = value
            configs[tab_type] = replace(configs[tab_type], **changes)
        return ViewRegistry(configs)


def default_view_registry() -> ViewRegistry:
    return ViewRegistry(DEFAULT_VIEW_CONFIGS)


__all__ = ["ViewRegistry", "DEFAULT_VIEW_CONFIGS", "default_view_registry"]
