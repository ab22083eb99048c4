"""
工作区基础数据模型
包含标签页生命周期管理与视图挂载控制所需的数据类和枚举类型

所有状态对象均为不可变快照：每次状态转换生成新对象，读取方拿到的永远是完整的一致状态。
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple


# ==================== 常量 ====================

STATE_VERSION = "3"
DEFAULT_MAX_TABS = 10
DEFAULT_HISTORY_LIMIT = 50

# 标签页ID中类型与实例部分的分隔符，如 "orders:1042"
TAB_ID_SEPARATOR = ":"


# ==================== 枚举类型定义 ====================

class TabType(Enum):
    """标签页类型枚举（封闭集合）"""
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    ORDERS = "orders"
    COA = "coa"
    MEDIA = "media"
    REPORTS = "reports"
    SETTINGS = "settings"


class RenderState(Enum):
    """视图渲染状态枚举"""
    UNMOUNTED = "unmounted"        # 视图已销毁，不保留任何资源
    HIDDEN = "mounted_hidden"      # 视图保留内部状态，但不显示
    VISIBLE = "mounted_visible"    # 当前激活标签页的视图


class ViewConfigError(ValueError):
    """视图配置错误（缺少类型配置、未知类型等），只在构建阶段抛出"""


# ==================== 核心数据模型 ====================

@dataclass(frozen=True)
class ViewConfig:
    """单个标签页类型的视图配置"""
    title: str                                   # 标签页显示标题
    icon: str = ""                               # 标签栏图标
    keep_alive: bool = False                     # 非激活时仍保持挂载
    preload: bool = False                        # 打开后即挂载（隐藏预热）
    component: Optional[Callable[..., Any]] = None   # 视图组件工厂，由宿主界面调用


@dataclass(frozen=True)
class TabState:
    """单个打开的标签页"""
    id: str                          # 标签页唯一ID
    title: str                       # 显示标题（管理器不解析）
    is_active: bool = False          # 是否为激活标签页
    is_minimized: bool = False       # 是否已最小化
    is_pinned: bool = False          # 是否已固定（不参与淘汰与批量关闭）
    order: int = 0                   # 在 tab_order 中的位置
    last_accessed_at: float = 0.0    # 最近访问时间戳
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        """转换为可序列化字典"""
        return {
            "id": self.id,
            "title": self.title,
            "is_active": self.is_active,
            "is_minimized": self.is_minimized,
            "is_pinned": self.is_pinned,
            "order": self.order,
            "last_accessed_at": self.last_accessed_at,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TabState":
        """从字典恢复标签页，缺失字段使用默认值"""
        if not isinstance(data, Mapping) or not data.get("id"):
            raise ValueError(f"invalid tab record: {data!r}")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValueError(f"invalid tab metadata: {metadata!r}")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", data["id"])),
            is_active=bool(data.get("is_active", False)),
            is_minimized=bool(data.get("is_minimized", False)),
            is_pinned=bool(data.get("is_pinned", False)),
            order=int(data.get("order", 0)),
            last_accessed_at=float(data.get("last_accessed_at", 0.0)),
            metadata=MappingProxyType(dict(metadata)),
        )


@dataclass(frozen=True)
class RegistryState:
    """
    标签页注册表的完整状态快照

    不变量:
    - set(tabs) == set(tab_order)
    - 至多一个标签页 is_active，active_tab_id 即为该标签页ID或 None
    - history 中可能残留已关闭的ID，使用时再过滤
    """
    tabs: Mapping[str, TabState] = field(default_factory=lambda: MappingProxyType({}))
    active_tab_id: Optional[str] = None
    tab_order: Tuple[str, ...] = ()
    history: Tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "RegistryState":
        return cls()

    def ordered_tabs(self) -> Tuple[TabState, ...]:
        """按 tab_order 顺序返回标签页"""
        return tuple(self.tabs[tab_id] for tab_id in self.tab_order if tab_id in self.tabs)

    def __len__(self) -> int:
        return len(self.tab_order)


def freeze_tabs(tabs: Dict[str, TabState]) -> Mapping[str, TabState]:
    """将新构建的字典包装为只读映射"""
    return MappingProxyType(dict(tabs))


def renumber(tabs: Dict[str, TabState], tab_order: Iterable[str]) -> Dict[str, TabState]:
    """按给定顺序重写每个标签页的 order 字段"""
    result = {}
    for index, tab_id in enumerate(tab_order):
        tab = tabs[tab_id]
        result[tab_id] = tab if tab.order == index else replace(tab, order=index)
    return result


def resolve_tab_type(tab_id: str) -> Optional[TabType]:
    """
    根据标签页ID解析类型

    "orders" 与 "orders:1042" 都解析为 TabType.ORDERS；无法识别时返回 None
    """
    prefix = str(tab_id).split(TAB_ID_SEPARATOR, 1)[0]
    try:
        return TabType(prefix)
    except ValueError:
        return None


# ==================== 序列化 ====================

def serialize_state(state: RegistryState) -> Dict[str, Any]:
    """
    将注册表状态转换为可持久化的字典

    tabs 映射被展开为 [id, tab] 列表，保证顺序与可移植性
    """
    return {
        "version": STATE_VERSION,
        "save_time": datetime.now().isoformat(),
        "tabs": [[tab_id, state.tabs[tab_id].to_dict()] for tab_id in state.tab_order],
        "active_tab_id": state.active_tab_id,
        "tab_order": list(state.tab_order),
        "history": list(state.history),
    }


def deserialize_state(data: Mapping[str, Any]) -> RegistryState:
    """
    从持久化字典恢复注册表状态（未做规范化，由管理器负责修正不变量）

    Raises:
        ValueError: 数据结构无效
    """
    if not isinstance(data, Mapping):
        raise ValueError("serialized state must be a mapping")

    raw_tabs = data.get("tabs", [])
    if not isinstance(raw_tabs, list):
        raise ValueError("serialized tabs must be a list of [id, tab] pairs")

    tabs: Dict[str, TabState] = {}
    for entry in raw_tabs:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ValueError(f"invalid tab entry: {entry!r}")
        tab_id, record = entry
        tab = TabState.from_dict(record)
        if tab.id != tab_id:
            raise ValueError(f"tab id mismatch: {tab_id!r} != {tab.id!r}")
        tabs[tab.id] = tab

    tab_order = _as_id_list(data.get("tab_order", list(tabs)), "tab_order")
    history = _as_id_list(data.get("history", []), "history")

    active_tab_id = data.get("active_tab_id")
    if active_tab_id is not None and not isinstance(active_tab_id, str):
        raise ValueError(f"invalid active_tab_id: {active_tab_id!r}")

    return RegistryState(
        tabs=freeze_tabs(tabs),
        active_tab_id=active_tab_id,
        tab_order=tuple(tab_order),
        history=tuple(history),
    )


def _as_id_list(value: Any, name: str) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"serialized {name} must be a list of ids")
    return list(value)
