"""
视图缓存 / 挂载控制模块

根据打开的标签页、激活标签页和各类型视图配置，决定每个标签页视图的渲染状态:
未挂载、挂载但隐藏、挂载且可见。

挂载规则: 激活标签页，或类型配置 keep_alive，或类型配置 preload（且已打开）。
本模块不持有任何状态，可对同一输入重复调用。
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ...base.workspace import RenderState, TabType, resolve_tab_type
from .view_registry import ViewRegistry

# 后备视图：dashboard 为内置控制台，或任一标签页类型名
DEFAULT_FALLBACK_VIEW = "dashboard"


@dataclass(frozen=True)
class ViewMount:
    """单个标签页视图的挂载决策"""
    tab_id: str
    tab_type: Optional[TabType]      # 无法识别的ID为 None
    render_state: RenderState
    known: bool = True               # False 时宿主应渲染“未找到”占位视图

    @property
    def is_mounted(self) -> bool:
        return self.render_state is not RenderState.UNMOUNTED

    @property
    def is_visible(self) -> bool:
        return self.render_state is RenderState.VISIBLE


@dataclass(frozen=True)
class MountDelta:
    """两次挂载计划之间需要宿主执行的变更"""
    to_mount: Tuple[str, ...] = ()
    to_unmount: Tuple[str, ...] = ()
    to_show: Tuple[str, ...] = ()
    to_hide: Tuple[str, ...] = ()
    fallback_changed: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.to_mount or self.to_unmount or self.to_show or self.to_hide or self.fallback_changed)


@dataclass(frozen=True)
class MountPlan:
    """
    一次完整的挂载计划

    entries 按标签页打开顺序排列；没有可见标签页时 show_fallback 为 True
    """
    entries: Tuple[ViewMount, ...] = ()
    show_fallback: bool = True
    fallback_view: str = DEFAULT_FALLBACK_VIEW

    def get(self, tab_id: str) -> Optional[ViewMount]:
        for entry in self.entries:
            if entry.tab_id == tab_id:
                return entry
        return None

    def state_of(self, tab_id: str) -> RenderState:
        entry = self.get(tab_id)
        return entry.render_state if entry is not None else RenderState.UNMOUNTED

    @property
    def mounted_ids(self) -> Tuple[str, ...]:
        return tuple(entry.tab_id for entry in self.entries if entry.is_mounted)

    @property
    def hidden_ids(self) -> Tuple[str, ...]:
        return tuple(entry.tab_id for entry in self.entries if entry.render_state is RenderState.HIDDEN)

    @property
    def unmounted_ids(self) -> Tuple[str, ...]:
        return tuple(entry.tab_id for entry in self.entries if not entry.is_mounted)

    @property
    def visible_id(self) -> Optional[str]:
        for entry in self.entries:
            if entry.is_visible:
                return entry.tab_id
        return None

    def without(self, tab_ids: Iterable[str]) -> "MountPlan":
        """去掉指定标签页的条目；用于标记已关闭的视图，使重新打开时重新挂载"""
        dropped = set(tab_ids)
        if not dropped:
            return self
        return MountPlan(
            entries=tuple(entry for entry in self.entries if entry.tab_id not in dropped),
            show_fallback=self.show_fallback,
            fallback_view=self.fallback_view,
        )

    def diff(self, previous: Optional["MountPlan"]) -> MountDelta:
        """计算从 previous 到当前计划的变更；previous 为 None 视为空白界面"""
        if previous is None:
            previous = MountPlan(fallback_view=self.fallback_view, show_fallback=False)

        before = set(previous.mounted_ids)
        after = self.mounted_ids

        to_mount = tuple(tab_id for tab_id in after if tab_id not in before)
        to_unmount = tuple(tab_id for tab_id in previous.mounted_ids if tab_id not in set(after))
        to_show = tuple(
            entry.tab_id for entry in self.entries
            if entry.is_visible and previous.state_of(entry.tab_id) is not RenderState.VISIBLE
        )
        to_hide = tuple(
            entry.tab_id for entry in self.entries
            if entry.render_state is RenderState.HIDDEN
            and previous.state_of(entry.tab_id) is not RenderState.HIDDEN
        )
        return MountDelta(
            to_mount=to_mount,
            to_unmount=to_unmount,
            to_show=to_show,
            to_hide=to_hide,
            fallback_changed=self.show_fallback != previous.show_fallback,
        )


class MountController:
    """
    挂载控制器
    纯函数式地由 (打开的标签页, 激活标签页, 视图配置) 计算挂载计划
    """

    def __init__(self, view_registry: ViewRegistry, fallback_view: str = DEFAULT_FALLBACK_VIEW):
        self.view_registry = view_registry
        self.fallback_view = fallback_view

    def plan(self, open_ids: Iterable[str], active_tab_id: Optional[str]) -> MountPlan:
        """
        计算挂载计划

        Args:
            open_ids: 打开的标签页ID（按显示顺序）
            active_tab_id: 激活标签页ID

        Returns:
            MountPlan: 挂载计划
        """
        ordered: List[str] = []
        for tab_id in open_ids:
            if tab_id not in ordered:
                ordered.append(tab_id)

        if not ordered:
            return MountPlan(entries=(), show_fallback=True, fallback_view=self.fallback_view)

        entries = []
        for tab_id in ordered:
            config = self.view_registry.config_for_tab(tab_id)
            keep_alive = config.keep_alive if config is not None else False
            preload = config.preload if config is not None else False

            # 所有条目都来自打开的标签页，preload 只需看类型配置
            if tab_id == active_tab_id:
                state = RenderState.VISIBLE
            elif keep_alive or preload:
                state = RenderState.HIDDEN
            else:
                state = RenderState.UNMOUNTED

            entries.append(ViewMount(
                tab_id=tab_id,
                tab_type=resolve_tab_type(tab_id),
                render_state=state,
                known=config is not None,
            ))

        has_visible = any(entry.is_visible for entry in entries)
        return MountPlan(
            entries=tuple(entries),
            show_fallback=not has_visible,
            fallback_view=self.fallback_view,
        )

    def plan_for(self, manager) -> MountPlan:
        """根据 TabLifecycleManager 的当前快照计算挂载计划"""
        state = manager.state
        return self.plan(state.tab_order, state.active_tab_id)
