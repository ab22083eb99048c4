#!/usr/bin/env python3
"""
PortalDesk 工作区应用程序
基于Textual框架的多标签页管理控制台

标签页状态由 TabLifecycleManager 持有，界面只订阅其快照变化，
再由 MountController 计算挂载计划并把差异应用到视图容器上。
"""

from functools import partial
from typing import Callable, Dict, Optional, Set

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widget import Widget
from textual.widgets import Footer, Header

from ..base.workspace import RegistryState, TabType
from ..utils.global_vars import get_config_manager, get_logger
from ..utils.logger import set_log_scope
from .manager import (
    MountController,
    MountPlan,
    TabLifecycleManager,
    TabStateManager,
    ViewRegistry,
    DEFAULT_FALLBACK_VIEW,
    default_view_registry,
)
from .manager.view_cache import ViewMount
from .widgets import DashboardView, ModuleView, NotFoundView, TabStrip, ViewBoundary


class PortalDeskApp(App):
    """
    PortalDesk 主应用程序
    """

    TITLE = "PortalDesk"

    CSS = """
    #views {
        height: 1fr;
    }
    """

    # 键盘绑定定义 - 必须在类级别定义
    BINDINGS = [
        Binding("q", "quit", "退出", priority=True),
        Binding("1", "toggle_view('products')", "商品", show=False),
        Binding("2", "toggle_view('customers')", "客户", show=False),
        Binding("3", "toggle_view('orders')", "订单", show=False),
        Binding("4", "toggle_view('coa')", "COA", show=False),
        Binding("5", "toggle_view('media')", "媒体", show=False),
        Binding("6", "toggle_view('reports')", "报表", show=False),
        Binding("7", "toggle_view('settings')", "设置", show=False),
        Binding("x", "switch_tab(-1)", "上一个标签", priority=True),
        Binding("c", "switch_tab(1)", "下一个标签", priority=True),
        Binding("ctrl+w", "close_current_tab", "关闭标签页", priority=True),
        Binding("m", "toggle_minimize", "最小化"),
        Binding("u", "restore_minimized", "还原"),
        Binding("p", "toggle_pin", "固定"),
        Binding("r", "reload_view", "重新加载"),
        Binding("K", "force_close_all", "关闭全部"),
        # 多数终端无法单独发送 ctrl+shift+w，K 为等效按键
        Binding("ctrl+shift+w", "force_close_all", "关闭全部", show=False, priority=True),
    ]

    def __init__(self,
                 manager: TabLifecycleManager,
                 view_registry: Optional[ViewRegistry] = None,
                 mount_controller: Optional[MountController] = None):
        super().__init__()
        self.logger = get_logger(__name__)
        self.manager = manager
        self.view_registry = with_default_components(view_registry or default_view_registry())
        self.mount_controller = mount_controller or MountController(self.view_registry)

        self.current_plan: Optional[MountPlan] = None
        self.boundaries: Dict[str, ViewBoundary] = {}
        # 已关闭但尚未同步到界面的标签页，下次同步时先卸载
        self.closed_ids: Set[str] = set()

    def compose(self) -> ComposeResult:
        yield Header()
        yield TabStrip(self.view_registry, id="tab_strip")
        with Container(id="views"):
            yield self._build_fallback()
        yield Footer()

    async def on_mount(self) -> None:
        self.manager.subscribe(self._on_state_change)
        await self.sync_views()
        self.logger.info("PortalDesk 界面启动完成")

    def on_unmount(self) -> None:
        self.manager.unsubscribe(self._on_state_change)

    def _on_state_change(self, new_state: RegistryState, prev_state: RegistryState) -> None:
        # 关闭后又在同步前重新打开的标签页必须重建视图
        self.closed_ids.update(set(prev_state.tab_order) - set(new_state.tab_order))
        # 回调在管理器提交时同步触发，界面更新放到消息循环中串行执行
        self.call_later(self.sync_views)

    async def sync_views(self) -> None:
        """按最新快照计算挂载计划，并把与上一次计划的差异应用到界面"""
        plan = self.mount_controller.plan_for(self.manager)
        views = self.query_one("#views", Container)

        closed, self.closed_ids = self.closed_ids, set()
        for tab_id in closed:
            boundary = self.boundaries.pop(tab_id, None)
            if boundary is not None:
                await boundary.remove()
                self.logger.debug(f"卸载已关闭标签页视图: {tab_id}")

        previous = self.current_plan.without(closed) if self.current_plan is not None else None
        delta = plan.diff(previous)

        for tab_id in delta.to_unmount:
            boundary = self.boundaries.pop(tab_id, None)
            if boundary is not None:
                await boundary.remove()
                self.logger.debug(f"卸载视图: {tab_id}")

        for tab_id in delta.to_mount:
            boundary = ViewBoundary(tab_id, self._view_factory(plan.get(tab_id)))
            boundary.display = False
            self.boundaries[tab_id] = boundary
            await views.mount(boundary)
            self.logger.debug(f"挂载视图: {tab_id}")

        for tab_id in delta.to_hide:
            if tab_id in self.boundaries:
                self.boundaries[tab_id].display = False
        for tab_id in delta.to_show:
            if tab_id in self.boundaries:
                self.boundaries[tab_id].display = True

        self.query_one("#fallback_view").display = plan.show_fallback
        self.query_one("#tab_strip", TabStrip).refresh_tabs(self.manager)
        self.current_plan = plan

    def _build_fallback(self) -> Widget:
        """按配置构建后备视图：内置控制台，或某个标签页类型的视图"""
        name = self.mount_controller.fallback_view
        if name != DEFAULT_FALLBACK_VIEW:
            config = self.view_registry.config_for_tab(name)
            if config is not None and config.component is not None:
                return ViewBoundary(name, partial(config.component, name), id="fallback_view")
            self.logger.warning(f"未知的后备视图 {name}，使用控制台")
        return DashboardView(self.view_registry, id="fallback_view")

    def _view_factory(self, entry: ViewMount) -> Callable[[], Widget]:
        config = self.view_registry.config_for_tab(entry.tab_id)
        if not entry.known or config is None or config.component is None:
            return partial(NotFoundView, entry.tab_id)
        return partial(config.component, entry.tab_id)

    # ================== 动作 ==================

    def action_toggle_view(self, name: str) -> None:
        """导航切换：打开、关闭或激活对应类型的标签页"""
        tab_type = TabType(name)
        self.manager.toggle_tab(tab_type.value, self.view_registry.title_for(tab_type))

    def action_switch_tab(self, step: int) -> None:
        """在可见标签页之间循环切换（x/c键）"""
        visible = [tab.id for tab in self.manager.visible_tabs]
        if not visible:
            return
        try:
            current_index = visible.index(self.manager.active_tab_id)
        except ValueError:
            self.manager.activate_tab(visible[0])
            return
        if len(visible) <= 1:
            return
        self.manager.activate_tab(visible[(current_index + step) % len(visible)])

    def action_close_current_tab(self) -> None:
        """关闭当前标签页（Ctrl+W）"""
        tab_id = self.manager.active_tab_id
        if tab_id is None:
            return
        if not self.manager.can_close(tab_id):
            self.notify("标签页已固定，不能关闭", severity="warning")
            return
        self.manager.close_tab(tab_id)

    def action_toggle_minimize(self) -> None:
        tab_id = self.manager.active_tab_id
        if tab_id is not None:
            self.manager.toggle_minimize(tab_id)

    def action_restore_minimized(self) -> None:
        """还原 tab_order 中最后一个最小化的标签页"""
        minimized = self.manager.minimized_tabs
        if minimized:
            self.manager.toggle_minimize(minimized[-1].id)

    def action_toggle_pin(self) -> None:
        tab_id = self.manager.active_tab_id
        if tab_id is not None:
            self.manager.toggle_pin(tab_id)

    async def action_reload_view(self) -> None:
        """重新构建当前标签页视图"""
        boundary = self.boundaries.get(self.manager.active_tab_id)
        if boundary is not None:
            await boundary.reload()

    def action_force_close_all(self) -> None:
        """强制关闭全部标签页（Ctrl+Shift+W）"""
        self.manager.force_close_all_tabs()
        self.notify("已关闭全部标签页")

    async def action_quit(self) -> None:
        """退出应用动作"""
        self.manager.unsubscribe(self._on_state_change)
        self.logger.info("PortalDesk 退出")
        self.exit()


def with_default_components(view_registry: ViewRegistry) -> ViewRegistry:
    """为未配置组件的标签页类型补上 ModuleView 占位组件"""
    components = {
        tab_type: partial(ModuleView, tab_type, title=config.title)
        for tab_type, config in view_registry.items()
        if config.component is None
    }
    if not components:
        return view_registry
    return view_registry.with_components(components)


def create_app(config_manager=None,
               max_tabs: Optional[int] = None,
               persist: Optional[bool] = None,
               scope: Optional[str] = None,
               state_store=None) -> PortalDeskApp:
    """
    根据配置创建应用程序

    Args:
        config_manager: 配置管理器，默认使用全局实例
        max_tabs: 覆盖配置中的标签页上限
        persist: 覆盖配置中的持久化开关
        scope: 覆盖配置中的存储作用域
        state_store: 直接指定持久化协作者（测试用）

    Returns:
        PortalDeskApp: 应用程序实例
    """
    config_manager = config_manager or get_config_manager()
    workspace = config_manager.get_workspace_config()

    scope = scope or workspace['storage_scope']
    set_log_scope(scope)

    if persist is None:
        persist = workspace['persist_state']
    if state_store is None and persist:
        state_store = TabStateManager(
            storage_key=workspace['storage_key'],
            scope=scope,
            database_name=workspace['database_name'],
        )

    view_registry = default_view_registry().with_overrides(config_manager.load_view_overrides())

    manager = TabLifecycleManager(
        max_tabs=max_tabs or workspace['max_tabs'],
        history_limit=workspace['history_limit'],
        state_store=state_store if persist else None,
    )
    mount_controller = MountController(view_registry, fallback_view=workspace['fallback_view'])
    return PortalDeskApp(manager, view_registry, mount_controller)
