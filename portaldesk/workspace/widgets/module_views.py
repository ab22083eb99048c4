"""
模块视图组件

ModuleView 为各业务模块的占位视图，DashboardView 为没有可见标签页时的后备视图，
NotFoundView 用于无法识别类型的标签页ID。
"""

from datetime import datetime
from typing import Optional

from textual.app import ComposeResult
from textual.containers import Container, Vertical
from textual.widgets import Label, Static

from ...base.workspace import TabType


class ModuleView(Container):
    """业务模块占位视图"""

    DEFAULT_CSS = """
    ModuleView {
        height: 1fr;
        padding: 1 2;
    }

    ModuleView .module-title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }

    ModuleView .module-meta {
        color: $text-muted;
    }
    """

    def __init__(self, tab_type: TabType, tab_id: str, title: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.tab_type = tab_type
        self.tab_id = tab_id
        self.view_title = title or tab_type.value
        self.created_at = datetime.now()
        self.meta_label = Label("", classes="module-meta")

    def compose(self) -> ComposeResult:
        yield Label(self.view_title, classes="module-title")
        yield Static(f"标签页: {self.tab_id}")
        yield self.meta_label

    def on_mount(self) -> None:
        # 挂载时间随视图保留，隐藏后重新显示不变
        self.meta_label.update(f"挂载于 {self.created_at.strftime('%H:%M:%S')}")


class DashboardView(Vertical):
    """后备视图 - 没有可见标签页时显示"""

    DEFAULT_CSS = """
    DashboardView {
        height: 1fr;
        padding: 1 2;
    }

    DashboardView .dashboard-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    def __init__(self, view_registry, **kwargs):
        super().__init__(**kwargs)
        self.view_registry = view_registry

    def compose(self) -> ComposeResult:
        yield Label("PortalDesk 控制台", classes="dashboard-title")
        lines = []
        for index, (_, config) in enumerate(self.view_registry.items(), start=1):
            lines.append(f"  [b]{index}[/b]  {config.icon} {config.title}")
        yield Static("\n".join(lines))
        yield Static(
            "\n[b]x/c[/b] 切换  [b]ctrl+w[/b] 关闭  [b]m[/b] 最小化  "
            "[b]u[/b] 还原  [b]p[/b] 固定  [b]r[/b] 重新加载  [b]K[/b] 关闭全部  [b]q[/b] 退出"
        )


class NotFoundView(Static):
    """无法识别的标签页"""

    def __init__(self, tab_id: str, **kwargs):
        super().__init__(f"未找到视图: {tab_id}", **kwargs)
        self.tab_id = tab_id
