from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widgets import Label


class TabStrip(Horizontal):
    """标签栏 - 显示可见标签页、固定标记和最小化数量"""

    DEFAULT_CSS = """
    TabStrip {
        height: 1;
        background: $panel;
    }

    TabStrip #tab_strip_tabs {
        width: 1fr;
    }

    TabStrip #tab_strip_status {
        width: auto;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(self, view_registry, id=None):
        super().__init__(id=id)
        self.view_registry = view_registry
        self.tabs_label = Label("", id="tab_strip_tabs")
        self.status_label = Label("", id="tab_strip_status")

    def compose(self) -> ComposeResult:
        yield self.tabs_label
        yield self.status_label

    def refresh_tabs(self, manager) -> None:
        self.tabs_label.update(self.render_tabs(manager))
        self.status_label.update(self.render_status(manager))

    def render_tabs(self, manager) -> Text:
        text = Text()
        for tab in manager.visible_tabs:
            config = self.view_registry.config_for_tab(tab.id)
            icon = f"{config.icon} " if config is not None and config.icon else ""
            pin = "📌" if tab.is_pinned else ""
            style = "bold reverse" if tab.is_active else ""
            text.append(f" {pin}{icon}{tab.title} ", style=style)
            text.append("│", style="dim")
        if not manager.visible_tabs:
            text.append(" 没有打开的标签页", style="dim")
        return text

    def render_status(self, manager) -> Text:
        minimized = len(manager.minimized_tabs)
        status = f"{len(manager.tab_order)}/{manager.max_tabs}"
        if minimized:
            status = f"最小化 {minimized} | {status}"
        return Text(status)
