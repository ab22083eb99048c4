"""
ViewBoundary - 视图隔离容器

每个挂载的标签页视图都包在一个 ViewBoundary 中。视图构建失败时只在本容器内
显示错误面板，不影响其他视图和标签页状态；宿主的 r 键重新构建当前视图。
"""

from typing import Any, Callable, List

from textual.containers import Container
from textual.widget import Widget
from textual.widgets import Static

from ...utils.global_vars import get_logger


class ViewBoundary(Container):
    """视图隔离容器"""

    DEFAULT_CSS = """
    ViewBoundary {
        height: 1fr;
    }

    ViewBoundary .view-error {
        border: round $error;
        padding: 1 2;
        color: $error;
    }
    """

    def __init__(self, tab_id: str, factory: Callable[[], Widget], **kwargs: Any):
        super().__init__(classes="view-boundary", **kwargs)
        self.tab_id = tab_id
        self.factory = factory
        self.failed = False
        self.error_message = ""
        self.logger = get_logger(__name__)

    def compose(self):
        yield from self._build()

    def _build(self) -> List[Widget]:
        try:
            view = self.factory()
            self.failed = False
            self.error_message = ""
            return [view]
        except Exception as e:
            self.failed = True
            self.error_message = str(e)
            self.logger.error(f"视图构建失败 {self.tab_id}: {e}")
            return [Static(
                f"[bold]视图加载失败[/bold]\n{e}\n\n按 [b]r[/b] 重新加载",
                classes="view-error",
            )]

    async def reload(self) -> None:
        """重新构建视图"""
        await self.remove_children()
        await self.mount(*self._build())
        self.logger.info(f"视图已重新加载: {self.tab_id}")
