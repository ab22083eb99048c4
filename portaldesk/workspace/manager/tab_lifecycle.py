"""
TabLifecycleManager - 标签页生命周期管理模块

维护打开的标签页集合、激活标签页、显示顺序、固定/最小化标记，
以及用于在关闭激活标签页时挑选后继者的有限长度访问历史。

每个操作都是一次完整的状态转换：先由旧快照计算新快照，再在唯一的提交点替换，
调用方不会观察到部分更新的状态。对无效输入（未知ID、非法排序、关闭固定标签页、
全部固定时超出容量）一律静默忽略并记录日志。
"""

import time
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ...base.workspace import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_TABS,
    RegistryState,
    TabState,
    deserialize_state,
    freeze_tabs,
    renumber,
    serialize_state,
)
from ...utils.global_vars import get_logger


StateListener = Callable[[RegistryState, RegistryState], None]


class TabLifecycleManager:
    """
    标签页生命周期管理器

    由宿主显式创建并持有；状态只通过本类的操作修改，读取方拿到的是不可变快照。
    """

    def __init__(self,
                 max_tabs: int = DEFAULT_MAX_TABS,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 state_store: Any = None,
                 clock: Optional[Callable[[], float]] = None,
                 on_tab_change: Optional[Callable[[Optional[str]], None]] = None,
                 on_tab_open: Optional[Callable[[str], None]] = None,
                 on_tab_close: Optional[Callable[[str], None]] = None):
        """
        初始化标签页生命周期管理器

        Args:
            max_tabs: 最多同时打开的标签页数量
            history_limit: 访问历史最大长度
            state_store: 持久化协作者，需提供 load() 与 save(data)
            clock: 时间戳来源，默认 time.time
            on_tab_change: 激活标签页变化回调
            on_tab_open: 新标签页打开回调
            on_tab_close: 标签页关闭（含淘汰）回调
        """
        if max_tabs < 1:
            raise ValueError(f"max_tabs must be >= 1, got {max_tabs}")
        if history_limit < 1:
            raise ValueError(f"history_limit must be >= 1, got {history_limit}")

        self.logger = get_logger(__name__)
        self.max_tabs = max_tabs
        self.history_limit = history_limit

        self._clock = clock or time.time
        self._last_stamp = float("-inf")
        self._state_store = state_store
        self._on_tab_change = on_tab_change
        self._on_tab_open = on_tab_open
        self._on_tab_close = on_tab_close
        self._listeners: List[StateListener] = []

        self._state = self._rehydrate()

        self.logger.info(f"TabLifecycleManager 初始化完成: {len(self._state)} 个标签页, 容量 {max_tabs}")

    # ================== 只读视图 ==================

    @property
    def state(self) -> RegistryState:
        """当前状态快照"""
        return self._state

    @property
    def tabs(self) -> Mapping[str, TabState]:
        return self._state.tabs

    @property
    def active_tab_id(self) -> Optional[str]:
        return self._state.active_tab_id

    @property
    def tab_order(self) -> Tuple[str, ...]:
        return self._state.tab_order

    @property
    def history(self) -> Tuple[str, ...]:
        return self._state.history

    @property
    def open_ids(self) -> frozenset:
        return frozenset(self._state.tab_order)

    @property
    def visible_tabs(self) -> Tuple[TabState, ...]:
        return tuple(tab for tab in self._state.ordered_tabs() if not tab.is_minimized)

    @property
    def minimized_tabs(self) -> Tuple[TabState, ...]:
        return tuple(tab for tab in self._state.ordered_tabs() if tab.is_minimized)

    @property
    def pinned_tabs(self) -> Tuple[TabState, ...]:
        return tuple(tab for tab in self._state.ordered_tabs() if tab.is_pinned)

    @property
    def active_tab(self) -> Optional[TabState]:
        if self._state.active_tab_id is None:
            return None
        return self._state.tabs.get(self._state.active_tab_id)

    def has_tab(self, tab_id: str) -> bool:
        return tab_id in self._state.tabs

    def get_tab(self, tab_id: str) -> Optional[TabState]:
        return self._state.tabs.get(tab_id)

    def is_active(self, tab_id: str) -> bool:
        return self._state.active_tab_id == tab_id

    def can_close(self, tab_id: str) -> bool:
        tab = self._state.tabs.get(tab_id)
        return tab is not None and not tab.is_pinned

    # ================== 订阅 ==================

    def subscribe(self, listener: StateListener) -> None:
        """订阅状态变化，listener(new_state, previous_state) 在每次提交后调用"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ================== 标签页操作 ==================

    def open_tab(self, tab_id: str, title: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        """
        打开标签页；已打开时仅重新激活

        达到容量上限时淘汰最久未访问的非固定标签页；全部固定时忽略本次打开。
        """
        prev = self._state

        if tab_id in prev.tabs:
            tabs = dict(prev.tabs)
            tabs[tab_id] = replace(tabs[tab_id], is_minimized=False, last_accessed_at=self._now())
            self._commit(RegistryState(
                tabs=freeze_tabs(self._with_active(tabs, tab_id)),
                active_tab_id=tab_id,
                tab_order=prev.tab_order,
                history=self._push_history(prev.history, tab_id),
            ), f"重新打开 {tab_id}")
            return

        tabs = dict(prev.tabs)
        order = list(prev.tab_order)
        evicted = []
        while len(order) >= self.max_tabs:
            victim = self._select_eviction_victim(tabs, order)
            if victim is None:
                self.logger.warning(f"标签页已达上限 {self.max_tabs} 且全部固定，忽略打开: {tab_id}")
                return
            del tabs[victim]
            order.remove(victim)
            evicted.append(victim)

        order.append(tab_id)
        tabs[tab_id] = TabState(
            id=tab_id,
            title=title,
            is_active=True,
            order=len(order) - 1,
            last_accessed_at=self._now(),
            metadata=MappingProxyType(dict(metadata or {})),
        )
        tabs = renumber(self._with_active(tabs, tab_id), order)

        for victim in evicted:
            self.logger.info(f"淘汰最久未访问的标签页: {victim}")

        # 被淘汰的ID保留在历史中，使用时再过滤
        self._commit(RegistryState(
            tabs=freeze_tabs(tabs),
            active_tab_id=tab_id,
            tab_order=tuple(order),
            history=self._push_history(prev.history, tab_id),
        ), f"打开 {tab_id}", opened=[tab_id], closed=evicted)

    def close_tab(self, tab_id: str) -> None:
        """关闭标签页；固定标签页不会被关闭"""
        prev = self._state
        tab = prev.tabs.get(tab_id)
        if tab is None:
            self.logger.debug(f"关闭标签页忽略，不存在: {tab_id}")
            return
        if tab.is_pinned:
            self.logger.info(f"标签页已固定，不能关闭: {tab_id}")
            return

        tabs = {key: value for key, value in prev.tabs.items() if key != tab_id}
        order = tuple(key for key in prev.tab_order if key != tab_id)
        history = tuple(key for key in prev.history if key != tab_id)

        if prev.active_tab_id == tab_id:
            successor = self._successor_from_history(history, tabs)
            if successor is None and order:
                successor = order[0]
        else:
            successor = prev.active_tab_id

        tabs = renumber(self._with_active(tabs, successor), order)
        self._commit(RegistryState(
            tabs=freeze_tabs(tabs),
            active_tab_id=successor,
            tab_order=order,
            history=history,
        ), f"关闭 {tab_id}", closed=[tab_id])

    def activate_tab(self, tab_id: str) -> None:
        """激活标签页，同时取消最小化"""
        prev = self._state
        if tab_id not in prev.tabs or prev.active_tab_id == tab_id:
            return

        tabs = dict(prev.tabs)
        tabs[tab_id] = replace(tabs[tab_id], is_minimized=False, last_accessed_at=self._now())
        self._commit(RegistryState(
            tabs=freeze_tabs(self._with_active(tabs, tab_id)),
            active_tab_id=tab_id,
            tab_order=prev.tab_order,
            history=self._push_history(prev.history, tab_id),
        ), f"激活 {tab_id}")

    def toggle_minimize(self, tab_id: str) -> None:
        """
        最小化/还原标签页

        还原总是直接将其设为激活（不更新访问时间与历史）；
        最小化激活标签页时，激活 tab_order 中第一个未最小化的其他标签页，
        若不存在则清空激活标签页。
        """
        prev = self._state
        tab = prev.tabs.get(tab_id)
        if tab is None:
            return

        minimized = not tab.is_minimized
        tabs = dict(prev.tabs)
        tabs[tab_id] = replace(tab, is_minimized=minimized)

        if not minimized:
            active = tab_id
        elif prev.active_tab_id == tab_id:
            active = next(
                (key for key in prev.tab_order if key != tab_id and not tabs[key].is_minimized),
                None,
            )
        else:
            active = prev.active_tab_id

        self._commit(RegistryState(
            tabs=freeze_tabs(self._with_active(tabs, active)),
            active_tab_id=active,
            tab_order=prev.tab_order,
            history=prev.history,
        ), f"{'最小化' if minimized else '还原'} {tab_id}")

    def toggle_pin(self, tab_id: str) -> None:
        """固定/取消固定标签页"""
        prev = self._state
        tab = prev.tabs.get(tab_id)
        if tab is None:
            return

        tabs = dict(prev.tabs)
        tabs[tab_id] = replace(tab, is_pinned=not tab.is_pinned)
        self._commit(replace(prev, tabs=freeze_tabs(tabs)),
                     f"{'固定' if not tab.is_pinned else '取消固定'} {tab_id}")

    def reorder_tabs(self, new_order: Iterable[str]) -> None:
        """重新排序；new_order 必须是当前 tab_order 的一个排列"""
        prev = self._state
        new_order = tuple(new_order)
        if (len(new_order) != len(prev.tab_order)
                or len(set(new_order)) != len(new_order)
                or set(new_order) != set(prev.tab_order)):
            self.logger.warning(f"无效的标签页顺序，忽略: {list(new_order)}")
            return
        if new_order == prev.tab_order:
            return

        tabs = renumber(dict(prev.tabs), new_order)
        self._commit(replace(prev, tabs=freeze_tabs(tabs), tab_order=new_order), "重新排序")

    def close_all_tabs(self, except_id: Optional[str] = None) -> None:
        """关闭除固定标签页和 except_id 之外的所有标签页"""
        prev = self._state
        keep = tuple(
            key for key in prev.tab_order
            if prev.tabs[key].is_pinned or key == except_id
        )
        closed = [key for key in prev.tab_order if key not in keep]

        if except_id is not None and except_id in keep:
            active = except_id
        else:
            active = keep[0] if keep else None

        tabs = renumber(self._with_active({key: prev.tabs[key] for key in keep}, active), keep)
        self._commit(RegistryState(
            tabs=freeze_tabs(tabs),
            active_tab_id=active,
            tab_order=keep,
            history=(except_id,) if except_id in keep else (),
        ), "关闭全部标签页", closed=closed)

    def force_close_all_tabs(self) -> None:
        """无条件关闭全部标签页（包括固定标签页）"""
        prev = self._state
        if not prev.tab_order and not prev.history and prev.active_tab_id is None:
            return
        self._commit(RegistryState.empty(), "强制关闭全部标签页", closed=list(prev.tab_order))

    def toggle_tab(self, tab_id: str, title: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        """
        导航切换：未打开则打开；已打开且激活则关闭；已打开未激活则激活
        """
        if tab_id not in self._state.tabs:
            self.open_tab(tab_id, title, metadata)
        elif self._state.active_tab_id == tab_id:
            self.close_tab(tab_id)
        else:
            self.activate_tab(tab_id)

    # ================== 内部方法 ==================

    def _now(self) -> float:
        """单调不减的时间戳"""
        stamp = max(float(self._clock()), self._last_stamp)
        self._last_stamp = stamp
        return stamp

    def _push_history(self, history: Tuple[str, ...], tab_id: str) -> Tuple[str, ...]:
        pushed = tuple(key for key in history if key != tab_id) + (tab_id,)
        return pushed[-self.history_limit:]

    @staticmethod
    def _with_active(tabs: Dict[str, TabState], active_id: Optional[str]) -> Dict[str, TabState]:
        """返回 is_active 标记与 active_id 一致的新字典"""
        result = {}
        for key, tab in tabs.items():
            flag = key == active_id
            result[key] = tab if tab.is_active == flag else replace(tab, is_active=flag)
        return result

    @staticmethod
    def _select_eviction_victim(tabs: Mapping[str, TabState], order: Iterable[str]) -> Optional[str]:
        """
        选出淘汰对象：最久未访问的非固定标签页

        访问时间相同时取 tab_order 中靠前者
        """
        candidates = [tabs[key] for key in order if not tabs[key].is_pinned]
        if not candidates:
            return None
        return min(candidates, key=lambda tab: tab.last_accessed_at).id

    @staticmethod
    def _successor_from_history(history: Iterable[str], tabs: Mapping[str, TabState]) -> Optional[str]:
        for key in reversed(tuple(history)):
            if key in tabs:
                return key
        return None

    def _commit(self, new_state: RegistryState, reason: str,
                opened: Iterable[str] = (), closed: Iterable[str] = ()) -> None:
        """唯一的状态提交点：替换快照后依次通知回调、订阅者并持久化"""
        prev = self._state
        self._state = new_state
        self.logger.debug(f"状态提交: {reason} -> 激活 {new_state.active_tab_id}, 顺序 {list(new_state.tab_order)}")

        for tab_id in closed:
            self._safe_call(self._on_tab_close, tab_id)
        for tab_id in opened:
            self._safe_call(self._on_tab_open, tab_id)
        if new_state.active_tab_id != prev.active_tab_id:
            self._safe_call(self._on_tab_change, new_state.active_tab_id)

        for listener in list(self._listeners):
            self._safe_call(listener, new_state, prev)

        self._persist(new_state)

    def _safe_call(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            self.logger.error(f"标签页回调执行失败 {getattr(callback, '__name__', callback)}: {e}")

    def _persist(self, state: RegistryState) -> None:
        """持久化为提交后的附带操作，失败只记录日志"""
        if self._state_store is None:
            return
        try:
            self._state_store.save(serialize_state(state))
        except Exception as e:
            self.logger.warning(f"保存标签页状态失败: {e}")

    def _rehydrate(self) -> RegistryState:
        """从持久化快照恢复；缺失或失败时以空状态启动"""
        if self._state_store is None:
            return RegistryState.empty()

        try:
            data = self._state_store.load()
        except Exception as e:
            self.logger.warning(f"加载标签页状态失败，以空状态启动: {e}")
            return RegistryState.empty()

        if not data:
            return RegistryState.empty()

        try:
            state = deserialize_state(data)
        except (ValueError, TypeError) as e:
            self.logger.warning(f"标签页状态数据无效，以空状态启动: {e}")
            return RegistryState.empty()

        return self._normalize(state)

    def _normalize(self, state: RegistryState) -> RegistryState:
        """修正恢复快照，使其满足全部不变量"""
        order: List[str] = []
        for key in list(state.tab_order) + list(state.tabs):
            if key in state.tabs and key not in order:
                order.append(key)
        tabs = {key: state.tabs[key] for key in order}

        while len(order) > self.max_tabs:
            victim = self._select_eviction_victim(tabs, order)
            if victim is None:
                # 固定标签页超出容量（容量配置被调小），保留顺序靠前者
                victim = order[-1]
            self.logger.info(f"恢复时超出容量，移除标签页: {victim}")
            del tabs[victim]
            order.remove(victim)

        history: List[str] = []
        for key in state.history:
            if key in tabs and key not in history:
                history.append(key)
        history = history[-self.history_limit:]

        active = state.active_tab_id
        if active not in tabs or tabs[active].is_minimized:
            active = next(
                (key for key in reversed(history) if not tabs[key].is_minimized),
                None,
            )

        if tabs:
            self._last_stamp = max(tab.last_accessed_at for tab in tabs.values())

        tabs = renumber(self._with_active(tabs, active), order)
        restored = RegistryState(
            tabs=freeze_tabs(tabs),
            active_tab_id=active,
            tab_order=tuple(order),
            history=tuple(history),
        )
        self.logger.info(f"标签页状态恢复成功: {len(order)} 个标签页, 激活 {active}")
        return restored
