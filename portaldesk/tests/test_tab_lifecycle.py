#!/usr/bin/env python3
"""
标签页生命周期管理器测试
"""

import unittest
from dataclasses import FrozenInstanceError

from portaldesk.base.workspace import serialize_state
from portaldesk.workspace.manager.tab_lifecycle import TabLifecycleManager


class FakeClock:
    """每次调用前进一秒的可控时钟"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


class MemoryStore:
    """内存持久化协作者"""

    def __init__(self, data=None):
        self.data = data
        self.saves = 0

    def load(self):
        return self.data

    def save(self, data):
        self.saves += 1
        self.data = data


class FailingStore:
    def load(self):
        raise OSError("disk unavailable")

    def save(self, data):
        raise OSError("disk unavailable")


def make_manager(**kwargs) -> TabLifecycleManager:
    kwargs.setdefault("clock", FakeClock())
    return TabLifecycleManager(**kwargs)


def assert_invariants(test: unittest.TestCase, manager: TabLifecycleManager):
    """每次操作后都必须成立的结构约束"""
    state = manager.state
    test.assertEqual(set(state.tabs), set(state.tab_order))
    test.assertEqual(len(state.tab_order), len(set(state.tab_order)))
    test.assertLessEqual(len(state.tab_order), manager.max_tabs)
    test.assertLessEqual(len(state.history), manager.history_limit)

    active = [tab.id for tab in state.tabs.values() if tab.is_active]
    test.assertLessEqual(len(active), 1)
    if state.active_tab_id is None:
        test.assertEqual(active, [])
    else:
        test.assertEqual(active, [state.active_tab_id])

    for index, tab_id in enumerate(state.tab_order):
        test.assertEqual(state.tabs[tab_id].order, index)


def assert_empty(test: unittest.TestCase, manager: TabLifecycleManager):
    test.assertEqual(dict(manager.tabs), {})
    test.assertEqual(manager.tab_order, ())
    test.assertEqual(manager.history, ())
    test.assertIsNone(manager.active_tab_id)


class TestOpenTab(unittest.TestCase):
    """打开标签页测试"""

    def test_open_new_tab_becomes_active(self):
        """测试新标签页成为激活标签页"""
        manager = make_manager()
        manager.open_tab("orders", "Orders", {"filter": "open"})

        self.assertEqual(manager.active_tab_id, "orders")
        self.assertEqual(manager.tab_order, ("orders",))
        self.assertEqual(manager.history, ("orders",))
        tab = manager.get_tab("orders")
        self.assertTrue(tab.is_active)
        self.assertEqual(tab.title, "Orders")
        self.assertEqual(tab.metadata["filter"], "open")
        assert_invariants(self, manager)

    def test_reopen_existing_tab_does_not_duplicate(self):
        """测试重复打开只重新激活"""
        manager = make_manager()
        manager.open_tab("orders", "Orders")
        manager.open_tab("customers", "Customers")
        manager.toggle_minimize("orders")

        manager.open_tab("orders", "Orders again")

        self.assertEqual(manager.tab_order, ("orders", "customers"))
        self.assertEqual(manager.active_tab_id, "orders")
        self.assertEqual(manager.history, ("customers", "orders"))
        self.assertFalse(manager.get_tab("orders").is_minimized)
        # 标题不被重复打开覆盖
        self.assertEqual(manager.get_tab("orders").title, "Orders")
        assert_invariants(self, manager)

    def test_evicts_least_recently_accessed(self):
        """测试达到上限时淘汰最久未访问的标签页"""
        closed = []
        manager = make_manager(max_tabs=3, on_tab_close=closed.append)
        for tab_id in ("a", "b", "c"):
            manager.open_tab(tab_id, tab_id.upper())
        manager.activate_tab("a")

        manager.open_tab("d", "D")

        self.assertEqual(manager.tab_order, ("a", "c", "d"))
        self.assertFalse(manager.has_tab("b"))
        self.assertEqual(closed, ["b"])
        self.assertEqual(manager.active_tab_id, "d")
        assert_invariants(self, manager)

    def test_pinned_tab_is_never_evicted(self):
        """测试固定标签页不参与淘汰"""
        manager = make_manager(max_tabs=2)
        manager.open_tab("a", "A")
        manager.open_tab("b", "B")
        manager.toggle_pin("a")

        manager.open_tab("c", "C")

        self.assertEqual(manager.tab_order, ("a", "c"))
        self.assertTrue(manager.get_tab("a").is_pinned)
        assert_invariants(self, manager)

    def test_eviction_tie_breaks_on_tab_order(self):
        """测试访问时间相同时淘汰 tab_order 中靠前的标签页"""
        closed = []
        manager = make_manager(max_tabs=3, clock=lambda: 5.0, on_tab_close=closed.append)
        for tab_id in ("a", "b", "c"):
            manager.open_tab(tab_id, tab_id.upper())
        manager.reorder_tabs(["b", "a", "c"])
        self.assertEqual({tab.last_accessed_at for tab in manager.tabs.values()}, {5.0})

        manager.open_tab("d", "D")

        self.assertEqual(closed, ["b"])
        self.assertEqual(manager.tab_order, ("a", "c", "d"))
        assert_invariants(self, manager)

    def test_evicted_id_stays_in_history_but_is_skipped(self):
        """测试被淘汰的ID留在历史中，选择后继者时被跳过"""
        manager = make_manager(max_tabs=3)
        manager.open_tab("p", "P")
        manager.toggle_pin("p")
        manager.open_tab("q", "Q")
        manager.toggle_pin("q")
        manager.open_tab("x", "X")

        # 只有 x 未固定，打开 y 时被淘汰
        manager.open_tab("y", "Y")
        self.assertFalse(manager.has_tab("x"))
        self.assertEqual(manager.history, ("p", "q", "x", "y"))

        manager.close_tab("y")

        self.assertEqual(manager.active_tab_id, "q")
        self.assertEqual(manager.history, ("p", "q", "x"))
        assert_invariants(self, manager)

    def test_open_ignored_when_all_tabs_pinned(self):
        """测试全部固定且已满时忽略打开"""
        store = MemoryStore()
        manager = make_manager(max_tabs=2, state_store=store)
        manager.open_tab("a", "A")
        manager.open_tab("b", "B")
        manager.toggle_pin("a")
        manager.toggle_pin("b")
        before = manager.state
        saves = store.saves

        manager.open_tab("c", "C")

        self.assertIs(manager.state, before)
        self.assertEqual(store.saves, saves)
        self.assertFalse(manager.has_tab("c"))

    def test_history_is_bounded(self):
        """测试访问历史长度受限"""
        manager = make_manager(history_limit=3)
        for tab_id in ("a", "b", "c", "d", "e"):
            manager.open_tab(tab_id, tab_id)

        self.assertEqual(manager.history, ("c", "d", "e"))
        assert_invariants(self, manager)

    def test_default_history_cap(self):
        """测试默认历史上限为50且最后一项为最近访问"""
        manager = make_manager(max_tabs=100)
        for index in range(60):
            manager.open_tab(f"orders:{index}", f"Order {index}")
        manager.activate_tab("orders:3")

        self.assertEqual(len(manager.history), 50)
        self.assertEqual(manager.history[-1], "orders:3")
        assert_invariants(self, manager)

    def test_invalid_limits_raise(self):
        """测试非法容量参数"""
        with self.assertRaises(ValueError):
            TabLifecycleManager(max_tabs=0)
        with self.assertRaises(ValueError):
            TabLifecycleManager(history_limit=0)


class TestCloseTab(unittest.TestCase):
    """关闭标签页测试"""

    def setUp(self):
        self.manager = make_manager()
        for tab_id in ("a", "b", "c"):
            self.manager.open_tab(tab_id, tab_id.upper())

    def test_close_active_uses_history(self):
        """测试关闭激活标签页时按访问历史选择后继者"""
        self.manager.activate_tab("a")
        self.manager.activate_tab("b")

        self.manager.close_tab("b")

        # 历史为 c, a, b；关闭 b 后回到 a，而不是顺序上相邻的 c
        self.assertEqual(self.manager.active_tab_id, "a")
        self.assertNotIn("b", self.manager.history)
        assert_invariants(self, self.manager)

    def test_close_inactive_keeps_active(self):
        """测试关闭非激活标签页不改变激活状态"""
        self.manager.close_tab("a")

        self.assertEqual(self.manager.active_tab_id, "c")
        self.assertEqual(self.manager.tab_order, ("b", "c"))
        self.assertEqual(self.manager.get_tab("b").order, 0)
        assert_invariants(self, self.manager)

    def test_close_pinned_is_ignored(self):
        """测试固定标签页不能关闭"""
        self.manager.toggle_pin("c")
        before = self.manager.state

        self.manager.close_tab("c")

        self.assertIs(self.manager.state, before)
        self.assertFalse(self.manager.can_close("c"))

    def test_close_unknown_is_ignored(self):
        """测试关闭不存在的标签页"""
        before = self.manager.state
        self.manager.close_tab("missing")
        self.assertIs(self.manager.state, before)

    def test_close_last_tab_clears_active(self):
        """测试关闭最后一个标签页"""
        for tab_id in ("a", "b", "c"):
            self.manager.close_tab(tab_id)

        self.assertIsNone(self.manager.active_tab_id)
        self.assertEqual(len(self.manager.state), 0)
        self.assertEqual(self.manager.history, ())
        assert_invariants(self, self.manager)

    def test_close_all_keeps_pinned_and_excepted(self):
        """测试批量关闭保留固定标签页和指定标签页"""
        closed = []
        manager = make_manager(on_tab_close=closed.append)
        for tab_id in ("a", "b", "c", "d"):
            manager.open_tab(tab_id, tab_id)
        manager.toggle_pin("b")

        manager.close_all_tabs(except_id="d")

        self.assertEqual(manager.tab_order, ("b", "d"))
        self.assertEqual(manager.active_tab_id, "d")
        self.assertEqual(manager.history, ("d",))
        self.assertEqual(closed, ["a", "c"])
        assert_invariants(self, manager)

    def test_close_all_without_except_activates_first_pinned(self):
        """测试批量关闭后激活第一个固定标签页"""
        self.manager.toggle_pin("b")

        self.manager.close_all_tabs()

        self.assertEqual(self.manager.tab_order, ("b",))
        self.assertEqual(self.manager.active_tab_id, "b")
        self.assertEqual(self.manager.history, ())
        assert_invariants(self, self.manager)

    def test_force_close_all_includes_pinned(self):
        """测试强制关闭全部标签页"""
        closed = []
        manager = make_manager(on_tab_close=closed.append)
        manager.open_tab("a", "A")
        manager.open_tab("b", "B")
        manager.toggle_pin("a")

        manager.force_close_all_tabs()

        assert_empty(self, manager)
        self.assertEqual(closed, ["a", "b"])


class TestActivationAndFlags(unittest.TestCase):
    """激活、最小化、固定、排序测试"""

    def setUp(self):
        self.manager = make_manager()
        for tab_id in ("a", "b", "c"):
            self.manager.open_tab(tab_id, tab_id.upper())

    def test_activate_restores_minimized_tab(self):
        """测试激活会取消最小化并记录历史"""
        self.manager.toggle_minimize("a")
        self.manager.activate_tab("a")

        self.assertEqual(self.manager.active_tab_id, "a")
        self.assertFalse(self.manager.get_tab("a").is_minimized)
        self.assertEqual(self.manager.history[-1], "a")
        assert_invariants(self, self.manager)

    def test_activate_unknown_is_ignored(self):
        before = self.manager.state
        self.manager.activate_tab("missing")
        self.assertIs(self.manager.state, before)

    def test_minimize_active_hands_over_to_first_visible(self):
        """测试最小化激活标签页后激活第一个未最小化的标签页"""
        history = self.manager.history

        self.manager.toggle_minimize("c")

        self.assertEqual(self.manager.active_tab_id, "a")
        self.assertTrue(self.manager.get_tab("c").is_minimized)
        self.assertEqual([tab.id for tab in self.manager.visible_tabs], ["a", "b"])
        self.assertEqual([tab.id for tab in self.manager.minimized_tabs], ["c"])
        self.assertEqual(self.manager.history, history)
        assert_invariants(self, self.manager)

    def test_restore_makes_tab_active(self):
        """测试还原最小化标签页会将其激活"""
        stamp = self.manager.get_tab("c").last_accessed_at
        self.manager.toggle_minimize("c")
        self.manager.toggle_minimize("c")

        self.assertEqual(self.manager.active_tab_id, "c")
        self.assertFalse(self.manager.get_tab("c").is_minimized)
        self.assertEqual(self.manager.get_tab("c").last_accessed_at, stamp)
        assert_invariants(self, self.manager)

    def test_minimize_only_visible_tab_clears_active(self):
        """测试最小化唯一可见标签页后没有激活标签页"""
        self.manager.toggle_minimize("a")
        self.manager.toggle_minimize("b")
        self.manager.toggle_minimize("c")

        self.assertIsNone(self.manager.active_tab_id)
        self.assertIsNone(self.manager.active_tab)
        self.assertEqual(self.manager.visible_tabs, ())
        assert_invariants(self, self.manager)

    def test_minimize_inactive_keeps_active(self):
        self.manager.toggle_minimize("a")
        self.assertEqual(self.manager.active_tab_id, "c")

    def test_toggle_pin(self):
        """测试固定/取消固定"""
        self.manager.toggle_pin("b")
        self.assertEqual([tab.id for tab in self.manager.pinned_tabs], ["b"])
        self.manager.toggle_pin("b")
        self.assertEqual(self.manager.pinned_tabs, ())

    def test_reorder_valid_permutation(self):
        """测试合法排序"""
        self.manager.reorder_tabs(["c", "a", "b"])

        self.assertEqual(self.manager.tab_order, ("c", "a", "b"))
        self.assertEqual(self.manager.get_tab("c").order, 0)
        self.assertEqual(self.manager.active_tab_id, "c")
        assert_invariants(self, self.manager)

    def test_reorder_invalid_is_ignored(self):
        """测试非法排序被忽略"""
        before = self.manager.state
        for order in (["a", "b"], ["a", "a", "b"], ["a", "b", "x"], ["a", "b", "c", "d"]):
            self.manager.reorder_tabs(order)
            self.assertIs(self.manager.state, before)

    def test_toggle_tab_navigation(self):
        """测试导航切换：打开、激活、关闭"""
        manager = make_manager()
        manager.toggle_tab("orders", "Orders")
        self.assertEqual(manager.active_tab_id, "orders")

        manager.toggle_tab("customers", "Customers")
        manager.toggle_tab("orders", "Orders")
        self.assertEqual(manager.active_tab_id, "orders")
        self.assertEqual(len(manager.state), 2)

        manager.toggle_tab("orders", "Orders")
        self.assertFalse(manager.has_tab("orders"))
        self.assertEqual(manager.active_tab_id, "customers")

    def test_timestamps_never_decrease(self):
        """测试时钟回拨时访问时间仍单调不减"""
        times = iter([10.0, 5.0, 3.0])
        manager = TabLifecycleManager(clock=lambda: next(times))
        manager.open_tab("a", "A")
        manager.open_tab("b", "B")
        manager.activate_tab("a")

        self.assertGreaterEqual(manager.get_tab("b").last_accessed_at, 10.0)
        self.assertGreaterEqual(manager.get_tab("a").last_accessed_at,
                                manager.get_tab("b").last_accessed_at)


class TestSnapshotsAndNotification(unittest.TestCase):
    """快照与通知测试"""

    def test_snapshots_are_immutable(self):
        """测试旧快照不受后续操作影响"""
        manager = make_manager()
        manager.open_tab("a", "A")
        snapshot = manager.state

        manager.open_tab("b", "B")
        manager.toggle_pin("a")

        self.assertEqual(snapshot.tab_order, ("a",))
        self.assertFalse(snapshot.tabs["a"].is_pinned)
        with self.assertRaises(TypeError):
            snapshot.tabs["x"] = None
        with self.assertRaises(FrozenInstanceError):
            snapshot.tabs["a"].title = "changed"

    def test_callbacks_and_listeners_order(self):
        """测试回调与订阅者调用顺序"""
        events = []
        manager = make_manager(
            max_tabs=1,
            on_tab_open=lambda tab_id: events.append(f"open:{tab_id}"),
            on_tab_close=lambda tab_id: events.append(f"close:{tab_id}"),
            on_tab_change=lambda tab_id: events.append(f"change:{tab_id}"),
        )
        manager.subscribe(lambda new, prev: events.append(f"listener:{new.active_tab_id}"))

        manager.open_tab("a", "A")
        manager.open_tab("b", "B")

        self.assertEqual(events, [
            "open:a", "change:a", "listener:a",
            "close:a", "open:b", "change:b", "listener:b",
        ])

    def test_listener_receives_new_and_previous(self):
        received = []
        manager = make_manager()
        manager.subscribe(lambda new, prev: received.append((new, prev)))
        first = manager.state

        manager.open_tab("a", "A")

        self.assertIs(received[0][1], first)
        self.assertIs(received[0][0], manager.state)

    def test_failing_callback_does_not_break_commit(self):
        """测试回调异常不影响状态提交"""
        seen = []

        def broken(tab_id):
            raise RuntimeError("boom")

        manager = make_manager(on_tab_open=broken)
        manager.subscribe(lambda new, prev: seen.append(new.active_tab_id))

        manager.open_tab("a", "A")

        self.assertEqual(manager.active_tab_id, "a")
        self.assertEqual(seen, ["a"])

    def test_unsubscribe(self):
        seen = []
        listener = lambda new, prev: seen.append(new)
        manager = make_manager()
        manager.subscribe(listener)
        manager.unsubscribe(listener)

        manager.open_tab("a", "A")

        self.assertEqual(seen, [])


class TestPersistence(unittest.TestCase):
    """持久化与恢复测试"""

    def test_each_commit_is_saved(self):
        """测试每次提交后保存快照"""
        store = MemoryStore()
        manager = make_manager(state_store=store)
        manager.open_tab("a", "A")
        manager.open_tab("b", "B")

        self.assertEqual(store.saves, 2)
        self.assertEqual(store.data["tab_order"], ["a", "b"])
        self.assertEqual(store.data["active_tab_id"], "b")
        self.assertEqual(store.data["tabs"][0][0], "a")

    def test_save_failure_keeps_state(self):
        """测试保存失败不影响内存状态"""
        manager = make_manager(state_store=FailingStore())
        manager.open_tab("a", "A")
        self.assertEqual(manager.active_tab_id, "a")

    def test_rehydrate_round_trip(self):
        """测试从保存的快照恢复"""
        store = MemoryStore()
        first = make_manager(state_store=store)
        first.open_tab("orders:1042", "Order #1042", {"source": "search"})
        first.open_tab("products", "Products")
        first.toggle_pin("orders:1042")
        first.activate_tab("orders:1042")

        second = make_manager(state_store=store)

        self.assertEqual(second.tab_order, first.tab_order)
        self.assertEqual(second.active_tab_id, "orders:1042")
        self.assertEqual(second.history, first.history)
        self.assertTrue(second.get_tab("orders:1042").is_pinned)
        self.assertEqual(second.get_tab("orders:1042").metadata["source"], "search")
        assert_invariants(self, second)

    def test_rehydrate_normalizes_snapshot(self):
        """测试恢复时修正无效的快照"""
        data = {
            "version": "3",
            "save_time": "2026-01-01T00:00:00",
            "tabs": [
                ["a", {"id": "a", "title": "A", "last_accessed_at": 1}],
                ["b", {"id": "b", "title": "B", "last_accessed_at": 2, "is_active": True}],
                ["c", {"id": "c", "title": "C", "last_accessed_at": 3, "is_active": True}],
            ],
            "active_tab_id": "gone",
            "tab_order": ["a", "b", "c"],
            "history": ["a", "gone", "b"],
        }
        manager = make_manager(max_tabs=2, state_store=MemoryStore(data))

        self.assertEqual(manager.tab_order, ("b", "c"))
        self.assertEqual(manager.active_tab_id, "b")
        self.assertEqual(manager.history, ("b",))
        self.assertFalse(manager.get_tab("c").is_active)
        assert_invariants(self, manager)

    def test_rehydrate_invalid_data_starts_empty(self):
        """测试快照无效时以空状态启动"""
        for data in ({"tabs": "nope"}, {"tabs": [["a", {"id": "b"}]]}, "garbage"):
            manager = make_manager(state_store=MemoryStore(data))
            assert_empty(self, manager)

    def test_rehydrate_load_failure_starts_empty(self):
        manager = make_manager(state_store=FailingStore())
        assert_empty(self, manager)

    def test_serialized_state_is_restorable_after_clock_reset(self):
        """测试恢复后新打开的标签页时间戳不早于已有标签页"""
        store = MemoryStore()
        first = make_manager(state_store=store, clock=FakeClock(100.0))
        first.open_tab("a", "A")

        second = make_manager(state_store=MemoryStore(serialize_state(first.state)))
        second.open_tab("b", "B")

        self.assertGreaterEqual(second.get_tab("b").last_accessed_at,
                                second.get_tab("a").last_accessed_at)


if __name__ == '__main__':
    unittest.main()
