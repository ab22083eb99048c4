"""
TabStateManager - 标签页状态持久化模块

基于JsonLiteManager实现标签页注册表快照的保存和加载
每个实例使用固定的存储键，并按作用域区分不同的管理器实例
"""

from typing import Any, Dict, Mapping, Optional

from ...modules.jsonlite_data import JsonLiteManager
from ...utils.global_vars import get_logger


class TabStateManager:
    """
    标签页状态管理器
    负责标签页快照的保存、加载和清除，供 TabLifecycleManager 作为持久化协作者使用
    """

    # 默认存储键
    TAB_STATE_CONFIG_KEY = "portal-admin-tabs-v3"

    # 快照必需的键
    REQUIRED_KEYS = ("tabs", "tab_order", "history", "save_time")

    def __init__(self, storage: Optional[JsonLiteManager] = None,
                 storage_key: str = TAB_STATE_CONFIG_KEY,
                 scope: str = "default",
                 database_name: str = "portaldesk_ui_state.json"):
        """
        初始化标签页状态管理器

        Args:
            storage: 文档存储，默认创建 JsonLiteManager
            storage_key: 存储键
            scope: 作用域，区分同一存储中的多个管理器实例
            database_name: 未提供 storage 时使用的数据库文件名
        """
        self.logger = get_logger(__name__)
        self.storage = storage if storage is not None else JsonLiteManager(database_name)
        self.config_key = f"{storage_key}:{scope}"

        self.logger.info(f"TabStateManager 初始化完成: {self.config_key}")

    def save(self, tab_state: Mapping[str, Any]) -> bool:
        """
        保存标签页快照

        Returns:
            bool: 保存是否成功
        """
        try:
            self.storage.save_user_config(self.config_key, dict(tab_state))
            self.logger.debug(f"标签页状态保存成功: {len(tab_state.get('tabs', []))} 个标签页")
            return True

        except Exception as e:
            self.logger.error(f"保存标签页状态失败: {e}")
            return False

    def load(self) -> Optional[Dict[str, Any]]:
        """
        加载标签页快照

        Returns:
            Optional[Dict]: 标签页快照，不存在或无效时返回None
        """
        try:
            tab_state = self.storage.get_user_config(self.config_key, None)
        except Exception as e:
            self.logger.error(f"加载标签页状态失败: {e}")
            return None

        if not tab_state:
            self.logger.info("没有找到保存的标签页状态")
            return None

        if not self._validate_tab_state(tab_state):
            self.logger.warning("标签页状态数据无效，跳过恢复")
            return None

        self.logger.info(f"标签页状态加载成功: {len(tab_state.get('tabs', []))} 个标签页")
        return tab_state

    def clear(self) -> bool:
        """清除保存的标签页状态"""
        try:
            if self.storage.delete_user_config(self.config_key):
                self.logger.info("已清除保存的标签页状态")
            else:
                self.logger.info("没有找到需要清除的标签页状态")
            return True

        except Exception as e:
            self.logger.error(f"清除保存的标签页状态失败: {e}")
            return False

    def _validate_tab_state(self, tab_state: Any) -> bool:
        """验证标签页快照结构"""
        if not isinstance(tab_state, dict):
            self.logger.warning("标签页状态不是字典")
            return False

        for key in self.REQUIRED_KEYS:
            if key not in tab_state:
                self.logger.warning(f"标签页状态缺少必需键: {key}")
                return False

        for key in ("tabs", "tab_order", "history"):
            if not isinstance(tab_state[key], list):
                self.logger.warning(f"标签页状态字段格式无效: {key}")
                return False

        return True

    def get_state_info(self) -> Dict[str, Any]:
        """获取状态信息"""
        tab_state = self.load()

        if tab_state:
            return {
                "has_saved_state": True,
                "config_key": self.config_key,
                "tab_count": len(tab_state.get("tabs", [])),
                "active_tab_id": tab_state.get("active_tab_id"),
                "tab_order": list(tab_state.get("tab_order", [])),
                "save_time": tab_state.get("save_time", "unknown"),
                "version": tab_state.get("version", "unknown")
            }
        return {
            "has_saved_state": False,
            "config_key": self.config_key,
            "tab_count": 0,
            "active_tab_id": None,
            "tab_order": [],
            "save_time": None,
            "version": None
        }
