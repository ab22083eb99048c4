"""
JsonLite数据操作模块

基于jsonlite包实现的轻量级本地JSON数据库操作类
提供类似MongoDB的API接口，用于保存界面状态等本地数据
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any, Union

try:
    from jsonlite import JSONlite
except ImportError:
    raise ImportError("请先安装jsonlite包: pip install jsonlite")

from ..utils.global_vars import get_logger
from ..utils.global_vars import PATH_DATA


class JsonLiteManager:
    """
    JsonLite数据管理器

    提供轻量级的本地JSON数据库操作功能
    支持类似MongoDB的CRUD操作接口
    """

    def __init__(self, database_name: str = "portaldesk_ui_state.json",
                 data_dir: Optional[Union[str, Path]] = None):
        """
        初始化JsonLite数据管理器

        Args:
            database_name: 数据库文件名
            data_dir: 数据目录，默认使用运行时数据目录
        """
        self.logger = get_logger(__name__)
        self.database_name = database_name

        # 确保数据目录存在
        data_dir = Path(data_dir) if data_dir is not None else PATH_DATA
        os.makedirs(data_dir, exist_ok=True)
        self.db_path = data_dir / database_name

        self.db = JSONlite(str(self.db_path))

        self.logger.info(f"JsonLite数据库初始化完成: {self.db_path}")

    # ================== 基础CRUD操作 ==================

    def insert_one(self, document: Dict[str, Any]) -> str:
        """
        插入单个文档

        Args:
            document: 要插入的文档数据

        Returns:
            str: 插入文档的ID
        """
        try:
            document['created_at'] = datetime.now().isoformat()
            document['updated_at'] = datetime.now().isoformat()

            result = self.db.insert_one(document)
            self.logger.debug(f"插入文档成功: {result.inserted_id}")
            return str(result.inserted_id)

        except Exception as e:
            self.logger.error(f"插入文档失败: {e}")
            raise

    def find_one(self, filter_dict: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        查找单个文档

        Args:
            filter_dict: 查询条件

        Returns:
            Optional[Dict]: 查找到的文档，未找到返回None
        """
        try:
            return self.db.find_one(filter_dict or {})

        except Exception as e:
            self.logger.error(f"查找单个文档失败: {e}")
            raise

    def find(self, filter_dict: Optional[Dict[str, Any]] = None,
             limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        查找多个文档

        Args:
            filter_dict: 查询条件
            limit: 限制返回数量

        Returns:
            List[Dict]: 查找到的文档列表
        """
        try:
            results = list(self.db.find(filter_dict or {}))

            if limit:
                results = results[:limit]

            self.logger.debug(f"查找到 {len(results)} 个文档")
            return results

        except Exception as e:
            self.logger.error(f"查找多个文档失败: {e}")
            raise

    def update_one(self, filter_dict: Dict[str, Any],
                   update_dict: Dict[str, Any]) -> bool:
        """
        更新单个文档

        Args:
            filter_dict: 查询条件
            update_dict: 更新数据

        Returns:
            bool: 是否更新成功
        """
        try:
            if '$set' in update_dict:
                update_dict['$set']['updated_at'] = datetime.now().isoformat()
            else:
                update_dict['$set'] = {'updated_at': datetime.now().isoformat()}

            result = self.db.update_one(filter_dict, update_dict)
            success = result.modified_count > 0

            if not success:
                self.logger.debug("未找到匹配的文档进行更新")

            return success

        except Exception as e:
            self.logger.error(f"更新单个文档失败: {e}")
            raise

    def delete_one(self, filter_dict: Dict[str, Any]) -> bool:
        """
        删除单个文档

        Args:
            filter_dict: 查询条件

        Returns:
            bool: 是否删除成功
        """
        try:
            result = self.db.delete_one(filter_dict)
            success = result.deleted_count > 0

            if success:
                self.logger.debug(f"删除文档成功: 删除了 {result.deleted_count} 个文档")
            else:
                self.logger.debug("未找到匹配的文档进行删除")

            return success

        except Exception as e:
            self.logger.error(f"删除单个文档失败: {e}")
            raise

    # ================== 用户配置 ==================

    def save_user_config(self, config_key: str, config_value: Any) -> str:
        """
        保存用户配置

        Args:
            config_key: 配置键
            config_value: 配置值

        Returns:
            str: 文档ID
        """
        existing = self.find_one({
            'type': 'user_config',
            'config_key': config_key
        })

        if existing:
            self.update_one(
                {'_id': existing['_id']},
                {'$set': {'config_value': config_value}}
            )
            return str(existing['_id'])

        document = {
            'type': 'user_config',
            'config_key': config_key,
            'config_value': config_value
        }
        return self.insert_one(document)

    def get_user_config(self, config_key: str, default_value: Any = None) -> Any:
        """
        获取用户配置

        Args:
            config_key: 配置键
            default_value: 默认值

        Returns:
            Any: 配置值
        """
        result = self.find_one({
            'type': 'user_config',
            'config_key': config_key
        })

        if result:
            return result.get('config_value', default_value)
        return default_value

    def delete_user_config(self, config_key: str) -> bool:
        """删除用户配置"""
        return self.delete_one({
            'type': 'user_config',
            'config_key': config_key
        })

    # ================== 工具方法 ==================

    def count_documents(self, filter_dict: Optional[Dict[str, Any]] = None) -> int:
        """统计文档数量"""
        return len(self.find(filter_dict or {}))

