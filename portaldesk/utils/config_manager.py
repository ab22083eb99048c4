#!/usr/bin/env python3
"""
统一配置管理器
提供集中式配置加载、验证和管理功能
"""

import os
import configparser
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass
from datetime import datetime

import yaml

from ..base.workspace import TabType


@dataclass
class ConfigValidationResult:
    """配置验证结果"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ConfigManager:
    """
    统一配置管理器

    负责加载、验证和管理所有配置源：
    - INI配置文件
    - YAML视图配置文件
    - 环境变量
    - 程序化配置
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """初始化配置管理器"""
        self.logger = logging.getLogger("config_manager")
        self.logger.setLevel(logging.INFO)

        # 设置配置目录
        if config_dir is None:
            self.config_dir = Path(__file__).parent.parent
        else:
            self.config_dir = Path(config_dir)

        # 配置文件路径
        self.config_ini_path = self.config_dir / 'config.ini'
        self.config_template_path = self.config_dir / 'config_template.ini'

        # 配置数据存储
        self._config_data = {}
        self._env_overrides = {}

        # 默认配置
        self._default_config = self._get_default_config()

        # 加载配置
        self._load_all_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """获取默认配置"""
        return {
            'Application': {
                'loglevel': 'INFO',
                'logtofile': 'true',
                'logtoconsole': 'false',
                'logfilemaxsize': '10',
                'logfilebackupcount': '5',
                'debugmode': 'false'
            },
            'Workspace': {
                'maxtabs': '10',
                'historylimit': '50',
                'persiststate': 'true',
                'storagekey': 'portal-admin-tabs-v3',
                'storagescope': 'default',
                'databasename': 'portaldesk_ui_state.json',
                'fallbackview': 'dashboard',
                'viewconfigfile': 'view_config.yml'
            }
        }

    def _load_all_config(self):
        """加载所有配置源"""
        try:
            # 1. 加载默认配置（逐节复制，避免修改默认值）
            self._config_data = {
                section: dict(values) for section, values in self._default_config.items()
            }

            # 2. 加载INI配置文件
            self._load_ini_config()

            # 3. 加载并应用环境变量覆盖
            self._load_env_overrides()
            self._apply_env_overrides()

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}")
            raise

    def _load_ini_config(self):
        """加载INI配置文件"""
        config_path = self.config_ini_path

        # 检查配置文件是否存在
        if not config_path.exists():
            if self.config_template_path.exists():
                self.logger.warning(f"Config file not found, using template: {self.config_template_path}")
                config_path = self.config_template_path
            else:
                self.logger.info("No config file found, using default configuration")
                return

        try:
            parser = configparser.ConfigParser()
            parser.read(config_path, encoding='utf-8')

            # 将INI数据合并到配置字典
            for section_name in parser.sections():
                if section_name not in self._config_data:
                    self._config_data[section_name] = {}

                for key, value in parser[section_name].items():
                    self._config_data[section_name][key] = value

        except Exception as e:
            self.logger.error(f"Failed to load INI config from {config_path}: {e}")
            raise

    def _load_env_overrides(self):
        """加载环境变量覆盖"""
        env_mapping = {
            # Application configuration
            'APP_LOG_LEVEL': ('Application', 'loglevel'),
            'APP_LOG_TO_FILE': ('Application', 'logtofile'),
            'APP_LOG_TO_CONSOLE': ('Application', 'logtoconsole'),
            'APP_DEBUG_MODE': ('Application', 'debugmode'),
            # Workspace configuration
            'PORTAL_MAX_TABS': ('Workspace', 'maxtabs'),
            'PORTAL_HISTORY_LIMIT': ('Workspace', 'historylimit'),
            'PORTAL_PERSIST_STATE': ('Workspace', 'persiststate'),
            'PORTAL_STORAGE_SCOPE': ('Workspace', 'storagescope'),
        }

        self._env_overrides = {}
        for env_var, (section, key) in env_mapping.items():
            value = os.getenv(env_var)
            if value is not None:
                if section not in self._env_overrides:
                    self._env_overrides[section] = {}
                self._env_overrides[section][key] = value
                self.logger.info(f"Environment override: {env_var} -> [{section}].{key}")

    def _apply_env_overrides(self):
        """应用环境变量覆盖"""
        for section, overrides in self._env_overrides.items():
            if section not in self._config_data:
                self._config_data[section] = {}

            for key, value in overrides.items():
                self._config_data[section][key] = value

    def get_config(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        """获取配置值"""
        if section not in self._config_data:
            return default

        if key is None:
            return self._config_data[section]

        return self._config_data[section].get(key, default)

    def set_config(self, section: str, key: str, value: Any):
        """设置配置值"""
        if section not in self._config_data:
            self._config_data[section] = {}

        self._config_data[section][key] = str(value)
        self.logger.info(f"Config updated: [{section}].{key} = {value}")

    def validate_config(self) -> ConfigValidationResult:
        """验证配置完整性"""
        errors = []
        warnings = []

        workspace = self.get_config('Workspace', default={})

        for key in ('maxtabs', 'historylimit'):
            raw = workspace.get(key)
            try:
                value = int(raw)
                if value < 1:
                    errors.append(f"[Workspace].{key} must be >= 1, got {value}")
            except (TypeError, ValueError):
                errors.append(f"Invalid integer for [Workspace].{key}: {raw}")

        if not workspace.get('storagekey'):
            errors.append("Missing required config: [Workspace].storagekey")

        fallback = workspace.get('fallbackview', 'dashboard')
        if fallback != 'dashboard' and fallback not in {tab_type.value for tab_type in TabType}:
            errors.append(f"Unknown [Workspace].fallbackview: {fallback}")

        level = self.get_config('Application', 'loglevel', 'INFO').upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            warnings.append(f"Unknown log level: {level}, falling back to DEBUG")

        # 验证配置文件存在性
        if not self.config_ini_path.exists():
            warnings.append("Main config file does not exist, using template or defaults")

        result = ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings
        )

        if result.is_valid:
            self.logger.info("Configuration validation passed")
        else:
            self.logger.warning(f"Configuration validation failed: {len(errors)} errors, {len(warnings)} warnings")

        return result

    def save_config(self) -> bool:
        """保存配置到文件"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            parser = configparser.ConfigParser()
            for section_name, section_data in self._config_data.items():
                parser.add_section(section_name)
                for key, value in section_data.items():
                    parser[section_name][key] = str(value)

            with open(self.config_ini_path, 'w', encoding='utf-8') as f:
                parser.write(f)

            return True

        except OSError as e:
            self.logger.error(f"Failed to save configuration: {e}")
            return False

    def reload_config(self):
        """重新加载配置"""
        self._load_all_config()

    def get_application_config(self) -> Dict[str, Any]:
        """获取应用配置"""
        config = self.get_config('Application', default={})

        return {
            'log_level': config.get('loglevel', 'INFO').upper(),
            'log_to_file': config.get('logtofile', 'true').lower() == 'true',
            'log_to_console': config.get('logtoconsole', 'false').lower() == 'true',
            'log_file_max_size': int(config.get('logfilemaxsize', '10')),
            'log_file_backup_count': int(config.get('logfilebackupcount', '5')),
            'debug_mode': config.get('debugmode', 'false').lower() == 'true'
        }

    def get_workspace_config(self) -> Dict[str, Any]:
        """获取工作区（标签页）配置"""
        config = self.get_config('Workspace', default={})

        return {
            'max_tabs': int(config.get('maxtabs', '10')),
            'history_limit': int(config.get('historylimit', '50')),
            'persist_state': config.get('persiststate', 'true').lower() == 'true',
            'storage_key': config.get('storagekey', 'portal-admin-tabs-v3'),
            'storage_scope': config.get('storagescope', 'default'),
            'database_name': config.get('databasename', 'portaldesk_ui_state.json'),
            'fallback_view': config.get('fallbackview', 'dashboard'),
            'view_config_file': config.get('viewconfigfile', 'view_config.yml')
        }

    def load_view_overrides(self) -> Dict[str, Dict[str, Any]]:
        """
        读取YAML视图配置覆盖文件

        文件格式:
            products:
              keep_alive: true
              preload: true
            orders:
              title: 订单

        Returns:
            Dict: 标签页类型名 -> 覆盖字段；文件不存在时返回空字典
        """
        file_name = self.get_workspace_config()['view_config_file']
        path = self.config_dir / file_name
        if not path.exists():
            return {}

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            self.logger.warning(f"View config file is not a mapping, ignored: {path}")
            return {}

        self.logger.info(f"Loaded view overrides for {len(data)} tab types from {path}")
        return data

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要"""
        return {
            'config_dir': str(self.config_dir),
            'config_file': str(self.config_ini_path),
            'config_exists': self.config_ini_path.exists(),
            'sections': list(self._config_data.keys()),
            'env_overrides': list(self._env_overrides.keys()) if self._env_overrides else [],
            'validation': self.validate_config(),
            'last_loaded': datetime.now().isoformat()
        }
