from .config_manager import ConfigManager, ConfigValidationResult
from .global_vars import get_logger, get_config_manager

__all__ = [
    'ConfigManager',
    'ConfigValidationResult',
    'get_logger',
    'get_config_manager'
]
