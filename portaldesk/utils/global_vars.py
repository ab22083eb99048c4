from pathlib import Path

# 路径常量
HOME = Path.home()
DEV_PATH = Path(__file__).parent.parent
PORTALDESK_PATH = HOME / '.portaldesk'
if PORTALDESK_PATH.is_dir():
    PATH = PORTALDESK_PATH
else:
    PATH = DEV_PATH

PATH_RUNTIME = PATH / '.runtime'
PATH_CONFIG = PATH
PATH_DATA = PATH_RUNTIME / 'data'

# ============================================================================
# 统一配置管理入口
# ============================================================================
# 只承载配置；标签页状态由各自的 TabLifecycleManager 实例持有

_config_manager = None


def get_config_manager():
    """
    获取配置管理器实例（延迟初始化）

    Returns:
        ConfigManager: 配置管理器
    """
    global _config_manager
    if _config_manager is None:
        from .config_manager import ConfigManager
        _config_manager = ConfigManager(config_dir=PATH_CONFIG)
    return _config_manager


# ============================================================================
# 统一日志管理入口
# ============================================================================
# 所有模块必须通过此处获取logger，确保统一的日志配置

def get_logger(logger_name, log_level=None):
    """
    获取logger实例的统一入口

    Args:
        logger_name: logger名称
        log_level: 日志等级，如果为None则使用配置中的等级

    Returns:
        ColorLogger实例
    """
    from .logger import get_logger as _get_logger

    try:
        app_config = get_config_manager().get_application_config()
    except Exception:
        app_config = None

    return _get_logger(logger_name, log_level, app_config, PATH)
