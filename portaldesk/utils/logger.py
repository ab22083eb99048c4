import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from colorama import init, Fore, Back
init(autoreset=True)

LOG_FORMAT = "%(asctime)s | %(scope)s | %(name)s | %(levelname)s | %(message)s"
FORMATTER = logging.Formatter(LOG_FORMAT)

# 同名logger只创建一次；同一日志文件只挂一个轮转句柄，避免多个句柄各自轮转同一文件
_LOGGERS = {}
_FILE_HANDLERS = {}
_DEFAULT_SCOPE = "default"


class WorkspaceScopeFilter(logging.Filter):
    """给每条日志记录标注工作区存储作用域，区分同一日志文件中不同工作区的输出"""

    def __init__(self, scope=_DEFAULT_SCOPE):
        super().__init__()
        self.scope = scope

    def filter(self, record):
        if not hasattr(record, "scope"):
            record.scope = self.scope
        return True


_scope_filter = WorkspaceScopeFilter()


def set_log_scope(scope):
    """切换之后所有日志记录的工作区作用域标注"""
    _scope_filter.scope = scope or _DEFAULT_SCOPE


class ColorFormatter(logging.Formatter):
    COLORS = {
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED + Back.WHITE,
        "DEBUG": Fore.BLUE,
        "INFO": Fore.GREEN,
        "CRITICAL": Fore.RED + Back.WHITE
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        if color:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = color + record.levelname
            record.msg = color + str(record.msg)
        return logging.Formatter.format(self, record)


def _shared_file_handler(log_file, max_bytes, backup_count):
    handler = _FILE_HANDLERS.get(log_file)
    if handler is None:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8',
            delay=True
        )
        handler.setFormatter(FORMATTER)
        handler.addFilter(_scope_filter)
        _FILE_HANDLERS[log_file] = handler
    return handler


class ColorLogger(logging.Logger):

    log_file_name   = "portaldesk.log"
    log_folder_name = ".runtime/log/"

    def __init__(self, name, app_config=None, path=None):
        """初始化ColorLogger

        Args:
            name: logger名称
            app_config: 应用配置字典，如果为None则使用默认配置
            path: 运行时根目录，日志写入其下的 .runtime/log/
        """
        if path is None:
            path = Path(__file__).parent.parent
        app_config = app_config or {}
        level_str = app_config.get('log_level', 'DEBUG')
        logging.Logger.__init__(self, name, getattr(logging, level_str, logging.DEBUG))
        self.addFilter(_scope_filter)

        if app_config.get('log_to_file', True):
            log_folder = os.path.join(path, self.log_folder_name)
            Path(log_folder).mkdir(parents=True, exist_ok=True)
            self.log_file = os.path.join(log_folder, self.log_file_name)
            self.addHandler(_shared_file_handler(
                self.log_file,
                app_config.get('log_file_max_size', 10) * 1024 * 1024,
                app_config.get('log_file_backup_count', 5),
            ))
        else:
            self.log_file = None

        # 终端界面运行时默认不向控制台输出，避免打乱画面
        if app_config.get('log_to_console', False):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(ColorFormatter(LOG_FORMAT))
            console_handler.addFilter(_scope_filter)
            self.addHandler(console_handler)

        self.propagate = False


def get_logger(logger_name, log_level=None, app_config=None, path=None):
    """获取logger实例

    Args:
        logger_name: logger名称
        log_level: 日志等级，如果为None则使用配置中的等级
        app_config: 应用配置字典，如果为None则使用默认配置
        path: 运行时根目录

    Returns:
        ColorLogger实例
    """
    logger = _LOGGERS.get(logger_name)
    if logger is None:
        logger = ColorLogger(logger_name, app_config, path)
        _LOGGERS[logger_name] = logger

    if log_level is not None:
        logger.setLevel(log_level)

    return logger
