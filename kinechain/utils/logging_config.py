"""
日志配置

在入口处调用一次:
    from kinechain.utils.logging_config import setup_logging
    setup_logging()
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional, Union

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None,
                  fmt: str = DEFAULT_FORMAT,
                  max_bytes: int = MAX_BYTES,
                  backup_count: int = BACKUP_COUNT) -> None:
    """
    配置根 logger。多次调用时 basicConfig 不会重复添加 handler。

    :param level: 日志级别（整数或 "DEBUG"/"INFO" 等字符串）
    :param log_file: 可选日志文件路径，使用 RotatingFileHandler 限制大小
    """
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count))
    logging.basicConfig(level=level, format=fmt, handlers=handlers)
