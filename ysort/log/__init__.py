"""日志模块

提供日志配置与获取：
- get_logger: 获取日志记录器（自动推断模块名）
- setup_logger / setup_root_logger: 配置处理器、格式和级别

使用示例:
    from ysort.log import setup_logger, get_logger

    # 打开排序引擎的调试日志
    setup_logger("ysort.sortable", level="DEBUG")

    logger = get_logger()
    logger.info("重排序完成")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    LoggingConfigProtocol,
    DEFAULT_LOG_FORMAT,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "LoggingConfigProtocol",
    "DEFAULT_LOG_FORMAT",
    "logger",
    "get_logger",
]
