#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
日志工具
所有模块通过setup_logger获取统一格式的日志记录器
"""
import os
import logging
from pathlib import Path
from typing import Dict

DEFAULT_LOG_DIR = os.environ.get("BELIEFNET_LOG_DIR", "logs")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# 已创建的日志记录器（用于统一调整级别）
_LOGGERS: Dict[str, logging.Logger] = {}


def setup_logger(name: str, log_dir: str = DEFAULT_LOG_DIR, level: str = "INFO") -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        log_dir: 日志目录
        level: 日志级别

    Returns:
        配置好的日志记录器
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))
    _LOGGERS[name] = logger

    # 避免重复添加处理器
    if logger.handlers:
        return logger

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler()
    file_handler = logging.FileHandler(
        os.path.join(log_dir, f"{name}.log"),
        encoding='utf-8'
    )

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (console_handler, file_handler):
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def set_log_level(level: str) -> None:
    """
    统一调整所有已创建日志记录器的级别

    Args:
        level: 日志级别（DEBUG/INFO/WARNING/ERROR）
    """
    level_value = getattr(logging, level.upper())
    for logger in _LOGGERS.values():
        logger.setLevel(level_value)
