#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
配置工具
"""
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from beliefnet.errors import SourceUnavailableError

DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'path': None,
        'sep': ',',
        'row_limit': None,
    },
    'structure': {
        'path': 'Nodes.csv',
        'learn': 'auto',
        'ordering': None,
        'max_parents': None,
    },
    'logging': {
        'level': 'INFO',
    },
    'evaluation': {
        'weight': 1.0,
        'top_k': 5,
        'window': 10,
    },
}


def merge_config(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    递归合并配置，override中的值优先

    Args:
        base: 基础配置
        override: 覆盖配置

    Returns:
        合并后的新配置字典
    """
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = "configs/default.yaml") -> Dict[str, Any]:
    """
    加载配置文件，缺省项使用DEFAULT_CONFIG补全

    Args:
        config_path: 配置文件路径，None表示只使用默认配置

    Returns:
        配置字典

    Raises:
        SourceUnavailableError: 文件无法读取，或内容不是YAML映射
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise SourceUnavailableError(f"无法读取配置文件 {config_path}: {e}") from e
    if config is not None and not isinstance(config, dict):
        raise SourceUnavailableError(f"配置文件的内容不是映射: {config_path}")
    return merge_config(DEFAULT_CONFIG, config)


def ensure_dir(directory: str) -> None:
    """
    确保目录存在，不存在则创建

    Args:
        directory: 目录路径
    """
    if directory:  # 防止空字符串
        Path(directory).mkdir(parents=True, exist_ok=True)
