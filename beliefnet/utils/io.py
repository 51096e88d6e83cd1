#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
输入输出工具
"""
import os
import yaml
from typing import Dict, Any

from beliefnet.utils.config import ensure_dir


def save_metadata(metadata: Dict[str, Any], output_path: str) -> None:
    """
    保存元数据到YAML文件

    Args:
        metadata: 元数据字典
        output_path: 输出路径
    """
    ensure_dir(os.path.dirname(output_path))
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(metadata, f, allow_unicode=True, default_flow_style=False, sort_keys=False)


def load_metadata(input_path: str) -> Dict[str, Any]:
    """
    读取YAML元数据

    Args:
        input_path: 文件路径

    Returns:
        元数据字典
    """
    with open(input_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}
