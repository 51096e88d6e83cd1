#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
工具模块
"""
from beliefnet.utils.io import save_metadata, load_metadata
from beliefnet.utils.logging import setup_logger, set_log_level
from beliefnet.utils.config import load_config, merge_config, ensure_dir, DEFAULT_CONFIG

__all__ = [
    'save_metadata',
    'load_metadata',
    'setup_logger',
    'set_log_level',
    'load_config',
    'merge_config',
    'ensure_dir',
    'DEFAULT_CONFIG'
]
