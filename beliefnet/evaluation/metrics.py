#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估指标
逐行推定结果的命中率与滑动窗口命中率
"""
import pandas as pd
from typing import Dict, Sequence

from beliefnet.utils.logging import setup_logger

logger = setup_logger("metrics")


def rolling_accuracy(hits: Sequence[int], window: int = 10) -> pd.Series:
    """
    滑动窗口命中率

    Args:
        hits: 逐行命中记录（1=命中, 0=未命中）
        window: 窗口大小

    Returns:
        与hits等长的Series，前window-1项使用已有的行计算
    """
    if window <= 0:
        raise ValueError(f"窗口大小必须为正: {window}")
    series = pd.Series(list(hits), dtype=float)
    return series.rolling(window=window, min_periods=1).mean()


def summarize(hits: Sequence[int], window: int = 10) -> Dict:
    """
    命中率汇总

    Args:
        hits: 逐行命中记录
        window: 滑动窗口大小

    Returns:
        指标字典
    """
    series = pd.Series(list(hits), dtype=float)
    total = int(len(series))
    if total == 0:
        logger.warning("无推定记录")
        return {'n_estimates': 0, 'hits': 0, 'accuracy': 0.0, 'final_rolling_accuracy': 0.0}

    correct = int(series.sum())
    rolling = rolling_accuracy(hits, window)
    metrics = {
        'n_estimates': total,
        'hits': correct,
        'accuracy': correct / total,
        'final_rolling_accuracy': float(rolling.iloc[-1])
    }
    logger.info(f"评估完成 - 推定数: {total}, 命中: {correct}, 命中率: {metrics['accuracy']:.4f}")
    return metrics
