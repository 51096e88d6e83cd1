#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估模块
包含逐行推定（MLE/MAP）和命中率统计
"""
from beliefnet.evaluation.estimator import IncrementalEstimator, EstimateResult
from beliefnet.evaluation.metrics import rolling_accuracy, summarize

__all__ = [
    'IncrementalEstimator',
    'EstimateResult',
    'rolling_accuracy',
    'summarize'
]
