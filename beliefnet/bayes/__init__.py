#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络模块
包含DAG结构定义、节点消息传递、网络推断、K2结构学习等核心功能
"""
from beliefnet.bayes.variables import BayesianVariable
from beliefnet.bayes.structure import NetworkStructure
from beliefnet.bayes.node import BeliefNode, PropagationContext
from beliefnet.bayes.network import BeliefNetwork
from beliefnet.bayes.k2 import StructureLearner, k2_score, k2_raw_score

__all__ = [
    'BayesianVariable',
    'NetworkStructure',
    'BeliefNode',
    'PropagationContext',
    'BeliefNetwork',
    'StructureLearner',
    'k2_score',
    'k2_raw_score'
]
