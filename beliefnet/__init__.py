#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
beliefnet
离散贝叶斯网络的精确推断（Pearl消息传递）与K2结构学习
"""
from beliefnet.errors import (
    BeliefNetError,
    UnknownVariableError,
    UnknownStateError,
    MissingMessageError,
    SourceUnavailableError,
    SourceExhaustedError,
    StructureError,
    QuerySyntaxError,
)
from beliefnet.frequency import FrequencyStore
from beliefnet.query import Query, parse_query
from beliefnet.bayes import BeliefNetwork, NetworkStructure, StructureLearner

__version__ = "0.1.0"

__all__ = [
    'BeliefNetError',
    'UnknownVariableError',
    'UnknownStateError',
    'MissingMessageError',
    'SourceUnavailableError',
    'SourceExhaustedError',
    'StructureError',
    'QuerySyntaxError',
    'FrequencyStore',
    'Query',
    'parse_query',
    'BeliefNetwork',
    'NetworkStructure',
    'StructureLearner'
]
