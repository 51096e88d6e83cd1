#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
异常定义
推断、结构学习和数据读取过程中抛出的类型化错误
"""


class BeliefNetError(Exception):
    """所有beliefnet错误的基类"""


class UnknownVariableError(BeliefNetError, KeyError):
    """引用了数据或网络中不存在的变量（列/节点）"""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"未知变量: {variable}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownStateError(BeliefNetError, KeyError):
    """引用了在该列中从未出现过的状态值"""

    def __init__(self, variable: str, state: str):
        self.variable = variable
        self.state = state
        super().__init__(f"变量 {variable} 不存在状态: {state}")

    def __str__(self) -> str:
        return self.args[0]


class MissingMessageError(BeliefNetError, LookupError):
    """节点计算时缺少应存在的消息/证据项（网络未初始化）"""


class SourceUnavailableError(BeliefNetError, IOError):
    """数据源或结构文件无法打开，或格式错误"""


class SourceExhaustedError(SourceUnavailableError):
    """流式读取已到达数据末尾"""


class StructureError(SourceUnavailableError):
    """邻接表格式错误（未知标签、非0/1值、存在环等）"""


class QuerySyntaxError(BeliefNetError, ValueError):
    """查询表达式无法解析"""
