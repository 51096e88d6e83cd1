#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络变量定义
变量的取值空间在读取数据时确定，不预先固定
"""
from typing import List
from dataclasses import dataclass, field


@dataclass
class BayesianVariable:
    """
    贝叶斯网络随机变量

    Attributes:
        name: 变量名（数据列名）
        states: 数据中出现过的离散状态（按首次出现顺序）
    """
    name: str
    states: List[str] = field(default_factory=list)

    @property
    def cardinality(self) -> int:
        """状态数"""
        return len(self.states)

    def has_state(self, state: str) -> bool:
        return state in self.states
