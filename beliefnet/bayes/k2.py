#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
K2结构学习
在固定的变量顺序下，为每个变量贪心地选择使K2评分最大的父节点集合
"""
import itertools
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.special import gammaln
from tqdm import tqdm

from beliefnet.bayes.structure import NetworkStructure
from beliefnet.errors import SourceUnavailableError, UnknownVariableError
from beliefnet.utils.logging import setup_logger

logger = setup_logger("k2_learner")


def k2_score(q: int, r: int, nj: Sequence[float], counts: Sequence[Sequence[float]]) -> float:
    """
    K2评分的对数

    score = Π_j [ (r-1)! / (n_j + r - 1)! ] · Π_k n_jk!
    取对数并用 lnΓ 计算，避免阶乘溢出:
    ln score = Σ_j [ lnΓ(r) - lnΓ(n_j + r) ] + Σ_jk lnΓ(n_jk + 1)

    Args:
        q: 父节点状态组合数
        r: 变量状态数
        nj: 每个父节点组合下的行数（长度q）
        counts: 每个组合、每个状态的计数（q × r）

    Returns:
        对数评分
    """
    nj = np.asarray(nj, dtype=float)
    counts = np.asarray(counts, dtype=float)
    if len(nj) != q:
        raise ValueError(f"nj的长度({len(nj)})与q({q})不一致")
    if counts.size and counts.shape != (q, r):
        raise ValueError(f"counts的形状{counts.shape}与(q, r)=({q}, {r})不一致")

    score = q * gammaln(r) - gammaln(nj + r).sum()
    if counts.size:
        score += gammaln(counts + 1).sum()
    return float(score)


def k2_raw_score(q: int, r: int, nj: Sequence[float], counts: Sequence[Sequence[float]]) -> float:
    """K2评分本身（对数评分取exp，数据量大时会下溢为0）"""
    return math.exp(k2_score(q, r, nj, counts))


class StructureLearner:
    """
    K2结构学习器

    变量顺序决定候选父节点：只有排在前面的变量可以成为父节点，
    因此学习结果总是有向无环图
    """

    def __init__(
        self,
        store,
        ordering: Optional[Sequence[str]] = None,
        max_parents: Optional[int] = None
    ):
        """
        初始化学习器

        Args:
            store: FrequencyStore
            ordering: 变量顺序，None表示使用数据的列顺序
            max_parents: 每个变量的父节点数上限，None表示不限制
        """
        self.store = store
        self.ordering = list(ordering) if ordering is not None else list(store.columns)
        self.max_parents = max_parents
        self.scores: Dict[str, float] = {}
        self.parents: Dict[str, List[str]] = {}

    def _validate(self) -> None:
        if self.store.row_count <= 0 or not self.store.columns:
            raise SourceUnavailableError("数据为空，无法进行结构学习")
        columns = self.store.columns
        for name in self.ordering:
            if name not in columns:
                raise UnknownVariableError(name)
        for name in columns:
            if name not in self.ordering:
                raise UnknownVariableError(name)
        if len(set(self.ordering)) != len(self.ordering):
            raise ValueError(f"变量顺序中存在重复: {self.ordering}")

    def score(self, variable: str, parents: Sequence[str]) -> float:
        """
        变量在给定父节点集合下的对数K2评分

        Args:
            variable: 目标变量
            parents: 父节点集合

        Returns:
            对数评分
        """
        states = self.store.unique_states(variable)
        r = len(states)

        if not parents:
            counts, total = self.store.frequency(variable)
            return k2_score(1, r, [total], [[counts[state] for state in states]])

        domains = [[(name, state) for state in self.store.unique_states(name)] for name in parents]
        nj: List[int] = []
        table: List[List[int]] = []
        for combination in itertools.product(*domains):
            counts, total = self.store.frequency(variable, list(combination), uniform_fallback=False)
            nj.append(total)
            table.append([counts[state] for state in states])
        return k2_score(len(nj), r, nj, table)

    def learn_parents(self, variable: str) -> Tuple[List[str], float]:
        """
        贪心搜索单个变量的父节点

        每一轮对所有剩余候选计算 当前父集合+候选 的评分，
        最大值严格优于当前评分时确定该候选（同分时取顺序靠前者），否则停止

        Args:
            variable: 目标变量

        Returns:
            (父节点列表, 最终对数评分)
        """
        position = self.ordering.index(variable)
        candidates = self.ordering[:position]
        parents: List[str] = []
        best = self.score(variable, parents)
        logger.debug(f"Pa({variable}|φ) = {best:.6f}")

        while candidates:
            if self.max_parents is not None and len(parents) >= self.max_parents:
                break

            chosen, chosen_score = None, None
            for candidate in candidates:
                value = self.score(variable, parents + [candidate])
                logger.debug(f"Pa({variable}|{','.join(parents + [candidate])}) = {value:.6f}")
                if chosen_score is None or value > chosen_score:
                    chosen, chosen_score = candidate, value

            if chosen_score is None or chosen_score <= best:
                break

            parents.append(chosen)
            candidates.remove(chosen)
            best = chosen_score
            logger.info(f"确定父节点: Pa({variable}|{{{','.join(parents)}}}) = {best:.6f}")

        return parents, best

    def learn(self) -> NetworkStructure:
        """
        对所有变量执行K2搜索

        Returns:
            学习得到的网络结构（节点顺序为变量顺序）
        """
        self._validate()
        logger.info("=" * 80)
        logger.info(f"开始K2结构学习: {len(self.ordering)} 个变量, {self.store.row_count} 行数据")
        logger.info("=" * 80)

        structure = NetworkStructure(self.ordering)
        for variable in tqdm(self.ordering, desc="K2结构学习"):
            parents, best = self.learn_parents(variable)
            self.parents[variable] = parents
            self.scores[variable] = best
            for parent in parents:
                structure.add_edge(parent, variable)

        logger.info(f"K2结构学习完成: {len(structure.edges)} 条边")
        return structure
