#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
逐行推定评估
先读入前N行作为已知数据，之后逐行读取：对满足条件的行，
用个人频数与全体条件概率混合（MLE/MAP）推定目标变量，
判断真实值是否在前k位，然后把该行追加到已知数据中
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from beliefnet.errors import SourceExhaustedError, UnknownStateError, UnknownVariableError
from beliefnet.evaluation.metrics import summarize
from beliefnet.utils.logging import setup_logger

logger = setup_logger("estimator")

Condition = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


@dataclass
class EstimateRecord:
    """一次推定的记录"""
    row_number: int
    answer: str
    ranking: List[Tuple[str, float]]
    hit: bool


@dataclass
class EstimateResult:
    """
    推定结果

    Attributes:
        hits: 逐行命中记录（1=命中, 0=未命中）
        records: 逐行推定详情
    """
    hits: List[int] = field(default_factory=list)
    records: List[EstimateRecord] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        return sum(self.hits) / len(self.hits) if self.hits else 0.0

    def summary(self, window: int = 10) -> Dict:
        return summarize(self.hits, window)


def blend(weight: float, cpt: float, child: float, parent: float) -> float:
    """
    混合推定值 (weight·cpt + child) / (weight + parent)

    Args:
        weight: 0为最大似然推定，1为MAP推定
        cpt: 全体数据的条件概率
        child: 个人数据中该状态的频数
        parent: 个人数据的总行数

    Returns:
        推定值，个人数据为空时为0
    """
    if parent <= 0:
        return 0.0
    return (weight * cpt + child) / (weight + parent)


class IncrementalEstimator:
    """逐行推定评估器"""

    def __init__(self, store, weight: float = 1.0, top_k: int = 5):
        """
        初始化评估器

        Args:
            store: FrequencyStore（需要文件数据源以支持流式读取）
            weight: 推定方法权重（0=MLE, 1=MAP）
            top_k: 前k位内包含真实值即视为命中
        """
        self.store = store
        self.weight = weight
        self.top_k = top_k

    def _counts(self, target: str, condition: List[Tuple[str, str]]) -> Tuple[Dict[str, int], int]:
        try:
            return self.store.frequency(target, condition, uniform_fallback=False)
        except UnknownStateError:
            # 条件中的值尚未出现过，视为没有历史数据
            return {}, 0

    def rank(
        self,
        target: str,
        condition: List[Tuple[str, str]],
        personal: List[Tuple[str, str]]
    ) -> List[Tuple[str, float]]:
        """
        按推定值降序排列目标变量的状态

        Args:
            target: 目标变量
            condition: 全体数据的条件
            personal: 个人数据的条件（condition + 用户条件）

        Returns:
            [(状态, 推定值), ...]
        """
        counts_all, total_all = self._counts(target, condition)
        counts_personal, total_personal = self._counts(target, personal)
        logger.debug(f"[cpt-personal] {counts_personal} / {total_personal}")
        logger.debug(f"[cpt-all-users] {counts_all} / {total_all}")

        names = list(counts_all)
        names += [name for name in counts_personal if name not in counts_all]

        estimates = []
        for name in names:
            cpt = counts_all.get(name, 0) / total_all if total_all > 0 else 0.0
            value = blend(self.weight, cpt, counts_personal.get(name, 0), total_personal)
            estimates.append((name, value))
        return sorted(estimates, key=lambda item: item[1], reverse=True)

    def _rows(self) -> Iterator[Dict[str, str]]:
        while True:
            try:
                yield self.store.read()
            except SourceExhaustedError:
                return

    @staticmethod
    def _matches(row: Mapping[str, str], condition: List[Tuple[str, str]]) -> bool:
        for name, value in condition:
            if name not in row:
                raise UnknownVariableError(name)
            if row[name] != value:
                return False
        return True

    def run(
        self,
        target: str,
        user_column: str,
        user_value: str,
        condition: Optional[Condition] = None,
        row_count: Optional[int] = None
    ) -> EstimateResult:
        """
        执行逐行推定

        Args:
            target: 推定对象变量
            user_column: 用户列名（如 UserID）
            user_value: 用户值
            condition: 其他条件（不含用户条件）
            row_count: 预先读入的行数，None或0表示从第一行开始逐行推定

        Returns:
            EstimateResult
        """
        logger.info("=" * 80)
        logger.info(f"开始逐行推定: 目标 {target}, 用户 {user_column}={user_value}, 权重 {self.weight}")
        logger.info("=" * 80)

        self.store.reload()
        if row_count:
            self.store.load(row_count)
        for name in [target, user_column]:
            if name not in self.store.columns:
                raise UnknownVariableError(name)

        items = condition.items() if isinstance(condition, Mapping) else (condition or [])
        base = [(str(name), str(value)) for name, value in items]
        personal = base + [(user_column, str(user_value))]

        result = EstimateResult()
        for row in tqdm(self._rows(), desc="逐行推定"):
            if self._matches(row, personal):
                ranking = self.rank(target, base, personal)
                answer = row[target]
                hit = answer in [name for name, _ in ranking[:self.top_k]]
                result.hits.append(1 if hit else 0)
                result.records.append(EstimateRecord(self.store.position, answer, ranking, hit))
                for name, value in ranking[:self.top_k]:
                    logger.debug(f"[Estimate] {value:f}=P({target}={name})")
                logger.info(f"[Judgement] {'OK' if hit else 'NG'} (answer={answer}, 行 {self.store.position})")
            self.store.append(row)

        logger.info(f"逐行推定完成: {len(result.hits)} 次推定, 命中率 {result.accuracy:.4f}")
        return result
