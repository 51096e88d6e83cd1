#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
频数存储模块
读取表格数据（列优先存储），提供状态计数与条件计数查询
推断与结构学习都通过该模块获取频数
"""
import numpy as np
import pandas as pd
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from beliefnet.bayes.variables import BayesianVariable
from beliefnet.errors import (
    SourceExhaustedError,
    SourceUnavailableError,
    UnknownStateError,
    UnknownVariableError,
)
from beliefnet.utils.logging import setup_logger

logger = setup_logger("frequency_store")

Condition = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


class FrequencyStore:
    """
    频数存储

    数据全部作为类别标签（字符串）处理，不做数值解析。
    缓存：
    - 每个变量的唯一状态集合
    - 每个变量 状态 -> 行号数组 的索引（用于条件交集）
    两者在load/reload/append时整体失效。
    """

    def __init__(self, path: Optional[str] = None, sep: str = ','):
        """
        初始化频数存储

        Args:
            path: CSV数据文件路径（第一行为列名）
            sep: 分隔符
        """
        self.path = path
        self.sep = sep
        self.data = pd.DataFrame()
        self._unique_cache: Dict[str, List[str]] = {}
        self._index_cache: Dict[str, Dict[str, np.ndarray]] = {}
        self._stream = None
        self._position = 0

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'FrequencyStore':
        """
        由内存中的DataFrame构造（不支持流式读取）

        Args:
            df: 数据，所有值都会转换为字符串

        Returns:
            FrequencyStore
        """
        store = cls(path=None)
        store._set_data(df.astype(str))
        logger.info(f"从DataFrame构造频数存储: {store.row_count} 行, {len(store.columns)} 列")
        return store

    # ------------------------------------------------------------------
    # 基本属性
    # ------------------------------------------------------------------

    @property
    def columns(self) -> List[str]:
        """列名（变量名）列表"""
        return list(self.data.columns)

    @property
    def row_count(self) -> int:
        """已读入内存的行数"""
        return len(self.data)

    @property
    def position(self) -> int:
        """流式读取的当前行号（已消费的数据行数）"""
        return self._position

    def variables(self) -> List[BayesianVariable]:
        """按列顺序返回所有变量及其状态"""
        return [BayesianVariable(name, self.unique_states(name)) for name in self.columns]

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    def load(self, row_limit: Optional[int] = None) -> 'FrequencyStore':
        """
        读取列名行和最多row_limit行数据

        Args:
            row_limit: 最大读取行数，None或不大于0表示全部读取

        Returns:
            self
        """
        nrows = row_limit if row_limit and row_limit > 0 else None
        self._close_stream()
        df = self._read_table(nrows=nrows)
        self._set_data(df)
        self._position = len(df)

        # 未读到末尾时，保留流式读取位置
        if nrows is not None and len(df) >= nrows:
            self._open_stream(skip=len(df))

        logger.info(f"数据加载完成: {self.path}, {self.row_count} 行, {len(self.columns)} 列")
        return self

    def reload(self) -> 'FrequencyStore':
        """
        丢弃已读数据和缓存，回到第一行数据之前（用于流式再利用）

        Returns:
            self
        """
        self._close_stream()
        header = self._read_table(nrows=0)
        self._set_data(header)
        self._position = 0
        self._open_stream(skip=0)
        logger.debug(f"数据源已重置: {self.path}")
        return self

    def read(self) -> Dict[str, str]:
        """
        流式读取下一行

        Returns:
            列名 -> 值 的映射

        Raises:
            SourceExhaustedError: 已读到末尾
        """
        if self._stream is None:
            raise SourceExhaustedError(f"数据源已读取完毕: {self.path}")
        try:
            chunk = next(self._stream)
        except StopIteration:
            self._close_stream()
            raise SourceExhaustedError(f"数据源已读取完毕: {self.path}")
        except (pd.errors.ParserError, ValueError) as e:
            self._close_stream()
            raise SourceUnavailableError(f"数据行格式错误: {self.path}: {e}") from e

        if chunk.shape[1] != len(self.columns) or chunk.isna().any().any():
            self._close_stream()
            raise SourceUnavailableError(f"第 {self._position + 2} 行列数与列名不一致: {self.path}")

        self._position += 1
        return dict(zip(self.columns, chunk.iloc[0].tolist()))

    def append(self, row: Mapping[str, str]) -> None:
        """
        将已读取的行追加到内存表中

        Args:
            row: 列名 -> 值
        """
        for column in row:
            if column not in self.data.columns:
                raise UnknownVariableError(column)
        missing = [column for column in self.data.columns if column not in row]
        if missing:
            raise UnknownVariableError(missing[0])

        self.data.loc[len(self.data)] = [str(row[column]) for column in self.data.columns]
        self._invalidate()

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def unique_states(self, variable: str) -> List[str]:
        """
        返回变量出现过的唯一状态（按首次出现顺序，带缓存）

        Args:
            variable: 变量名

        Returns:
            状态列表
        """
        cached = self._unique_cache.get(variable)
        if cached is not None:
            return list(cached)
        states = self._column(variable).unique().tolist()
        self._unique_cache[variable] = states
        return list(states)

    def frequency(
        self,
        variable: str,
        condition: Optional[Condition] = None,
        uniform_fallback: bool = True
    ) -> Tuple[Dict[str, int], int]:
        """
        统计变量各状态的频数

        Args:
            variable: 目标变量
            condition: 条件（变量=值 的合取），None表示无条件
            uniform_fallback: 条件查询时所有状态计数为0则全部置1（均匀分布）

        Returns:
            (状态 -> 计数, 条件匹配行数)
        """
        column = self._column(variable)
        states = self.unique_states(variable)
        pairs = self._normalize_condition(condition)

        if not pairs:
            observed = column.value_counts()
            counts = {state: int(observed.get(state, 0)) for state in states}
            return counts, self.row_count

        rows = self.matching_rows(pairs)
        observed = column.iloc[rows].value_counts()
        counts = {state: int(observed.get(state, 0)) for state in states}
        total = int(len(rows))

        if uniform_fallback and sum(counts.values()) <= 0:
            counts = {state: 1 for state in states}
            total = len(counts)

        return counts, total

    def probability(
        self,
        variable: str,
        condition: Optional[Condition] = None,
        uniform_fallback: bool = True
    ) -> Dict[str, float]:
        """
        条件概率 P(variable | condition)，由频数除以匹配行数得到

        Returns:
            状态 -> 概率（匹配行数为0时全为0.0）
        """
        counts, total = self.frequency(variable, condition, uniform_fallback)
        if total <= 0:
            return {state: 0.0 for state in counts}
        return {state: count / total for state, count in counts.items()}

    def matching_rows(self, condition: Condition) -> np.ndarray:
        """
        满足所有条件的行号（逐个条件求交集）

        Args:
            condition: 条件

        Returns:
            升序行号数组
        """
        rows: Optional[np.ndarray] = None
        for name, value in self._normalize_condition(condition):
            index = self._row_index(name)
            if value not in index:
                raise UnknownStateError(name, value)
            if rows is None:
                rows = index[value]
            else:
                rows = np.intersect1d(rows, index[value], assume_unique=True)
        if rows is None:
            return np.arange(self.row_count)
        return rows

    # ------------------------------------------------------------------
    # 内部处理
    # ------------------------------------------------------------------

    def _column(self, variable: str) -> pd.Series:
        if variable not in self.data.columns:
            raise UnknownVariableError(variable)
        return self.data[variable]

    def _row_index(self, variable: str) -> Dict[str, np.ndarray]:
        """状态 -> 行号数组（带缓存）"""
        cached = self._index_cache.get(variable)
        if cached is not None:
            return cached
        column = self._column(variable)
        index = {state: np.sort(rows) for state, rows in column.groupby(column, sort=False).indices.items()}
        self._index_cache[variable] = index
        return index

    @staticmethod
    def _normalize_condition(condition: Optional[Condition]) -> List[Tuple[str, str]]:
        if not condition:
            return []
        items = condition.items() if isinstance(condition, Mapping) else condition
        return [(str(name), str(value)) for name, value in items]

    def _set_data(self, df: pd.DataFrame) -> None:
        self.data = df.reset_index(drop=True)
        self._invalidate()

    def _invalidate(self) -> None:
        self._unique_cache.clear()
        self._index_cache.clear()

    def _read_table(self, nrows: Optional[int]) -> pd.DataFrame:
        """读取列名行和最多nrows行数据，逐行检查字段数与列名一致"""
        if self.path is None:
            raise SourceUnavailableError("内存数据源不支持从文件读取")
        try:
            raw = pd.read_csv(
                self.path,
                sep=self.sep,
                header=None,
                dtype=str,
                keep_default_na=False,
                na_values=[''],
                nrows=nrows + 1 if nrows is not None else None
            )
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise SourceUnavailableError(f"无法读取数据源 {self.path}: {e}") from e

        # 字段不足的行在缺失位置为NaN，字段过多的行由解析器报错
        ragged = raw.isna().any(axis=1)
        if ragged.any():
            line = int(ragged.to_numpy().argmax()) + 1
            raise SourceUnavailableError(f"第 {line} 行列数与列名不一致: {self.path}")

        header = raw.iloc[0].tolist()
        return pd.DataFrame(raw.iloc[1:].to_numpy(), columns=header)

    def _open_stream(self, skip: int) -> None:
        """打开逐行读取的数据源，跳过列名之后的前skip行"""
        skiprows = range(1, skip + 1) if skip > 0 else None
        try:
            self._stream = pd.read_csv(
                self.path,
                sep=self.sep,
                header=None,
                dtype=str,
                keep_default_na=False,
                na_values=[''],
                skiprows=skiprows,
                chunksize=1
            )
            # 第一块是列名行，决定之后每行应有的字段数
            header = next(self._stream)
        except (OSError, UnicodeDecodeError, ValueError, StopIteration,
                pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            self._close_stream()
            raise SourceUnavailableError(f"无法打开数据源 {self.path}: {e}") from e

        if header.iloc[0].tolist() != self.columns:
            self._close_stream()
            raise SourceUnavailableError(f"数据源的列名已改变: {self.path}")

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
