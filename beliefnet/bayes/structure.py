#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络DAG结构定义
定义节点间的父子关系，并负责邻接表文件的读写
"""
from typing import List, Dict, Iterable, Optional
import networkx as nx
import pandas as pd

from beliefnet.errors import StructureError, SourceUnavailableError
from beliefnet.utils.logging import setup_logger

logger = setup_logger("bayes_structure")


class NetworkStructure:
    """
    贝叶斯网络DAG结构

    节点顺序固定（邻接表的行列顺序），边 parent -> child
    """

    def __init__(self, nodes: Optional[Iterable[str]] = None):
        """
        初始化网络结构

        Args:
            nodes: 节点名序列（决定邻接表的行列顺序）
        """
        self.graph = nx.DiGraph()
        self.edges = []
        for node in nodes or []:
            self.add_node(node)

    @property
    def nodes(self) -> List[str]:
        """节点名列表（插入顺序）"""
        return list(self.graph.nodes())

    def add_node(self, node: str) -> None:
        self.graph.add_node(node)

    def add_edge(self, parent: str, child: str) -> None:
        """
        添加有向边

        Args:
            parent: 父节点
            child: 子节点
        """
        if self.graph.has_edge(parent, child):
            return
        self.graph.add_edge(parent, child)
        self.edges.append((parent, child))
        logger.debug(f"添加边: {parent} -> {child}")

    def get_parents(self, node: str) -> List[str]:
        """
        获取节点的父节点

        Args:
            node: 节点名

        Returns:
            父节点列表
        """
        return list(self.graph.predecessors(node))

    def get_children(self, node: str) -> List[str]:
        """
        获取节点的子节点

        Args:
            node: 节点名

        Returns:
            子节点列表
        """
        return list(self.graph.successors(node))

    def roots(self) -> List[str]:
        """没有父节点的节点"""
        return [node for node in self.graph.nodes() if self.graph.in_degree(node) == 0]

    def is_acyclic(self) -> bool:
        """检查是否为有向无环图"""
        return nx.is_directed_acyclic_graph(self.graph)

    def is_singly_connected(self) -> bool:
        """
        检查是否为单连通网络（多重树）

        任意两节点之间最多只有一条无向路径，即无向化后为森林
        """
        if self.graph.number_of_nodes() == 0:
            return True
        return nx.is_forest(self.graph.to_undirected(as_view=True))

    def get_topological_order(self) -> List[str]:
        """获取拓扑排序"""
        if not self.is_acyclic():
            raise StructureError("图中存在环，无法进行拓扑排序")
        return list(nx.topological_sort(self.graph))

    def export_structure(self) -> Dict:
        """
        导出网络结构

        Returns:
            结构字典
        """
        acyclic = self.is_acyclic()
        return {
            'nodes': self.nodes,
            'edges': [list(edge) for edge in self.edges],
            'is_acyclic': acyclic,
            'is_singly_connected': self.is_singly_connected(),
            'topological_order': self.get_topological_order() if acyclic else None
        }

    # ------------------------------------------------------------------
    # 邻接表
    # ------------------------------------------------------------------

    def to_frame(self) -> pd.DataFrame:
        """
        邻接矩阵（行=父，列=子，1表示存在边）
        """
        nodes = self.nodes
        matrix = pd.DataFrame(0, index=nodes, columns=nodes, dtype=int)
        for parent, child in self.graph.edges():
            matrix.loc[parent, child] = 1
        return matrix

    def to_adjacency(self, path: str) -> None:
        """
        写出邻接表文件

        格式: 第一行 ",v1,v2,..."，之后每行 "vX,0,1,..."

        Args:
            path: 输出路径
        """
        try:
            self.to_frame().to_csv(path, index=True, index_label='', encoding='utf-8')
        except OSError as e:
            raise SourceUnavailableError(f"无法写出邻接表 {path}: {e}") from e
        logger.info(f"邻接表已保存: {path}")

    @classmethod
    def from_frame(cls, matrix: pd.DataFrame) -> 'NetworkStructure':
        """
        由邻接矩阵构造结构

        Args:
            matrix: 行列标签一致的0/1矩阵（行=父，列=子）

        Returns:
            NetworkStructure
        """
        rows = [str(label) for label in matrix.index]
        cols = [str(label) for label in matrix.columns]
        if sorted(rows) != sorted(cols) or len(set(rows)) != len(rows):
            raise StructureError(f"邻接表的行标签与列标签不一致: {rows} / {cols}")

        structure = cls(cols)
        for parent, values in zip(rows, matrix.itertuples(index=False)):
            for child, value in zip(cols, values):
                try:
                    flag = int(str(value).strip())
                except ValueError:
                    raise StructureError(f"邻接表单元格不是整数: ({parent}, {child}) = {value!r}")
                if flag != 0:
                    if parent == child:
                        raise StructureError(f"节点不能是自身的父节点: {parent}")
                    structure.add_edge(parent, child)

        if not structure.is_acyclic():
            raise StructureError("邻接表定义的图中存在环")
        return structure

    @classmethod
    def from_adjacency(cls, path: str) -> 'NetworkStructure':
        """
        读取邻接表文件

        Args:
            path: 邻接表路径

        Returns:
            NetworkStructure
        """
        try:
            raw = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, na_values=[''])
        except (OSError, UnicodeDecodeError, pd.errors.EmptyDataError) as e:
            raise SourceUnavailableError(f"无法读取邻接表 {path}: {e}") from e
        except pd.errors.ParserError as e:
            raise StructureError(f"邻接表列数不一致: {path}: {e}") from e

        # 第一行第一列为空，其余单元格都必须存在
        missing = raw.isna()
        missing.iloc[0, 0] = False
        if missing.to_numpy().any():
            line = int(missing.any(axis=1).to_numpy().argmax()) + 1
            raise StructureError(f"邻接表第 {line} 行列数与标签不一致: {path}")

        matrix = pd.DataFrame(
            raw.iloc[1:, 1:].to_numpy(),
            index=raw.iloc[1:, 0].tolist(),
            columns=raw.iloc[0, 1:].tolist()
        )
        structure = cls.from_frame(matrix)
        logger.info(f"邻接表已读取: {path}, {len(structure.nodes)} 个节点, {len(structure.edges)} 条边")
        return structure
