#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络推断
构建网络、初始化（π消息前向扫描）、设置证据、传播并读取后验
"""
import logging
from typing import Dict, Iterable, Optional, Tuple, Union

from beliefnet.bayes.node import BeliefNode, PropagationContext
from beliefnet.bayes.structure import NetworkStructure
from beliefnet.errors import StructureError, UnknownStateError, UnknownVariableError
from beliefnet.utils.logging import setup_logger

logger = setup_logger("belief_network")


class BeliefNetwork:
    """
    贝叶斯网络

    持有全部节点（节点之间只以名字相互引用），负责：
    1. 按邻接表构建节点与父子关系
    2. 计算各节点的层级（用于初始化时的拓扑顺序扫描）
    3. format：重置消息并进行一次前向π扫描
    4. 设置硬证据、以查询节点为起点传播、读取后验
    """

    def __init__(self, store, structure: Union[NetworkStructure, str]):
        """
        初始化网络

        Args:
            store: FrequencyStore（提供先验与条件概率）
            structure: NetworkStructure，或邻接表文件路径
        """
        logger.info("=" * 80)
        logger.info("开始构建贝叶斯网络")
        logger.info("=" * 80)

        if isinstance(structure, str):
            structure = NetworkStructure.from_adjacency(structure)

        self.store = store
        self.nodes: Dict[str, BeliefNode] = {}
        self.structure = self._build_structure(structure)
        self.max_depth = 0

        self._create_network()
        self._create_depth()
        self.format()

    # ------------------------------------------------------------------
    # 构建
    # ------------------------------------------------------------------

    def _build_structure(self, structure: NetworkStructure) -> NetworkStructure:
        """以数据列为节点集合复制结构，检查邻接表中的变量都存在于数据中"""
        columns = self.store.columns
        for node in structure.nodes:
            if node not in columns:
                raise UnknownVariableError(node)
        if not structure.is_acyclic():
            raise StructureError("网络结构中存在环")

        merged = NetworkStructure(columns)
        for parent, child in structure.edges:
            merged.add_edge(parent, child)
        if not merged.is_singly_connected():
            logger.warning("网络不是单连通的（存在无向环），传播结果只是近似值")
        return merged

    def _create_network(self) -> None:
        """为每个变量创建节点并连接父子关系"""
        for name in self.structure.nodes:
            self.nodes[name] = BeliefNode(name, self.store, network=self)
            logger.debug(f"创建节点: {name}")

        for parent, child in self.structure.edges:
            self.nodes[child].add_parent(parent)
            self.nodes[parent].add_child(child)
            logger.info(f"创建父子关系: {parent} -> {child}")

    def _create_depth(self) -> None:
        """从根节点向下设置层级（根为1），并求最大层级"""
        for root in self.structure.roots():
            self._assign_depth(root, 1)
        self.max_depth = max((node.depth for node in self.nodes.values()), default=0)
        logger.info(f"网络构建完成: {len(self.nodes)} 个节点, 最大层级 {self.max_depth}")

    def _assign_depth(self, name: str, depth: int) -> None:
        node = self.nodes[name]
        # 已设置为同等或更深的层级时不再重复下探
        if node.depth >= depth:
            return
        node.depth = depth
        for child in node.children:
            self._assign_depth(child, depth + 1)

    def get_node(self, name: str) -> BeliefNode:
        """
        按名字获取节点

        Args:
            name: 变量名

        Returns:
            BeliefNode
        """
        try:
            return self.nodes[name]
        except KeyError:
            raise UnknownVariableError(name)

    # ------------------------------------------------------------------
    # 初始化
    # ------------------------------------------------------------------

    def format(self) -> None:
        """
        清空全部消息/证据/后验，设置初始值后按层级进行一次前向π扫描

        初始值:
            后验 = 先验, λ证据 = 1, 硬证据指示 = 1
            π证据 = 先验（根节点） / 1（非根节点，扫描时覆盖）
            子节点中的λ消息槽 = 1，π消息槽 = 先验（根节点） / 1（非根节点）
        """
        for node in self.nodes.values():
            node.reset()

        for node in self.nodes.values():
            for state in node.elements:
                prior = node.cal_prior(state)
                node.posterior[state] = prior
                node.evi_lambda[state] = 1.0
                node.evidence[state] = 1.0
                node.evi_pi[state] = prior if node.is_root else 1.0
            for child_name in node.children:
                child = self.nodes[child_name]
                child.msg_lambda[node.name] = {state: 1.0 for state in node.elements}
                child.msg_pi[node.name] = {
                    state: (node.prior[state] if node.is_root else 1.0) for state in node.elements
                }
        self.log_state("Initialized")

        for depth in range(1, self.max_depth + 1):
            for node in self.nodes.values():
                if node.depth != depth:
                    continue
                node.cal_evi_pi()
                node.cal_prob()
                for child_name in node.children:
                    node.cal_msg_pi(child_name)
        self.log_state("P Message Transferred (init)")
        logger.info("网络初始化完成（前向π扫描）")

    def clear_evidence(self) -> None:
        """撤销所有证据，回到无证据状态"""
        self.format()

    # ------------------------------------------------------------------
    # 推断
    # ------------------------------------------------------------------

    def set_evidence(self, variable: str, state: str) -> None:
        """
        给指定节点设置硬证据

        Args:
            variable: 节点名
            state: 观测到的状态
        """
        node = self.get_node(variable)
        state = str(state)
        if state not in node.elements:
            raise UnknownStateError(variable, state)

        for element in node.elements:
            value = 1.0 if element == state else 0.0
            node.evidence[element] = value
            node.evi_lambda[element] = value
            node.posterior[element] = value
            for child_name in node.children:
                self.nodes[child_name].msg_pi[node.name][element] = value

        logger.info(f"设置证据: {variable}={state}")
        self.log_state(f"Evidence({variable}={state})")

    def calc_probs(self, query: str) -> PropagationContext:
        """
        以查询节点为起点传播证据

        先进行收集（后序，消息汇集到查询节点），再由查询节点向外发送，
        每个阶段中每个节点只处理一次

        Args:
            query: 传播起点节点名

        Returns:
            本次传播的遍历状态
        """
        node = self.get_node(query)
        context = PropagationContext(query)
        logger.info(f"开始传播 (请求 {context.request_id}): 起点 {query}")

        node.gather(None, context)
        node.transmit(None, context)

        logger.info(f"传播完成: 访问 {len(context.trace)} 个节点")
        return context

    def get_belief(self, variable: str) -> Dict[str, float]:
        """
        返回节点当前后验的副本

        Args:
            variable: 节点名

        Returns:
            状态 -> 概率
        """
        return dict(self.get_node(variable).posterior)

    def infer(
        self,
        query: str,
        evidence: Optional[Union[Dict[str, str], Iterable[Tuple[str, str]]]] = None
    ) -> Dict[str, float]:
        """
        重置网络、设置证据、传播并返回查询节点的后验

        Args:
            query: 查询变量
            evidence: 证据（变量 -> 状态）

        Returns:
            查询变量的后验分布
        """
        self.format()
        items = evidence.items() if isinstance(evidence, dict) else (evidence or [])
        for variable, state in items:
            self.set_evidence(variable, state)
        self.calc_probs(query)
        return self.get_belief(query)

    def log_state(self, title: str) -> None:
        """以DEBUG级别输出全部节点的当前状态"""
        if not logger.isEnabledFor(logging.DEBUG):
            return
        for node in self.nodes.values():
            logger.debug(node.describe(title))
