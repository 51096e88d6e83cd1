#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试贝叶斯网络推断
"""
import itertools
import os
import shutil
import tempfile
import unittest

import pandas as pd

from beliefnet.bayes.network import BeliefNetwork
from beliefnet.bayes.structure import NetworkStructure
from beliefnet.errors import UnknownStateError, UnknownVariableError
from beliefnet.frequency import FrequencyStore


def chain_frame() -> pd.DataFrame:
    """
    A -> B -> C 的数据
    P(A=1)=0.5, P(B=1|A=1)=0.8, P(B=1|A=0)=0.2, P(C=1|B=1)=0.9, P(C=1|B=0)=0.1
    """
    rows = []
    rows += [('1', '1')] * 8 + [('1', '0')] * 2
    rows += [('0', '1')] * 2 + [('0', '0')] * 8
    data = []
    seen_b1 = seen_b0 = 0
    for a, b in rows:
        if b == '1':
            c = '0' if seen_b1 == 0 else '1'
            seen_b1 += 1
        else:
            c = '1' if seen_b0 == 0 else '0'
            seen_b0 += 1
        data.append({'A': a, 'B': b, 'C': c})
    return pd.DataFrame(data, columns=['A', 'B', 'C'])


def chain_structure() -> NetworkStructure:
    structure = NetworkStructure(['A', 'B', 'C'])
    structure.add_edge('A', 'B')
    structure.add_edge('B', 'C')
    return structure


class TestChainInference(unittest.TestCase):
    """测试三节点链的推断"""

    def setUp(self):
        """准备测试数据"""
        self.store = FrequencyStore.from_dataframe(chain_frame())
        self.network = BeliefNetwork(self.store, chain_structure())

    def test_construction(self):
        """测试节点和层级"""
        self.assertEqual(sorted(self.network.nodes), ['A', 'B', 'C'])
        self.assertEqual(self.network.get_node('B').parents, ['A'])
        self.assertEqual(self.network.get_node('B').children, ['C'])
        self.assertEqual(self.network.get_node('A').depth, 1)
        self.assertEqual(self.network.get_node('C').depth, 3)
        self.assertEqual(self.network.max_depth, 3)

    def test_prior_normalization(self):
        """先验概率之和为1"""
        for node in self.network.nodes.values():
            self.assertAlmostEqual(sum(node.prior.values()), 1.0)

    def test_posterior_normalization_after_format(self):
        """初始化后各节点后验之和为1，且等于边缘分布"""
        for node in self.network.nodes.values():
            self.assertAlmostEqual(sum(node.posterior.values()), 1.0)
        self.assertAlmostEqual(self.network.get_belief('B')['1'], 0.5)
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.5)

    def test_predictive_query(self):
        """A=1 时 P(C=1) = 0.8*0.9 + 0.2*0.1"""
        self.network.set_evidence('A', '1')
        self.network.calc_probs('C')
        belief = self.network.get_belief('C')
        self.assertAlmostEqual(belief['1'], 0.74)
        self.assertAlmostEqual(belief['0'], 0.26)

    def test_predictive_query_rooted_at_evidence(self):
        """以证据节点为起点传播结果相同"""
        self.network.set_evidence('A', '1')
        self.network.calc_probs('A')
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.74)
        self.assertAlmostEqual(self.network.get_belief('B')['1'], 0.8)

    def test_diagnostic_query(self):
        """C=1 时 P(A=1) 由贝叶斯定理得到"""
        self.network.set_evidence('C', '1')
        for root in ['A', 'B', 'C']:
            self.network.calc_probs(root)
            self.assertAlmostEqual(self.network.get_belief('A')['1'], 0.74)

    def test_hard_evidence_idempotent(self):
        """重复设置同一证据结果不变"""
        self.network.set_evidence('B', '1')
        self.network.set_evidence('B', '1')
        self.network.calc_probs('B')
        belief = self.network.get_belief('B')
        self.assertAlmostEqual(belief['1'], 1.0)
        self.assertAlmostEqual(belief['0'], 0.0)
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.9)

    def test_get_belief_returns_copy(self):
        """返回的后验是副本"""
        belief = self.network.get_belief('C')
        belief['1'] = 42.0
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.5)

    def test_clear_evidence(self):
        """撤销证据后回到边缘分布"""
        self.network.set_evidence('A', '1')
        self.network.calc_probs('C')
        self.network.clear_evidence()
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.5)
        self.assertEqual(self.network.get_node('A').evidence, {'1': 1.0, '0': 1.0})

    def test_infer(self):
        """infer 一次完成初始化、证据设置和传播"""
        self.assertAlmostEqual(self.network.infer('C', {'A': '1'})['1'], 0.74)
        self.assertAlmostEqual(self.network.infer('C', [('A', '0')])['1'], 0.26)
        self.assertAlmostEqual(self.network.infer('C')['1'], 0.5)

    def test_repeated_requests(self):
        """每次传播使用新的遍历状态"""
        self.network.set_evidence('A', '1')
        first = self.network.calc_probs('C')
        second = self.network.calc_probs('C')
        self.assertNotEqual(first.request_id, second.request_id)
        self.assertEqual(sorted(second.trace), ['A', 'B', 'C'])
        self.assertAlmostEqual(self.network.get_belief('C')['1'], 0.74)

    def test_unknown_names(self):
        """未知变量和状态"""
        with self.assertRaises(UnknownVariableError):
            self.network.get_node('Z')
        with self.assertRaises(UnknownVariableError):
            self.network.calc_probs('Z')
        with self.assertRaises(UnknownStateError):
            self.network.set_evidence('A', '7')


class TestPolytreeInference(unittest.TestCase):
    """测试多重树（含多父节点）的推断"""

    def setUp(self):
        """准备测试数据: A->B, A->C, E->C, C->D"""
        rows = [dict(zip('ABCDE', values)) for values in itertools.product('01', repeat=5)]
        rows += [{'A': '1', 'B': '1', 'C': '1', 'D': '1', 'E': '0'}] * 6
        rows += [{'A': '0', 'B': '0', 'C': '0', 'D': '0', 'E': '1'}] * 4
        rows += [{'A': '1', 'B': '0', 'C': '0', 'D': '1', 'E': '1'}] * 3
        self.store = FrequencyStore.from_dataframe(pd.DataFrame(rows, columns=list('ABCDE')))

        self.structure = NetworkStructure(list('ABCDE'))
        for parent, child in [('A', 'B'), ('A', 'C'), ('E', 'C'), ('C', 'D')]:
            self.structure.add_edge(parent, child)
        self.network = BeliefNetwork(self.store, self.structure)

    def enumerate_posterior(self, query, evidence):
        """按联合分布穷举求后验"""
        names = list('ABCDE')
        totals = {}
        for values in itertools.product('01', repeat=5):
            assignment = dict(zip(names, values))
            if any(assignment[name] != state for name, state in evidence.items()):
                continue
            joint = 1.0
            for name in names:
                parents = [(parent, assignment[parent]) for parent in self.structure.get_parents(name)]
                joint *= self.store.probability(name, parents or None)[assignment[name]]
            totals[assignment[query]] = totals.get(assignment[query], 0.0) + joint
        norm = sum(totals.values())
        return {state: value / norm for state, value in totals.items()}

    def test_every_node_visited_once(self):
        """任意起点传播都恰好访问每个节点一次"""
        for root in 'ABCDE':
            context = self.network.calc_probs(root)
            self.assertEqual(context.trace[0], root)
            self.assertEqual(len(context.trace), 5)
            self.assertEqual(sorted(context.trace), list('ABCDE'))
            self.assertEqual(sorted(context.gather_trace), list('ABCDE'))

    def test_exact_posterior(self):
        """与穷举结果一致，且与传播起点无关"""
        evidence = {'D': '1', 'B': '0'}
        for query in 'ACE':
            expected = self.enumerate_posterior(query, evidence)
            for root in 'ABCDE':
                self.network.format()
                for name, state in evidence.items():
                    self.network.set_evidence(name, state)
                self.network.calc_probs(root)
                belief = self.network.get_belief(query)
                for state, value in expected.items():
                    self.assertAlmostEqual(belief[state], value)

    def test_marginals_after_format(self):
        """初始化后的后验等于无证据的边缘分布"""
        for query in 'ABCDE':
            expected = self.enumerate_posterior(query, {})
            belief = self.network.get_belief(query)
            for state, value in expected.items():
                self.assertAlmostEqual(belief[state], value)


class TestNetworkConstruction(unittest.TestCase):
    """测试网络构建"""

    def setUp(self):
        self.store = FrequencyStore.from_dataframe(chain_frame())
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_from_adjacency_path(self):
        """由邻接表文件构建"""
        path = os.path.join(self.tmpdir, 'Nodes.csv')
        chain_structure().to_adjacency(path)
        network = BeliefNetwork(self.store, path)
        self.assertEqual(network.get_node('C').parents, ['B'])
        self.assertAlmostEqual(network.infer('C', {'A': '1'})['1'], 0.74)

    def test_unknown_variable_in_structure(self):
        """邻接表中存在数据中没有的变量"""
        structure = NetworkStructure(['A', 'X'])
        structure.add_edge('A', 'X')
        with self.assertRaises(UnknownVariableError):
            BeliefNetwork(self.store, structure)

    def test_longest_path_depth(self):
        """层级取从根出发的最长路径"""
        structure = chain_structure()
        structure.add_edge('A', 'C')
        network = BeliefNetwork(self.store, structure)
        self.assertEqual(network.get_node('C').depth, 3)
        self.assertEqual(network.max_depth, 3)

    def test_warns_when_not_singly_connected(self):
        """非单连通网络输出警告"""
        structure = chain_structure()
        structure.add_edge('A', 'C')
        with self.assertLogs('belief_network', level='WARNING'):
            BeliefNetwork(self.store, structure)

    def test_isolated_nodes(self):
        """没有边的网络，后验等于先验"""
        network = BeliefNetwork(self.store, NetworkStructure(['A', 'B', 'C']))
        self.assertEqual(network.max_depth, 1)
        self.assertAlmostEqual(network.infer('C', {'A': '1'})['1'], 0.5)


if __name__ == '__main__':
    unittest.main()
