#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试网络结构与邻接表读写
"""
import os
import shutil
import tempfile
import unittest

from beliefnet.bayes.structure import NetworkStructure
from beliefnet.errors import SourceUnavailableError, StructureError


class TestNetworkStructure(unittest.TestCase):
    """测试DAG结构"""

    def setUp(self):
        """准备测试结构"""
        self.structure = NetworkStructure(['A', 'B', 'C', 'D'])
        self.structure.add_edge('A', 'B')
        self.structure.add_edge('A', 'C')
        self.structure.add_edge('C', 'D')
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def write(self, name, text):
        path = os.path.join(self.tmpdir, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        return path

    def test_relations(self):
        """测试父子关系"""
        self.assertEqual(self.structure.get_parents('D'), ['C'])
        self.assertEqual(self.structure.get_children('A'), ['B', 'C'])
        self.assertEqual(self.structure.roots(), ['A'])

    def test_duplicate_edge(self):
        """重复添加的边只保留一条"""
        self.structure.add_edge('A', 'B')
        self.assertEqual(self.structure.edges.count(('A', 'B')), 1)

    def test_singly_connected(self):
        """测试单连通判定"""
        self.assertTrue(self.structure.is_singly_connected())
        self.structure.add_edge('B', 'D')
        self.assertFalse(self.structure.is_singly_connected())
        self.assertTrue(self.structure.is_acyclic())

    def test_topological_order(self):
        """测试拓扑排序"""
        order = self.structure.get_topological_order()
        self.assertLess(order.index('A'), order.index('C'))
        self.assertLess(order.index('C'), order.index('D'))

        self.structure.add_edge('D', 'A')
        with self.assertRaises(StructureError):
            self.structure.get_topological_order()

    def test_export(self):
        """测试结构导出"""
        exported = self.structure.export_structure()
        self.assertEqual(exported['nodes'], ['A', 'B', 'C', 'D'])
        self.assertIn(['C', 'D'], exported['edges'])
        self.assertTrue(exported['is_singly_connected'])

    def test_adjacency_roundtrip(self):
        """写出后读入得到相同的结构"""
        path = os.path.join(self.tmpdir, 'Nodes.csv')
        self.structure.to_adjacency(path)
        loaded = NetworkStructure.from_adjacency(path)
        self.assertEqual(loaded.nodes, self.structure.nodes)
        self.assertEqual(sorted(loaded.edges), sorted(self.structure.edges))

    def test_read_adjacency(self):
        """读取手写的邻接表"""
        path = self.write('Nodes.csv', ",X,Y,Z\nX,0,1,0\nY,0,0,1\nZ,0,0,0\n")
        structure = NetworkStructure.from_adjacency(path)
        self.assertEqual(structure.nodes, ['X', 'Y', 'Z'])
        self.assertEqual(structure.edges, [('X', 'Y'), ('Y', 'Z')])

    def test_malformed_cell(self):
        """单元格不是整数"""
        path = self.write('Nodes.csv', ",X,Y\nX,0,x\nY,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_short_row(self):
        """缺少单元格的行不会被当作没有边"""
        path = self.write('Nodes.csv', ",X,Y\nX,0\nY,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_long_row(self):
        """单元格过多的行"""
        path = self.write('Nodes.csv', ",X,Y\nX,0,1,0\nY,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_blank_cell(self):
        """空白单元格不是整数"""
        path = self.write('Nodes.csv', ",X,Y\nX,0, \nY,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_label_mismatch(self):
        """行标签与列标签不一致"""
        path = self.write('Nodes.csv', ",X,Y\nX,0,1\nZ,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_cycle(self):
        """邻接表中存在环"""
        path = self.write('Nodes.csv', ",X,Y\nX,0,1\nY,1,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_self_loop(self):
        """节点是自身的父节点"""
        path = self.write('Nodes.csv', ",X,Y\nX,1,0\nY,0,0\n")
        with self.assertRaises(StructureError):
            NetworkStructure.from_adjacency(path)

    def test_missing_file(self):
        """邻接表不存在"""
        with self.assertRaises(SourceUnavailableError):
            NetworkStructure.from_adjacency(os.path.join(self.tmpdir, 'missing.csv'))


if __name__ == '__main__':
    unittest.main()
