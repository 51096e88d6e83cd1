#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试命令行入口
"""
import contextlib
import importlib.util
import io
import os
import shutil
import tempfile
import unittest

from beliefnet.utils import load_metadata

MAIN_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'main.py')


def load_main():
    spec = importlib.util.spec_from_file_location('beliefnet_main', MAIN_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestMain(unittest.TestCase):
    """测试子命令"""

    def setUp(self):
        """准备测试CSV"""
        self.main = load_main()
        self.tmpdir = tempfile.mkdtemp()
        self.data = os.path.join(self.tmpdir, 'data.csv')
        with open(self.data, 'w', encoding='utf-8') as f:
            f.write("A,B\n")
            for i in range(20):
                f.write(f"{i % 2},{i % 2}\n")
        self.nodes = os.path.join(self.tmpdir, 'Nodes.csv')

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def run_main(self, argv):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            code = self.main.main(argv)
        return code, output.getvalue()

    def test_learn(self):
        """learn 写出邻接表和学习摘要"""
        code, output = self.run_main(['learn', self.data, '--output', self.nodes])
        self.assertEqual(code, 0)
        self.assertIn('A -> B', output)
        self.assertTrue(os.path.exists(self.nodes))

        metadata = load_metadata(os.path.join(self.tmpdir, 'Nodes_k2.yaml'))
        self.assertEqual(metadata['parents'], {'A': [], 'B': ['A']})

    def test_infer_learns_missing_structure(self):
        """infer 在邻接表不存在时先学习结构"""
        code, output = self.run_main(['infer', self.data, '--structure', self.nodes, '--query', 'P(B|A=1)'])
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(self.nodes))
        self.assertIn('1.000000\tB=1', output)

    def test_infer_bad_state(self):
        """证据状态不存在时返回非0"""
        self.run_main(['learn', self.data, '--output', self.nodes])
        code, _ = self.run_main(['infer', self.data, '--structure', self.nodes, '--query', 'P(B|A=7)'])
        self.assertNotEqual(code, 0)

    def test_evaluate(self):
        """evaluate 输出命中率并保存报告"""
        report = os.path.join(self.tmpdir, 'report.yaml')
        code, output = self.run_main([
            'evaluate', self.data, '--target', 'B', '--user-column', 'A', '--user-value', '1',
            '--rows', '4', '--top-k', '1', '--report', report
        ])
        self.assertEqual(code, 0)
        self.assertIn('accuracy=1.0000', output)
        self.assertEqual(load_metadata(report)['n_estimates'], 8)

    def test_missing_config(self):
        """配置文件不存在时返回非0"""
        missing = os.path.join(self.tmpdir, 'missing.yaml')
        code, _ = self.run_main(['--config', missing, 'learn', self.data, '--output', self.nodes])
        self.assertEqual(code, 2)

    def test_invalid_config(self):
        """配置文件不是YAML映射时返回非0"""
        for index, text in enumerate(["data: [unclosed\n", "- a\n- b\n"]):
            path = os.path.join(self.tmpdir, f'bad{index}.yaml')
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
            code, _ = self.run_main(['--config', path, 'learn', self.data, '--output', self.nodes])
            self.assertEqual(code, 2)

    def test_ragged_data(self):
        """数据行列数与列名不一致时返回非0"""
        with open(self.data, 'a', encoding='utf-8') as f:
            f.write("1\n")
        code, _ = self.run_main(['learn', self.data, '--output', self.nodes])
        self.assertEqual(code, 2)
        self.assertFalse(os.path.exists(self.nodes))

    def test_no_command(self):
        """没有子命令时返回非0"""
        code, _ = self.run_main([])
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
