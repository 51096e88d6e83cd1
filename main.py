#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
主执行脚本
infer    : 读取数据和网络结构（必要时用K2学习），对查询表达式进行推断
learn    : 用K2算法学习网络结构并写出邻接表
evaluate : 逐行推定评估（MLE/MAP）
"""
import os
import sys
import argparse

from beliefnet.bayes import BeliefNetwork, NetworkStructure, StructureLearner
from beliefnet.errors import BeliefNetError
from beliefnet.evaluation import IncrementalEstimator
from beliefnet.frequency import FrequencyStore
from beliefnet.query import parse_query
from beliefnet.utils import load_config, save_metadata, set_log_level, setup_logger

logger = setup_logger("main")


def load_store(config: dict) -> FrequencyStore:
    """按配置读取数据"""
    data = config['data']
    if not data.get('path'):
        raise BeliefNetError("未指定数据文件（DATA参数或配置 data.path）")
    store = FrequencyStore(data['path'], sep=data.get('sep') or ',')
    return store.load(data.get('row_limit'))


def learn_structure(store: FrequencyStore, config: dict, output: str) -> NetworkStructure:
    """执行K2学习并写出邻接表"""
    settings = config['structure']
    learner = StructureLearner(
        store,
        ordering=settings.get('ordering'),
        max_parents=settings.get('max_parents')
    )
    structure = learner.learn()
    structure.to_adjacency(output)

    metadata_path = os.path.splitext(output)[0] + "_k2.yaml"
    metadata = structure.export_structure()
    metadata['parents'] = learner.parents
    metadata['log_scores'] = {name: float(score) for name, score in learner.scores.items()}
    save_metadata(metadata, metadata_path)
    logger.info(f"结构学习摘要已保存: {metadata_path}")
    return structure


def run_infer(config: dict, args: argparse.Namespace) -> int:
    query = parse_query(args.query)
    store = load_store(config)

    path = config['structure']['path']
    mode = 'always' if args.learn else config['structure'].get('learn', 'auto')
    if mode == 'always' or (mode == 'auto' and not os.path.exists(path)):
        logger.info(f"邻接表不存在或指定了学习，执行K2结构学习: {path}")
        structure = learn_structure(store, config, path)
    else:
        structure = NetworkStructure.from_adjacency(path)

    network = BeliefNetwork(store, structure)
    belief = network.infer(query.target, query.evidence)

    logger.info("=" * 80)
    logger.info(f"Result: {query}")
    logger.info("=" * 80)
    for state, value in belief.items():
        print(f"{value:f}\t{query.target}={state}")
    return 0


def run_learn(config: dict, args: argparse.Namespace) -> int:
    store = load_store(config)
    output = args.output or config['structure']['path']
    structure = learn_structure(store, config, output)
    for parent, child in structure.edges:
        print(f"{parent} -> {child}")
    return 0


def run_evaluate(config: dict, args: argparse.Namespace) -> int:
    data = config['data']
    if not data.get('path'):
        raise BeliefNetError("未指定数据文件（DATA参数或配置 data.path）")
    settings = config['evaluation']

    condition = parse_query(f"P({args.target}|{args.condition})").evidence if args.condition else []
    estimator = IncrementalEstimator(
        FrequencyStore(data['path'], sep=data.get('sep') or ','),
        weight=settings['weight'],
        top_k=settings['top_k']
    )
    result = estimator.run(
        args.target,
        args.user_column,
        args.user_value,
        condition=condition,
        row_count=args.rows if args.rows is not None else data.get('row_limit')
    )

    summary = result.summary(settings['window'])
    if args.report:
        save_metadata(summary, args.report)
        logger.info(f"评估报告已保存: {args.report}")
    print(" ".join(str(hit) for hit in result.hits))
    print(f"accuracy={summary['accuracy']:.4f} ({summary['hits']}/{summary['n_estimates']})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='离散贝叶斯网络推断与K2结构学习')
    parser.add_argument('--config', type=str, default=None, help='配置文件路径（YAML）')
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='日志级别')
    subparsers = parser.add_subparsers(dest='command')

    infer = subparsers.add_parser('infer', help='对查询表达式进行推断')
    infer.add_argument('data', nargs='?', help='CSV数据文件')
    infer.add_argument('--structure', type=str, default=None, help='邻接表文件路径')
    infer.add_argument('--learn', action='store_true', help='总是用K2重新学习结构')
    infer.add_argument('--query', type=str, required=True, help='查询表达式，例如 "P(C|A=1,B=0)"')
    infer.add_argument('--rows', type=int, default=None, help='读取的最大行数')

    learn = subparsers.add_parser('learn', help='K2结构学习')
    learn.add_argument('data', nargs='?', help='CSV数据文件')
    learn.add_argument('--output', type=str, default=None, help='邻接表输出路径')
    learn.add_argument('--ordering', type=str, nargs='+', default=None, help='变量顺序')
    learn.add_argument('--max-parents', type=int, default=None, help='父节点数上限')
    learn.add_argument('--rows', type=int, default=None, help='读取的最大行数')

    evaluate = subparsers.add_parser('evaluate', help='逐行推定评估')
    evaluate.add_argument('data', nargs='?', help='CSV数据文件')
    evaluate.add_argument('--target', type=str, required=True, help='推定对象变量')
    evaluate.add_argument('--user-column', type=str, required=True, help='用户列名')
    evaluate.add_argument('--user-value', type=str, required=True, help='用户值')
    evaluate.add_argument('--condition', type=str, default=None, help='其他条件，例如 "A=1,B=0"')
    evaluate.add_argument('--rows', type=int, default=None, help='预先读入的行数')
    evaluate.add_argument('--weight', type=float, default=None, help='推定权重（0=MLE, 1=MAP）')
    evaluate.add_argument('--top-k', type=int, default=None, help='命中判定的前k位')
    evaluate.add_argument('--report', type=str, default=None, help='评估报告输出路径（YAML）')

    return parser


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """命令行参数覆盖配置文件的值"""
    if getattr(args, 'data', None):
        config['data']['path'] = args.data
    if getattr(args, 'rows', None) is not None and args.command != 'evaluate':
        config['data']['row_limit'] = args.rows
    if getattr(args, 'structure', None):
        config['structure']['path'] = args.structure
    if getattr(args, 'ordering', None):
        config['structure']['ordering'] = args.ordering
    if getattr(args, 'max_parents', None) is not None:
        config['structure']['max_parents'] = args.max_parents
    if getattr(args, 'weight', None) is not None:
        config['evaluation']['weight'] = args.weight
    if getattr(args, 'top_k', None) is not None:
        config['evaluation']['top_k'] = args.top_k
    if args.log_level:
        config['logging']['level'] = args.log_level
    return config


def main(argv=None) -> int:
    """主函数"""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    handlers = {
        'infer': run_infer,
        'learn': run_learn,
        'evaluate': run_evaluate,
    }
    try:
        # 加载配置
        config = apply_overrides(load_config(args.config), args)
        set_log_level(config['logging']['level'])
        return handlers[args.command](config, args)
    except BeliefNetError as e:
        logger.error(f"处理失败: {e}", exc_info=True)
        return 2


if __name__ == '__main__':
    sys.exit(main())
