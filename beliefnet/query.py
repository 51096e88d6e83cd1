#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
查询表达式解析
将 "P(C|A=1,B=0)" 形式的命令分解为命令名、目标变量和证据
"""
import re
from dataclasses import dataclass, field
from typing import List, Tuple

from beliefnet.errors import QuerySyntaxError
from beliefnet.utils.logging import setup_logger

logger = setup_logger("query_parser")

_QUERY_PATTERN = re.compile(r'^\s*(?P<command>[^()|]*?)\s*\((?P<body>[^()]*)\)\s*$')


@dataclass
class Query:
    """
    解析后的查询

    Attributes:
        command: 命令名（如 "P"）
        target: 目标变量
        evidence: [(变量, 状态), ...]，保持输入顺序
    """
    command: str
    target: str
    evidence: List[Tuple[str, str]] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.evidence:
            return f"{self.command}({self.target})"
        conditions = ",".join(f"{name}={state}" for name, state in self.evidence)
        return f"{self.command}({self.target}|{conditions})"


def _parse_condition(source: str, expression: str) -> Tuple[str, str]:
    if "=" not in source:
        raise QuerySyntaxError(f"条件缺少'=': {source!r} (输入: {expression!r})")
    key, value = source.split("=", 1)
    key, value = key.strip(), value.strip()
    if not key or not value:
        raise QuerySyntaxError(f"条件的变量或状态为空: {source!r} (输入: {expression!r})")
    return key, value


def parse_query(expression: str) -> Query:
    """
    解析查询表达式

    支持:
        P(C)            无证据
        P(C=1)          目标上的 "=状态" 被忽略
        P(C|A=1,B=0)    条件部分为逗号分隔的 变量=状态

    Args:
        expression: 查询表达式

    Returns:
        Query
    """
    match = _QUERY_PATTERN.match(expression or "")
    if match is None:
        raise QuerySyntaxError(f"无效的查询表达式: {expression!r}")

    command = match.group('command')
    body = match.group('body')
    if not command:
        raise QuerySyntaxError(f"缺少命令名: {expression!r}")

    head, _, tail = body.partition("|")
    target = head.split("=", 1)[0].strip()
    if not target:
        raise QuerySyntaxError(f"缺少目标变量: {expression!r}")

    evidence: List[Tuple[str, str]] = []
    if "|" in body:
        for item in tail.split(","):
            evidence.append(_parse_condition(item, expression))

    query = Query(command, target, evidence)
    logger.debug(f"查询解析: {expression!r} -> {query}")
    return query
