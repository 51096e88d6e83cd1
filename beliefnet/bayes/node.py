#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络节点
单连通网络（多重树）上的Pearl消息传递

记号:
    π(X)   : π证据，来自祖先方向的证据  Σ_u P(X|u) Π π_X(u_i)
    λ(X)   : λ证据，来自子孙方向的证据      e(X) Π λ_Vj(X)
    π_V(X) : X发送给子节点V的π消息（写入V的槽）
    λ_X(U) : X发送给父节点U的λ消息（写入X自身以U命名的槽，由U读取）
    后验    : α π(X) λ(X)
"""
import itertools
from typing import Dict, Iterator, List, Optional, Set, Tuple, TYPE_CHECKING

from beliefnet.errors import (
    MissingMessageError,
    SourceUnavailableError,
    UnknownStateError,
    UnknownVariableError,
)
from beliefnet.utils.logging import setup_logger

if TYPE_CHECKING:
    from beliefnet.bayes.network import BeliefNetwork

logger = setup_logger("belief_node")

Assignment = Tuple[Tuple[str, str], ...]

_REQUEST_IDS = itertools.count(1)


class PropagationContext:
    """
    一次传播请求的遍历状态

    每次calc_probs新建一个，因此前后请求之间的访问标记互不影响
    """

    def __init__(self, origin: str):
        self.origin = origin
        self.request_id = next(_REQUEST_IDS)
        self.gathered: Set[str] = set()
        self.visited: Set[str] = set()
        self.gather_trace: List[str] = []
        self.trace: List[str] = []

    def enter_gather(self, name: str) -> bool:
        """收集阶段：首次到达返回True"""
        if name in self.gathered:
            return False
        self.gathered.add(name)
        self.gather_trace.append(name)
        return True

    def enter_transmit(self, name: str) -> bool:
        """发送阶段：首次到达返回True"""
        if name in self.visited:
            return False
        self.visited.add(name)
        self.trace.append(name)
        return True

    def is_visited(self, name: str) -> bool:
        return name in self.visited


class BeliefNode:
    """
    贝叶斯网络上的一个随机变量

    节点之间只保存名字，通过所属网络解析，节点不拥有其他节点
    """

    def __init__(self, name: str, store, network: Optional['BeliefNetwork'] = None):
        """
        初始化节点，由无条件频数计算先验概率

        Args:
            name: 变量名
            store: FrequencyStore
            network: 所属网络
        """
        self.name = name
        self.store = store
        self.network = network
        self.depth = 0

        counts, total = store.frequency(name)
        if total <= 0:
            raise SourceUnavailableError(f"变量 {name} 没有可用数据")
        self.elements: List[str] = list(counts)
        self.prior: Dict[str, float] = {state: count / total for state, count in counts.items()}

        self.parents: List[str] = []
        self.children: List[str] = []

        self.evi_pi: Dict[str, float] = {}
        self.evi_lambda: Dict[str, float] = {}
        self.evidence: Dict[str, float] = {}
        self.posterior: Dict[str, float] = {}
        self.msg_pi: Dict[str, Dict[str, float]] = {}
        self.msg_lambda: Dict[str, Dict[str, float]] = {}
        self._cpt_cache: Dict[Assignment, Dict[str, float]] = {}

    def __repr__(self) -> str:
        return f"BeliefNode({self.name!r}, parents={self.parents}, children={self.children})"

    # ------------------------------------------------------------------
    # 结构
    # ------------------------------------------------------------------

    def add_parent(self, name: str) -> None:
        if name not in self.parents:
            self.parents.append(name)

    def add_child(self, name: str) -> None:
        if name not in self.children:
            self.children.append(name)

    @property
    def is_root(self) -> bool:
        return not self.parents

    def reset(self) -> None:
        """清空所有消息、证据、后验（format时调用）"""
        self.evi_pi.clear()
        self.evi_lambda.clear()
        self.evidence.clear()
        self.posterior.clear()
        self.msg_pi.clear()
        self.msg_lambda.clear()
        self._cpt_cache.clear()

    def _node(self, name: str) -> 'BeliefNode':
        if self.network is None:
            raise MissingMessageError(f"{self.name} 不属于任何网络")
        return self.network.get_node(name)

    # ------------------------------------------------------------------
    # 基本计算
    # ------------------------------------------------------------------

    def cal_prior(self, state: str) -> float:
        """
        返回先验概率 P(X=state)

        Args:
            state: 状态名

        Returns:
            先验概率
        """
        try:
            return self.prior[state]
        except KeyError:
            raise UnknownStateError(self.name, state)

    def conditional(self, assignment: Assignment) -> Dict[str, float]:
        """
        条件概率 P(X | 父节点赋值)，零计数时使用均匀分布

        Args:
            assignment: ((父节点名, 状态), ...)

        Returns:
            本节点状态 -> 条件概率
        """
        key = tuple(sorted(assignment))
        cached = self._cpt_cache.get(key)
        if cached is not None:
            return cached
        counts, total = self.store.frequency(self.name, list(key))
        probs = {state: (counts.get(state, 0) / total if total > 0 else 0.0) for state in self.elements}
        self._cpt_cache[key] = probs
        return probs

    def cal_evi_pi(self) -> None:
        """
        计算π证据: 根节点为先验概率，否则 Σ_u P(X|u) Π π_X(u_i)
        """
        if not self.parents:
            for state in self.elements:
                self._require(self.evi_pi, state, "π证据")
                self.evi_pi[state] = self.cal_prior(state)
            return

        totals = {state: 0.0 for state in self.elements}
        for assignment in self._parent_assignments(self.parents):
            weight = self._pi_weight(assignment)
            if weight == 0.0:
                continue
            probs = self.conditional(assignment)
            for state in self.elements:
                totals[state] += probs[state] * weight

        for state in self.elements:
            self._require(self.evi_pi, state, "π证据")
            self.evi_pi[state] = totals[state]

    def cal_evi_lambda(self) -> None:
        """
        λ证据: 硬证据指示 × 所有子节点写给本节点的λ消息之积，无子节点时为1
        """
        for state in self.elements:
            value = self._require(self.evidence, state, "硬证据")
            for child_name in self.children:
                value *= self._node(child_name).lambda_message(self.name, state)
            self._require(self.evi_lambda, state, "λ证据")
            self.evi_lambda[state] = value

    def cal_normal(self) -> float:
        """
        正规化常数 α = 1 / Σ π(x)λ(x)，总和为0时返回0
        """
        total = 0.0
        for state in self.elements:
            total += self._require(self.evi_pi, state, "π证据") * self._require(self.evi_lambda, state, "λ证据")
        return 0.0 if total == 0 else 1.0 / total

    def cal_prob(self) -> None:
        """后验 = α π(x) λ(x)"""
        alpha = self.cal_normal()
        for state in self.elements:
            self._require(self.posterior, state, "后验")
            self.posterior[state] = alpha * self.evi_pi[state] * self.evi_lambda[state]

    # ------------------------------------------------------------------
    # 消息
    # ------------------------------------------------------------------

    def lambda_message(self, parent: str, state: str) -> float:
        """本节点写给父节点parent的λ消息中，父节点状态state的值"""
        slot = self.msg_lambda.get(parent)
        if slot is None:
            raise MissingMessageError(f"{self.name} 没有发给 {parent} 的λ消息")
        return self._require(slot, state, f"λ消息({parent})")

    def cal_msg_pi(self, child_name: Optional[str]) -> None:
        """
        计算发给子节点的π消息，写入子节点以本节点命名的槽

        π_V(x) = α π(x) e(x) Π_{其他子节点} λ(x)，λ_V(x)≠0 时等于 后验(x) / λ_V(x)

        Args:
            child_name: 子节点名，None表示无发送对象
        """
        if child_name is None:
            return
        if child_name not in self.children:
            raise UnknownVariableError(child_name)
        child = self._node(child_name)
        slot = child.msg_pi.get(self.name)
        if slot is None:
            raise MissingMessageError(f"{child_name} 没有来自 {self.name} 的π消息槽")

        alpha = self.cal_normal()
        others = [self._node(name) for name in self.children if name != child_name]
        for state in self.elements:
            value = alpha * self.evi_pi[state] * self._require(self.evidence, state, "硬证据")
            for other in others:
                value *= other.lambda_message(self.name, state)
            self._require(slot, state, f"π消息({self.name})")
            slot[state] = value
        logger.debug(f"π消息 {self.name} -> {child_name}: {slot}")

    def cal_msg_lambda(self, parent_name: Optional[str]) -> None:
        """
        计算发给父节点的λ消息，写入本节点以父节点命名的槽

        λ_X(u) = Σ_x λ(x) Σ_{其他父节点赋值} P(x|u, 其他) Π π_X(其他)

        Args:
            parent_name: 父节点名，None表示无发送对象
        """
        if parent_name is None or not self.parents:
            return
        if parent_name not in self.parents:
            raise UnknownVariableError(parent_name)
        parent = self._node(parent_name)
        slot = self.msg_lambda.get(parent_name)
        if slot is None:
            raise MissingMessageError(f"{self.name} 没有发给 {parent_name} 的λ消息槽")

        others = [name for name in self.parents if name != parent_name]
        for parent_state in parent.elements:
            subtotal = 0.0
            for assignment in self._parent_assignments(others):
                weight = self._pi_weight(assignment)
                if weight == 0.0:
                    continue
                probs = self.conditional(((parent_name, parent_state),) + assignment)
                for state in self.elements:
                    subtotal += probs[state] * self._require(self.evi_lambda, state, "λ证据") * weight
            slot[parent_state] = subtotal
        logger.debug(f"λ消息 {self.name} -> {parent_name}: {slot}")

    # ------------------------------------------------------------------
    # 传播
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """按当前收到的消息重新计算π/λ证据和后验"""
        self.cal_evi_pi()
        self.cal_evi_lambda()
        self.cal_prob()

    def gather(self, sender: Optional[str], context: PropagationContext) -> None:
        """
        收集阶段（后序）：先让远离sender方向的邻居把消息汇集过来，
        再更新自身，最后向sender发送一条消息

        Args:
            sender: 调用方节点名，None表示传播起点
            context: 本次请求的遍历状态
        """
        if not context.enter_gather(self.name):
            return
        for name in self.parents + self.children:
            if name != sender:
                self._node(name).gather(self.name, context)

        self.refresh()
        if sender is None:
            return
        if sender in self.parents:
            self.cal_msg_lambda(sender)
        else:
            self.cal_msg_pi(sender)

    def transmit(self, sender: Optional[str], context: PropagationContext) -> None:
        """
        发送阶段：从本节点向外，先父节点（λ消息）后子节点（π消息），
        每个节点在一次请求中只处理一次

        Args:
            sender: 调用方节点名，None表示传播起点
            context: 本次请求的遍历状态
        """
        if not context.enter_transmit(self.name):
            return

        for parent_name in self.parents:
            if context.is_visited(parent_name):
                continue
            parent = self._node(parent_name)
            self.cal_msg_lambda(parent_name)
            parent.cal_evi_lambda()
            parent.cal_evi_pi()
            parent.cal_prob()
            logger.debug(f"发送λ消息 {self.name} -> {parent_name}")
            parent.transmit(self.name, context)

        for child_name in self.children:
            if context.is_visited(child_name):
                continue
            child = self._node(child_name)
            self.cal_msg_pi(child_name)
            child.cal_evi_pi()
            child.cal_evi_lambda()
            child.cal_prob()
            logger.debug(f"发送π消息 {self.name} -> {child_name}")
            child.transmit(self.name, context)

    # ------------------------------------------------------------------
    # 内部处理
    # ------------------------------------------------------------------

    def _parent_assignments(self, names: List[str]) -> Iterator[Assignment]:
        """父节点状态的全部组合（names为空时只有一个空组合）"""
        domains = [[(name, state) for state in self._node(name).elements] for name in names]
        for combination in itertools.product(*domains):
            yield tuple(combination)

    def _pi_weight(self, assignment: Assignment) -> float:
        """该父节点赋值下收到的π消息之积"""
        weight = 1.0
        for parent_name, state in assignment:
            slot = self.msg_pi.get(parent_name)
            if slot is None:
                raise MissingMessageError(f"{self.name} 没有来自 {parent_name} 的π消息")
            weight *= self._require(slot, state, f"π消息({parent_name})")
        return weight

    def _require(self, mapping: Dict[str, float], state: str, label: str) -> float:
        try:
            return mapping[state]
        except KeyError:
            raise MissingMessageError(f"{self.name} 缺少 {label}: {state}")

    def describe(self, title: str = "") -> str:
        """
        当前状态的文字表示（用于DEBUG日志）
        """
        lines = [f"[{title}] 节点: {self.name} (depth={self.depth})"]
        for label, values in (
            ("Pb", self.prior),
            ("Pr", self.posterior),
            ("Pe", self.evi_pi),
            ("Le", self.evi_lambda),
        ):
            for state, value in values.items():
                lines.append(f"  {value:f}={label}({self.name}={state})")
        for parent_name, slot in self.msg_pi.items():
            for state, value in slot.items():
                lines.append(f"  {value:f}=Pm({parent_name}={state})")
        for parent_name, slot in self.msg_lambda.items():
            for state, value in slot.items():
                lines.append(f"  {value:f}=Lm({parent_name}={state})")
        return "\n".join(lines)
