"""Expression tree nodes: the abstract node, parameters, variables and operators."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum, auto

from exprdiff.edges import Edge, EdgeSet
from exprdiff.tape import Workspace

DEFAULT_INDEX = 0


class OpCode(Enum):
    """Operators an expression node can apply."""

    PLUS = auto()
    MINUS = auto()
    TIMES = auto()
    DIVIDE = auto()
    POW = auto()
    SQRT = auto()
    NEG = auto()
    SIN = auto()
    COS = auto()


class NodeType(Enum):
    """The kind of a node."""

    VNODE = auto()
    PNODE = auto()
    OPNODE = auto()


def _fmt(value: float) -> str:
    return format(value, "g")


class Node(ABC):
    """A node of an expression tree.

    ``index`` is the node's position on the value tape (0 when not recorded)
    and ``n_in_arcs`` counts the arcs entering it during Hessian evaluation.
    """

    node_type: NodeType

    def __init__(self) -> None:
        self.index = DEFAULT_INDEX
        self.n_in_arcs = 0

    @abstractmethod
    def eval_function(self, ws: Workspace) -> None:
        """Push the node's value onto ``ws.values``."""

    @abstractmethod
    def grad_reverse_0(self, ws: Workspace) -> None:
        """Forward sweep of reverse-mode gradient evaluation."""

    @abstractmethod
    def grad_reverse_1(self, ws: Workspace) -> None:
        """Reverse sweep propagating adjoints to the children."""

    @abstractmethod
    def update_adj(self, v: float) -> None:
        """Add ``v`` to the node's adjoint."""

    @abstractmethod
    def hess_reverse_0(self, ws: Workspace) -> int:
        """Record the node on the tape once and return its tape index."""

    def hess_reverse_0_init_n_in_arcs(self) -> None:
        """Count one more arc entering this node."""
        self.n_in_arcs += 1

    @abstractmethod
    def hess_reverse_0_get_values(self, ws: Workspace, i: int) -> tuple[float, float, float, float]:
        """Return ``(x, x_bar, w, w_bar)`` recorded ending at tape index ``i``."""

    @abstractmethod
    def hess_reverse_1(self, ws: Workspace, i: int) -> None:
        """Reverse sweep of the Hessian-vector evaluation."""

    @abstractmethod
    def hess_reverse_1_init_x_bar(self, ws: Workspace, i: int) -> None:
        """Seed the node's x_bar with one."""

    @abstractmethod
    def update_x_bar(self, ws: Workspace, i: int, v: float) -> None:
        """Add ``v`` to the recorded x_bar."""

    @abstractmethod
    def update_w_bar(self, ws: Workspace, i: int, v: float) -> None:
        """Add ``v`` to the recorded w_bar."""

    @abstractmethod
    def hess_reverse_1_get_xw(self, ws: Workspace, i: int) -> tuple[float, float]:
        """Return the recorded ``(w, x)``."""

    @abstractmethod
    def hess_reverse_get_x(self, ws: Workspace, i: int) -> float:
        """Return the recorded x."""

    def hess_reverse_1_clear_index(self) -> None:
        """Forget the node's tape position."""
        self.index = DEFAULT_INDEX

    @abstractmethod
    def collect_vnodes(self, nodes: set) -> int:
        """Add variable nodes to ``nodes``; return the number of nodes visited."""

    @abstractmethod
    def nonlinear_edges(self, edges: EdgeSet) -> None:
        """Rewrite ``edges`` to describe nonlinear interactions below this node."""

    @abstractmethod
    def inorder_visit(self, level: int) -> str:
        """Return an indented in-order listing of the subtree."""

    @abstractmethod
    def to_string(self, level: int) -> str:
        """Return a one-line description indented by ``level`` tabs."""


class PNode(Node):
    """A constant parameter."""

    node_type = NodeType.PNODE

    def __init__(self, value: float) -> None:
        if math.isnan(value):
            raise ValueError("parameter value must not be NaN")
        super().__init__()
        self.pval = value

    def eval_function(self, ws: Workspace) -> None:
        ws.values.push(self.pval)

    def grad_reverse_0(self, ws: Workspace) -> None:
        ws.values.push(self.pval)

    def grad_reverse_1(self, ws: Workspace) -> None:
        """Parameters have no children; nothing to propagate."""

    def update_adj(self, v: float) -> None:
        """Parameters carry no adjoint."""

    def hess_reverse_0(self, ws: Workspace) -> int:
        if self.index == DEFAULT_INDEX:
            ws.tape.append(self.pval)
            self.index = ws.tape.index
        return self.index

    def hess_reverse_0_get_values(self, ws: Workspace, i: int) -> tuple[float, float, float, float]:
        return ws.tape[i - 1], 0.0, 0.0, 0.0

    def hess_reverse_1(self, ws: Workspace, i: int) -> None:
        self.n_in_arcs -= 1

    def hess_reverse_1_init_x_bar(self, ws: Workspace, i: int) -> None:
        """Parameters carry no x_bar."""

    def update_x_bar(self, ws: Workspace, i: int, v: float) -> None:
        """Parameters carry no x_bar."""

    def update_w_bar(self, ws: Workspace, i: int, v: float) -> None:
        """Parameters carry no w_bar."""

    def hess_reverse_1_get_xw(self, ws: Workspace, i: int) -> tuple[float, float]:
        return 0.0, ws.tape[i - 1]

    def hess_reverse_get_x(self, ws: Workspace, i: int) -> float:
        return ws.tape[i - 1]

    def collect_vnodes(self, nodes: set) -> int:
        return 1

    def nonlinear_edges(self, edges: EdgeSet) -> None:
        for edge in list(edges):
            if edge.a is self or edge.b is self:
                edges.remove(edge)

    def inorder_visit(self, level: int) -> str:
        return self.to_string(level) + "\n"

    def to_string(self, level: int) -> str:
        return "\t" * level + f"[PNode]({_fmt(self.pval)})"


class VNode(Node):
    """An independent variable with value ``val`` and direction component ``u``."""

    node_type = NodeType.VNODE

    def __init__(self, value: float = math.nan) -> None:
        super().__init__()
        self.val = value
        self.u = math.nan
        self.adj = 0.0

    def eval_function(self, ws: Workspace) -> None:
        ws.values.push(self.val)

    def grad_reverse_0(self, ws: Workspace) -> None:
        self.adj = 0.0
        ws.values.push(self.val)

    def grad_reverse_1(self, ws: Workspace) -> None:
        """Variables are leaves; nothing to propagate."""

    def update_adj(self, v: float) -> None:
        self.adj += v

    def hess_reverse_0(self, ws: Workspace) -> int:
        if self.index == DEFAULT_INDEX:
            tape = ws.tape
            tape.append(self.val)
            tape.append(math.nan)
            tape.append(self.u)
            tape.append(math.nan)
            self.index = tape.index
        return self.index

    def hess_reverse_0_get_values(self, ws: Workspace, i: int) -> tuple[float, float, float, float]:
        tape = ws.tape
        return tape[i - 4], tape[i - 3], tape[i - 2], tape[i - 1]

    def hess_reverse_1(self, ws: Workspace, i: int) -> None:
        self.n_in_arcs -= 1

    def hess_reverse_1_init_x_bar(self, ws: Workspace, i: int) -> None:
        ws.tape[i - 3] = 1.0

    @staticmethod
    def _accumulate(ws: Workspace, pos: int, v: float) -> None:
        current = ws.tape[pos]
        ws.tape[pos] = v if math.isnan(current) else current + v

    def update_x_bar(self, ws: Workspace, i: int, v: float) -> None:
        self._accumulate(ws, i - 3, v)

    def update_w_bar(self, ws: Workspace, i: int, v: float) -> None:
        self._accumulate(ws, i - 1, v)

    def hess_reverse_1_get_xw(self, ws: Workspace, i: int) -> tuple[float, float]:
        return ws.tape[i - 2], ws.tape[i - 4]

    def hess_reverse_get_x(self, ws: Workspace, i: int) -> float:
        return ws.tape[i - 4]

    def collect_vnodes(self, nodes: set) -> int:
        nodes.add(self)
        return 1

    def nonlinear_edges(self, edges: EdgeSet) -> None:
        """Variables introduce no nonlinear edges of their own."""

    def inorder_visit(self, level: int) -> str:
        return self.to_string(level) + "\n"

    def to_string(self, level: int) -> str:
        return (
            "\t" * level
            + f"[VNode](index:{self.index},val:{_fmt(self.val)},u:{_fmt(self.u)}) - {id(self):#x}"
        )


class OPNode(Node):
    """A node applying operator ``op``; ``left`` is its first operand."""

    node_type = NodeType.OPNODE

    def __init__(self, op: OpCode, left: Node) -> None:
        if left is None:
            raise ValueError("operator node needs an operand")
        super().__init__()
        self.op = op
        self.left = left
        self.val = math.nan
        self.adj = 0.0

    def update_adj(self, v: float) -> None:
        self.adj += v


__all__ = ["DEFAULT_INDEX", "Edge", "Node", "NodeType", "OPNode", "OpCode", "PNode", "VNode"]