"""Operator nodes with a single operand: sin and cos, plus the sqrt and negation shortcuts."""

from __future__ import annotations

import math

from exprdiff.binary import create_binary_op_node
from exprdiff.edges import Edge, EdgeSet
from exprdiff.node import DEFAULT_INDEX, Node, OPNode, OpCode, PNode
from exprdiff.tape import Workspace


def _unsupported(op: OpCode) -> ValueError:
    return ValueError(f"operator {op.name} is not supported by a unary node")


class UnaryOPNode(OPNode):
    """A node applying ``op`` to its single operand ``left``.

    On the value tape it records ``x, x_bar, w, w_bar, dh/du``.
    """

    def _value_and_partial(self, lx: float) -> tuple[float, float]:
        op = self.op
        if op is OpCode.SIN:
            return math.sin(lx), math.cos(lx)
        if op is OpCode.COS:
            return math.cos(lx), -math.sin(lx)
        raise _unsupported(op)

    def _second_partial(self, lx: float) -> float:
        op = self.op
        if op is OpCode.SIN:
            return -math.sin(lx)
        if op is OpCode.COS:
            return -math.cos(lx)
        raise _unsupported(op)

    def collect_vnodes(self, nodes: set) -> int:
        return 1 + self.left.collect_vnodes(nodes)

    def eval_function(self, ws: Workspace) -> None:
        self.left.eval_function(ws)
        lx = ws.values.pop()
        value, _ = self._value_and_partial(lx)
        ws.values.push(value)

    def grad_reverse_0(self, ws: Workspace) -> None:
        self.adj = 0.0
        self.left.grad_reverse_0(ws)
        lx = ws.values.pop()
        value, l_dh = self._value_and_partial(lx)
        ws.values.push(value)
        ws.partials.push(l_dh)

    def grad_reverse_1(self, ws: Workspace) -> None:
        self.left.update_adj(ws.partials.pop() * self.adj)
        self.left.grad_reverse_1(ws)

    def hess_reverse_0_init_n_in_arcs(self) -> None:
        self.left.hess_reverse_0_init_n_in_arcs()
        super().hess_reverse_0_init_n_in_arcs()

    def hess_reverse_1_clear_index(self) -> None:
        self.left.hess_reverse_1_clear_index()
        super().hess_reverse_1_clear_index()

    def hess_reverse_0(self, ws: Workspace) -> int:
        if self.index == DEFAULT_INDEX:
            lindex = self.left.hess_reverse_0(ws)
            ws.indices.append(lindex)
            lx, _, lw, _ = self.left.hess_reverse_0_get_values(ws, lindex)
            x, l_dh = self._value_and_partial(lx)
            w = lw * l_dh
            for entry in (x, 0.0, w, 0.0, l_dh):
                ws.tape.append(entry)
            self.index = ws.tape.index
        return self.index

    def hess_reverse_0_get_values(self, ws: Workspace, i: int) -> tuple[float, float, float, float]:
        tape = ws.tape
        return tape[i - 5], tape[i - 4], tape[i - 3], tape[i - 2]

    def hess_reverse_1(self, ws: Workspace, i: int) -> None:
        self.n_in_arcs -= 1
        if self.n_in_arcs != 0:
            return
        ws.indices.index -= 1
        lindex = ws.indices[ws.indices.index]
        tape = ws.tape
        l_dh = tape[i - 1]
        w_bar = tape[i - 2]
        x_bar = tape[i - 4]

        self.left.update_x_bar(ws, lindex, x_bar * l_dh)
        lw, lx = self.left.hess_reverse_1_get_xw(ws, lindex)
        lw_bar = w_bar * l_dh + x_bar * lw * self._second_partial(lx)
        self.left.update_w_bar(ws, lindex, lw_bar)
        self.left.hess_reverse_1(ws, lindex)

    def hess_reverse_1_init_x_bar(self, ws: Workspace, i: int) -> None:
        ws.tape[i - 4] = 1.0

    def update_x_bar(self, ws: Workspace, i: int, v: float) -> None:
        ws.tape[i - 4] += v

    def update_w_bar(self, ws: Workspace, i: int, v: float) -> None:
        ws.tape[i - 2] += v

    def hess_reverse_1_get_xw(self, ws: Workspace, i: int) -> tuple[float, float]:
        return ws.tape[i - 3], ws.tape[i - 5]

    def hess_reverse_get_x(self, ws: Workspace, i: int) -> float:
        return ws.tape[i - 5]

    def nonlinear_edges(self, edges: EdgeSet) -> None:
        left = self.left
        for edge in list(edges):
            if edge.a is not self and edge.b is not self:
                continue
            if edge.a is self and edge.b is self:
                edges.insert(Edge(left, left))
            else:
                other = edge.b if edge.a is self else edge.a
                edges.insert(Edge(left, other))
            edges.remove(edge)

        if self.op not in (OpCode.SIN, OpCode.COS):
            raise _unsupported(self.op)
        edges.insert(Edge(left, left))
        left.nonlinear_edges(edges)

    def inorder_visit(self, level: int) -> str:
        return self.left.inorder_visit(level + 1) + self.to_string(level) + "\n"

    def to_string(self, level: int) -> str:
        return "\t" * level + f"[UnaryOPNode]({self.op.name})"


def create_unary_op_node(op: OpCode, left: Node) -> OPNode:
    """Build a node applying ``op`` to one operand.

    Square root becomes ``left ** 0.5`` and negation becomes ``left * -1``.
    """
    if left is None:
        raise ValueError("unary operator node needs an operand")
    if op is OpCode.SQRT:
        return create_binary_op_node(OpCode.POW, left, PNode(0.5))
    if op is OpCode.NEG:
        return create_binary_op_node(OpCode.TIMES, left, PNode(-1.0))
    return UnaryOPNode(op, left)


__all__ = ["UnaryOPNode", "create_unary_op_node"]