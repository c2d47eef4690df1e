"""Operator nodes with two operands: +, -, *, / and ** ."""

from __future__ import annotations

import math

from exprdiff.edges import Edge, EdgeSet
from exprdiff.node import DEFAULT_INDEX, Node, NodeType, OPNode, OpCode
from exprdiff.tape import Workspace

_BINARY_OPS = frozenset({OpCode.PLUS, OpCode.MINUS, OpCode.TIMES, OpCode.DIVIDE, OpCode.POW})


def _unsupported(op: OpCode) -> ValueError:
    return ValueError(f"operator {op.name} is not supported by a binary node")


def _require_positive_base(lx: float) -> None:
    if not lx > 0.0:
        raise ValueError(f"power with a variable exponent needs a positive base, got {lx}")


class BinaryOPNode(OPNode):
    """A node applying ``op`` to ``left`` and ``right``."""

    def __init__(self, op: OpCode, left: Node, right: Node) -> None:
        if right is None:
            raise ValueError("binary operator node needs a right operand")
        super().__init__(op, left)
        self.right = right

    @property
    def _right_is_param(self) -> bool:
        return self.right.node_type is NodeType.PNODE

    def _apply(self, lx: float, rx: float) -> float:
        op = self.op
        if op is OpCode.PLUS:
            return lx + rx
        if op is OpCode.MINUS:
            return lx - rx
        if op is OpCode.TIMES:
            return lx * rx
        if op is OpCode.DIVIDE:
            return lx / rx
        if op is OpCode.POW:
            return math.pow(lx, rx)
        raise _unsupported(op)

    def _partials(self, lx: float, rx: float) -> tuple[float, float, float]:
        """Return the value and the partial derivatives with respect to each operand."""
        op = self.op
        if op is OpCode.PLUS:
            return lx + rx, 1.0, 1.0
        if op is OpCode.MINUS:
            return lx - rx, 1.0, -1.0
        if op is OpCode.TIMES:
            return lx * rx, rx, lx
        if op is OpCode.DIVIDE:
            return lx / rx, 1.0 / rx, -lx / math.pow(rx, 2)
        if op is OpCode.POW:
            x = math.pow(lx, rx)
            l_dh = rx * math.pow(lx, rx - 1)
            if self._right_is_param:
                return x, l_dh, 0.0
            _require_positive_base(lx)
            return x, l_dh, x * math.log(lx)
        raise _unsupported(op)

    def collect_vnodes(self, nodes: set) -> int:
        return 1 + self.left.collect_vnodes(nodes) + self.right.collect_vnodes(nodes)

    def eval_function(self, ws: Workspace) -> None:
        self.left.eval_function(ws)
        self.right.eval_function(ws)
        rx = ws.values.pop()
        lx = ws.values.pop()
        ws.values.push(self._apply(lx, rx))

    def grad_reverse_0(self, ws: Workspace) -> None:
        self.adj = 0.0
        self.left.grad_reverse_0(ws)
        self.right.grad_reverse_0(ws)
        rx = ws.values.pop()
        lx = ws.values.pop()
        x, l_dh, r_dh = self._partials(lx, rx)
        ws.values.push(x)
        ws.partials.push(l_dh)
        ws.partials.push(r_dh)

    def grad_reverse_1(self, ws: Workspace) -> None:
        self.right.update_adj(ws.partials.pop() * self.adj)
        self.left.update_adj(ws.partials.pop() * self.adj)
        self.right.grad_reverse_1(ws)
        self.left.grad_reverse_1(ws)

    def hess_reverse_0_init_n_in_arcs(self) -> None:
        self.left.hess_reverse_0_init_n_in_arcs()
        self.right.hess_reverse_0_init_n_in_arcs()
        super().hess_reverse_0_init_n_in_arcs()

    def hess_reverse_1_clear_index(self) -> None:
        self.left.hess_reverse_1_clear_index()
        self.right.hess_reverse_1_clear_index()
        super().hess_reverse_1_clear_index()

    def hess_reverse_0(self, ws: Workspace) -> int:
        if self.index == DEFAULT_INDEX:
            lindex = self.left.hess_reverse_0(ws)
            rindex = self.right.hess_reverse_0(ws)
            ws.indices.append(lindex)
            ws.indices.append(rindex)
            rx, _, rw, _ = self.right.hess_reverse_0_get_values(ws, rindex)
            lx, _, lw, _ = self.left.hess_reverse_0_get_values(ws, lindex)
            x, l_dh, r_dh = self._partials(lx, rx)
            w = lw * l_dh + rw * r_dh
            for entry in (x, 0.0, w, 0.0, l_dh, r_dh):
                ws.tape.append(entry)
            self.index = ws.tape.index
        return self.index

    def hess_reverse_0_get_values(self, ws: Workspace, i: int) -> tuple[float, float, float, float]:
        tape = ws.tape
        return tape[i - 6], tape[i - 5], tape[i - 4], tape[i - 3]

    @staticmethod
    def _pop_index(ws: Workspace) -> int:
        ws.indices.index -= 1
        return ws.indices[ws.indices.index]

    def _second_order(
        self,
        lx: float,
        lw: float,
        rx: float,
        rw: float,
        x_bar: float,
        w_bar: float,
        l_dh: float,
        r_dh: float,
    ) -> tuple[float, float]:
        op = self.op
        lw_bar = w_bar * l_dh
        rw_bar = w_bar * r_dh
        if op in (OpCode.PLUS, OpCode.MINUS):
            pass
        elif op is OpCode.TIMES:
            lw_bar += x_bar * rw
            rw_bar += x_bar * lw
        elif op is OpCode.DIVIDE:
            rx2 = math.pow(rx, 2)
            lw_bar += -x_bar * rw / rx2
            rw_bar += -x_bar * lw / rx2 + x_bar * rw * 2 * lx / math.pow(rx, 3)
        elif op is OpCode.POW:
            lw_bar += x_bar * lw * math.pow(lx, rx - 2) * rx * (rx - 1)
            if not self._right_is_param:
                _require_positive_base(lx)
                log_lx = math.log(lx)
                cross = math.pow(lx, rx - 1) * (rx * log_lx + 1)
                lw_bar += x_bar * rw * cross
                rw_bar += x_bar * lw * cross + x_bar * rw * math.pow(lx, rx) * log_lx**2
        else:
            raise _unsupported(op)
        return lw_bar, rw_bar

    def hess_reverse_1(self, ws: Workspace, i: int) -> None:
        self.n_in_arcs -= 1
        if self.n_in_arcs != 0:
            return
        rindex = self._pop_index(ws)
        lindex = self._pop_index(ws)
        tape = ws.tape
        r_dh = tape[i - 1]
        l_dh = tape[i - 2]
        w_bar = tape[i - 3]
        x_bar = tape[i - 5]

        lw, lx = self.left.hess_reverse_1_get_xw(ws, lindex)
        rw, rx = self.right.hess_reverse_1_get_xw(ws, rindex)
        lw_bar, rw_bar = self._second_order(lx, lw, rx, rw, x_bar, w_bar, l_dh, r_dh)

        self.right.update_x_bar(ws, rindex, x_bar * r_dh)
        self.left.update_x_bar(ws, lindex, x_bar * l_dh)
        self.right.update_w_bar(ws, rindex, rw_bar)
        self.left.update_w_bar(ws, lindex, lw_bar)

        self.right.hess_reverse_1(ws, rindex)
        self.left.hess_reverse_1(ws, lindex)

    def hess_reverse_1_init_x_bar(self, ws: Workspace, i: int) -> None:
        ws.tape[i - 5] = 1.0

    def update_x_bar(self, ws: Workspace, i: int, v: float) -> None:
        ws.tape[i - 5] += v

    def update_w_bar(self, ws: Workspace, i: int, v: float) -> None:
        ws.tape[i - 3] += v

    def hess_reverse_1_get_xw(self, ws: Workspace, i: int) -> tuple[float, float]:
        return ws.tape[i - 4], ws.tape[i - 6]

    def hess_reverse_get_x(self, ws: Workspace, i: int) -> float:
        return ws.tape[i - 6]

    def nonlinear_edges(self, edges: EdgeSet) -> None:
        left, right = self.left, self.right
        for edge in list(edges):
            if edge.a is not self and edge.b is not self:
                continue
            if edge.a is self and edge.b is self:
                edges.insert(Edge(left, left))
                edges.insert(Edge(right, right))
                edges.insert(Edge(left, right))
            else:
                other = edge.b if edge.a is self else edge.a
                edges.insert(Edge(left, other))
                edges.insert(Edge(right, other))
            edges.remove(edge)

        op = self.op
        if op in (OpCode.PLUS, OpCode.MINUS):
            pass
        elif op is OpCode.TIMES:
            edges.insert(Edge(left, right))
        elif op is OpCode.DIVIDE:
            edges.insert(Edge(left, right))
            edges.insert(Edge(right, right))
        elif op is OpCode.POW:
            edges.insert(Edge(left, right))
            edges.insert(Edge(left, left))
            edges.insert(Edge(right, right))
        else:
            raise _unsupported(op)
        left.nonlinear_edges(edges)
        right.nonlinear_edges(edges)

    def inorder_visit(self, level: int) -> str:
        return (
            self.left.inorder_visit(level + 1)
            + self.to_string(level)
            + "\n"
            + self.right.inorder_visit(level + 1)
        )

    def to_string(self, level: int) -> str:
        return "\t" * level + f"[BinaryOPNode]({self.op.name})"


def create_binary_op_node(op: OpCode, left: Node, right: Node) -> BinaryOPNode:
    """Build a node applying ``op`` to two operands."""
    if left is None or right is None:
        raise ValueError("binary operator node needs two operands")
    return BinaryOPNode(op, left, right)


__all__ = ["BinaryOPNode", "create_binary_op_node"]