import math

import pytest

from exprdiff.binary import BinaryOPNode, create_binary_op_node
from exprdiff.edges import Edge, EdgeSet
from exprdiff.node import OpCode, PNode, VNode
from exprdiff.tape import Workspace

H = 1e-5


def _b(op, left, right):
    return create_binary_op_node(op, left, right)


def _value(root):
    ws = Workspace()
    root.eval_function(ws)
    result = ws.values.pop()
    assert len(ws.values) == 0
    return result


def _gradient(root, variables):
    ws = Workspace()
    root.grad_reverse_0(ws)
    value = ws.values.pop()
    root.adj = 1.0
    root.grad_reverse_1(ws)
    assert len(ws.partials) == 0
    return value, [v.adj for v in variables]


def _hess_vec(root, variables, direction):
    for var, d in zip(variables, direction):
        var.u = d
    ws = Workspace()
    root.hess_reverse_0_init_n_in_arcs()
    idx = root.hess_reverse_0(ws)
    root.hess_reverse_1_init_x_bar(ws, idx)
    root.hess_reverse_1(ws, idx)
    grads, hv = [], []
    for var in variables:
        _, x_bar, _, w_bar = var.hess_reverse_0_get_values(ws, var.index)
        grads.append(x_bar)
        hv.append(w_bar)
    root.hess_reverse_1_clear_index()
    return grads, hv


def _numeric_gradient(root, variables):
    result = []
    for var in variables:
        base = var.val
        var.val = base + H
        up = _value(root)
        var.val = base - H
        down = _value(root)
        var.val = base
        result.append((up - down) / (2 * H))
    return result


def _numeric_hess_vec(root, variables, direction):
    bases = [v.val for v in variables]
    for v, b, d in zip(variables, bases, direction):
        v.val = b + H * d
    _, up = _gradient(root, variables)
    for v, b, d in zip(variables, bases, direction):
        v.val = b - H * d
    _, down = _gradient(root, variables)
    for v, b in zip(variables, bases):
        v.val = b
    return [(a - c) / (2 * H) for a, c in zip(up, down)]


def _cases():
    def product(x, y):
        return _b(OpCode.TIMES, x, y)

    def total(x, y):
        return _b(OpCode.PLUS, x, y)

    def difference(x, y):
        return _b(OpCode.MINUS, x, y)

    def quotient(x, y):
        return _b(OpCode.DIVIDE, x, y)

    def power(x, y):
        return _b(OpCode.POW, x, y)

    def cube(x, y):
        return _b(OpCode.TIMES, _b(OpCode.POW, x, PNode(3.0)), y)

    def ratio(x, y):
        return _b(OpCode.DIVIDE, _b(OpCode.TIMES, x, y), _b(OpCode.PLUS, x, y))

    def mixed(x, y):
        return _b(OpCode.TIMES, _b(OpCode.MINUS, x, y), _b(OpCode.TIMES, x, x))

    def tower(x, y):
        return _b(OpCode.TIMES, _b(OpCode.POW, x, y), y)

    return [product, total, difference, quotient, power, cube, ratio, mixed, tower]


@pytest.mark.parametrize("build", _cases())
def test_gradient_matches_finite_differences(build):
    x, y = VNode(1.7), VNode(0.6)
    root = build(x, y)
    value, grad = _gradient(root, [x, y])
    assert value == pytest.approx(_value(root))
    assert grad == pytest.approx(_numeric_gradient(root, [x, y]), rel=1e-5, abs=1e-7)


@pytest.mark.parametrize("build", _cases())
@pytest.mark.parametrize("direction", [(1.0, 0.0), (0.0, 1.0), (0.3, -0.8)])
def test_hessian_vector_matches_finite_differences(build, direction):
    x, y = VNode(1.7), VNode(0.6)
    root = build(x, y)
    _, expected_grad = _gradient(root, [x, y])
    grads, hv = _hess_vec(root, [x, y], direction)
    assert grads == pytest.approx(expected_grad, rel=1e-9, abs=1e-12)
    assert hv == pytest.approx(_numeric_hess_vec(root, [x, y], direction), rel=1e-4, abs=1e-6)


def test_hessian_sweep_resets_state():
    x, y = VNode(1.7), VNode(0.6)
    root = _b(OpCode.TIMES, _b(OpCode.PLUS, x, y), x)
    _hess_vec(root, [x, y], (1.0, 1.0))
    assert root.index == 0 and x.index == 0 and y.index == 0
    assert root.n_in_arcs == 0 and x.n_in_arcs == 0 and y.n_in_arcs == 0


def test_product_gradient_uses_operand_values():
    x, y = VNode(3.0), VNode(5.0)
    value, grad = _gradient(_b(OpCode.TIMES, x, y), [x, y])
    assert value == 15.0
    assert grad == [y.val, x.val]


def test_power_with_parameter_evaluates():
    x = VNode(2.0)
    assert _value(_b(OpCode.POW, x, PNode(3.0))) == 8.0


def test_hess_reverse_0_records_six_entries_once():
    x, y = VNode(3.0), VNode(5.0)
    root = _b(OpCode.TIMES, x, y)
    ws = Workspace()
    idx = root.hess_reverse_0(ws)
    assert idx == len(ws.tape) == 4 + 4 + 6
    assert root.hess_reverse_0(ws) == idx
    assert len(ws.tape) == idx
    assert root.hess_reverse_get_x(ws, idx) == _value(root)
    x_val, x_bar, _, w_bar = root.hess_reverse_0_get_values(ws, idx)
    assert x_val == _value(root)
    assert (x_bar, w_bar) == (0.0, 0.0)
    assert [ws.indices[0], ws.indices[1]] == [x.index, y.index]


def test_bar_updates_accumulate():
    x, y = VNode(3.0), VNode(5.0)
    x.u = y.u = 1.0
    root = _b(OpCode.PLUS, x, y)
    ws = Workspace()
    idx = root.hess_reverse_0(ws)
    root.hess_reverse_1_init_x_bar(ws, idx)
    root.update_x_bar(ws, idx, 2.5)
    root.update_w_bar(ws, idx, 0.25)
    root.update_w_bar(ws, idx, 0.25)
    _, x_bar, w, w_bar = root.hess_reverse_0_get_values(ws, idx)
    assert x_bar == 1.0 + 2.5
    assert w_bar == 0.25 + 0.25
    assert root.hess_reverse_1_get_xw(ws, idx) == (w, _value(root))


def test_collect_vnodes_counts_every_visit():
    x, y = VNode(1.0), VNode(2.0)
    root = _b(OpCode.PLUS, _b(OpCode.TIMES, x, y), _b(OpCode.POW, x, PNode(2.0)))
    nodes = set()
    total = root.collect_vnodes(nodes)
    assert nodes == {x, y}
    assert total == 7
    assert root.inorder_visit(0).count("\n") == total


def test_to_string_indents_by_level():
    root = _b(OpCode.MINUS, VNode(1.0), VNode(2.0))
    assert root.to_string(2).startswith("\t\t[BinaryOPNode]")
    assert not root.to_string(0).startswith("\t")


def test_inorder_visit_puts_operator_between_operands():
    x, p = VNode(1.0), PNode(4.0)
    lines = _b(OpCode.TIMES, x, p).inorder_visit(0).splitlines()
    assert lines[0] == x.to_string(1)
    assert lines[1].startswith("[BinaryOPNode]")
    assert lines[2] == p.to_string(1)


def test_linear_operators_add_no_edges():
    x, y = VNode(1.0), VNode(2.0)
    edges = EdgeSet()
    _b(OpCode.MINUS, _b(OpCode.PLUS, x, y), x).nonlinear_edges(edges)
    assert len(edges) == 0


def test_times_adds_cross_edge():
    x, y = VNode(1.0), VNode(2.0)
    edges = EdgeSet()
    _b(OpCode.TIMES, x, y).nonlinear_edges(edges)
    assert len(edges) == 1
    assert Edge(y, x) in edges
    assert edges.num_self_edges() == 0


def test_divide_adds_cross_and_denominator_edges():
    x, y = VNode(1.0), VNode(2.0)
    edges = EdgeSet()
    _b(OpCode.DIVIDE, x, y).nonlinear_edges(edges)
    assert len(edges) == 2
    assert Edge(x, y) in edges and Edge(y, y) in edges
    assert edges.num_self_edges() == 1


def test_power_of_variables_adds_three_edges():
    x, y = VNode(1.0), VNode(2.0)
    edges = EdgeSet()
    _b(OpCode.POW, x, y).nonlinear_edges(edges)
    assert len(edges) == 3
    assert edges.num_self_edges() == 2


def test_power_with_parameter_keeps_only_self_edge():
    x = VNode(1.0)
    edges = EdgeSet()
    _b(OpCode.POW, x, PNode(2.0)).nonlinear_edges(edges)
    assert list(edges) == [Edge(x, x)]


def test_edges_through_sum_are_pushed_to_leaves():
    x, y, z = VNode(1.0), VNode(2.0), VNode(3.0)
    edges = EdgeSet()
    _b(OpCode.TIMES, _b(OpCode.PLUS, x, y), z).nonlinear_edges(edges)
    assert len(edges) == 2
    assert Edge(x, z) in edges and Edge(y, z) in edges


def test_self_edge_on_product_expands():
    x, y = VNode(1.0), VNode(2.0)
    inner = _b(OpCode.TIMES, x, y)
    root = _b(OpCode.POW, inner, PNode(2.0))
    edges = EdgeSet()
    root.nonlinear_edges(edges)
    assert Edge(x, x) in edges and Edge(y, y) in edges and Edge(x, y) in edges
    assert len(edges) == 3


@pytest.mark.parametrize("left_missing", [True, False])
def test_missing_operand_is_rejected(left_missing):
    x = VNode(1.0)
    with pytest.raises(ValueError):
        if left_missing:
            create_binary_op_node(OpCode.PLUS, None, x)
        else:
            create_binary_op_node(OpCode.PLUS, x, None)


def test_unsupported_operator_fails_on_use():
    node = create_binary_op_node(OpCode.SIN, VNode(1.0), VNode(2.0))
    assert isinstance(node, BinaryOPNode)
    with pytest.raises(ValueError):
        _value(node)
    with pytest.raises(ValueError):
        node.nonlinear_edges(EdgeSet())


def test_variable_exponent_needs_positive_base():
    x, y = VNode(-2.0), VNode(2.0)
    x.u = y.u = 1.0
    root = _b(OpCode.POW, x, y)
    with pytest.raises(ValueError):
        root.grad_reverse_0(Workspace())
    with pytest.raises(ValueError):
        root.hess_reverse_0(Workspace())


def test_parameter_exponent_allows_negative_base():
    x = VNode(-2.0)
    root = _b(OpCode.POW, x, PNode(2.0))
    value, grad = _gradient(root, [x])
    assert value == pytest.approx(_value(root))
    assert grad == pytest.approx(_numeric_gradient(root, [x]), rel=1e-6)
    assert not math.isnan(grad[0])