# exprdiff

Two small toolkits for expression trees:

- **Automatic differentiation** (`exprdiff.tape`, `exprdiff.edges`,
  `exprdiff.node`, `exprdiff.binary`, `exprdiff.unary`). Build a computation
  graph from variables and parameters, evaluate it, and get gradients and
  Hessian-vector products in reverse mode. It can also report which nodes
  interact nonlinearly, which gives the sparsity pattern of the Hessian.
- **Lazy expressions** (`exprdiff.expression`). Build unevaluated expressions
  with ordinary Python operators, inspect them, and evaluate them later, with
  placeholders bound to arguments at evaluation time.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Differentiation graphs

A graph is made of these nodes (`exprdiff.node`):

- `VNode(value)`: an independent variable. It has `val`, a direction
  component `u` (NaN until set) and an adjoint `adj`.
- `PNode(value)`: a constant parameter. A NaN value raises `ValueError`.
- Operator nodes, built with `create_binary_op_node(op, left, right)`
  (`exprdiff.binary`) and `create_unary_op_node(op, left)` (`exprdiff.unary`).

`OpCode` lists the operations: `PLUS`, `MINUS`, `TIMES`, `DIVIDE`, `POW`
for binary nodes, `SIN` and `COS` for unary nodes. `create_unary_op_node`
turns `SQRT` into `left ** 0.5` and `NEG` into `left * -1`. An operation a
node does not support raises `ValueError` when it is evaluated. A power whose
exponent is not a parameter needs a positive base; otherwise `ValueError`.

Every traversal takes a `Workspace` (`exprdiff.tape`), which holds the value
stack `values`, the partial-derivative stack `partials`, the value tape `tape`
and the index tape `indices`. `Workspace.clear()` empties all four. A `Stack`
refuses NaN and raises `IndexError` when popped empty; a `Tape` raises
`IndexError` for a position outside it.

```python
from exprdiff.node import VNode, PNode, OpCode
from exprdiff.binary import create_binary_op_node
from exprdiff.unary import create_unary_op_node
from exprdiff.tape import Workspace

x = VNode(2.0)
y = VNode(3.0)
# f = sin(x) * y + x ** 2
f = create_binary_op_node(
    OpCode.PLUS,
    create_binary_op_node(OpCode.TIMES, create_unary_op_node(OpCode.SIN, x), y),
    create_binary_op_node(OpCode.POW, x, PNode(2.0)),
)

ws = Workspace()
f.eval_function(ws)
value = ws.values.pop()
```

### Gradient

```python
ws = Workspace()
f.grad_reverse_0(ws)      # forward sweep: values and local partials
ws.values.pop()           # the function value
f.update_adj(1.0)         # seed the root adjoint
f.grad_reverse_1(ws)      # propagate adjoints to the variables
print(x.adj, y.adj)
```

### Hessian-vector product

Set each variable's `u` to the direction, then:

```python
x.u, y.u = 1.0, 0.0
ws = Workspace()
f.hess_reverse_0_init_n_in_arcs()
root = f.hess_reverse_0(ws)
f.hess_reverse_1_init_x_bar(ws, root)
f.hess_reverse_1(ws, root)
gx, _, _, hx = x.hess_reverse_0_get_values(ws, x.index)  # x, x_bar, w, w_bar
f.hess_reverse_1_clear_index()
```

For each variable, `x_bar` is the gradient component and `w_bar` the
component of the Hessian times `u`. A variable that receives no contribution
keeps NaN in those entries. Call `hess_reverse_1_clear_index()` and use a fresh
or cleared workspace before the next pass.

### Nonlinear structure and printing

`nonlinear_edges(edges)` fills an `EdgeSet` (`exprdiff.edges`) with the
pairs of nodes that are coupled nonlinearly. `Edge` is undirected and compares
its ends by identity. `EdgeSet` keeps distinct edges, newest first, and offers
`insert`, `remove`, `in`, `len`, iteration and `num_self_edges()`.

```python
from exprdiff.edges import EdgeSet

edges = EdgeSet()
f.nonlinear_edges(edges)
print(len(edges), edges.num_self_edges())
```

`collect_vnodes(nodes)` adds the variables to a set and returns the number
of nodes visited. `inorder_visit(level)` and `to_string(level)` return text
listings of the tree, indented with tabs.

## Lazy expressions

```python
from exprdiff.expression import make_terminal, placeholder, evaluate, if_else

unity = make_terminal(1.0)
expr = unity + (unity + unity)
assert evaluate(expr) == 3.0

p = placeholder(1)
assert evaluate(p * 2, 21) == 42

choice = if_else(make_terminal(True), make_terminal(1), make_terminal(2))
assert evaluate(choice) == 1
```

`ExprKind` names every kind of expression. `Expression` supports `+ - * / %
<< >> & | ^`, unary `- + ~`, calls and subscripts. Plain operands become
terminals. `if_else` evaluates only the chosen branch. Logical and/or
short-circuit. `placeholder(n)` stands for the n-th argument given to
`evaluate` (1-based). A placeholder index below 1 raises `ValueError`, and one
with no matching argument raises `IndexError`.

### Inspecting and building

- `value(expr)` / `Expression.value()` return the value a terminal holds and
  return anything else unchanged.
- `left(expr)` / `right(expr)` and the matching methods return the operands of
  a binary expression.
- `make_expression(kind, *args)` builds an expression of any `ExprKind`.
- `as_expr(v)` wraps a plain value as a terminal and leaves an expression as it
  is.

### Errors

Asking for `left` or `right` of a terminal raises `TypeError`. So does wrapping
an expression in `make_terminal`, or giving a kind the wrong number of
elements.

## What it does not do

- There is no forward-mode Hessian. Derivatives are available only through the
  reverse-mode sweeps above.
- Differentiation nodes have no operator overloading. Graphs are built with the
  factory functions.
- Lazy expressions have no transform machinery. They can only be inspected and
  evaluated.
- There is no command-line program.