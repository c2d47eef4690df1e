"""Lazy expression trees built from Python operators and evaluated on demand."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable


class ExprKind(IntEnum):
    """Every kind of expression node."""

    EXPR_REF = 0
    TERMINAL = 1

    UNARY_PLUS = 2
    NEGATE = 3
    DEREFERENCE = 4
    COMPLEMENT = 5
    ADDRESS_OF = 6
    LOGICAL_NOT = 7
    PRE_INC = 8
    PRE_DEC = 9
    POST_INC = 10
    POST_DEC = 11

    SHIFT_LEFT = 12
    SHIFT_RIGHT = 13
    MULTIPLIES = 14
    DIVIDES = 15
    MODULUS = 16
    PLUS = 17
    MINUS = 18
    LESS = 19
    GREATER = 20
    LESS_EQUAL = 21
    GREATER_EQUAL = 22
    EQUAL_TO = 23
    NOT_EQUAL_TO = 24
    LOGICAL_OR = 25
    LOGICAL_AND = 26
    BITWISE_AND = 27
    BITWISE_OR = 28
    BITWISE_XOR = 29
    COMMA = 30
    MEM_PTR = 31
    ASSIGN = 32
    SHIFT_LEFT_ASSIGN = 33
    SHIFT_RIGHT_ASSIGN = 34
    MULTIPLIES_ASSIGN = 35
    DIVIDES_ASSIGN = 36
    MODULUS_ASSIGN = 37
    PLUS_ASSIGN = 38
    MINUS_ASSIGN = 39
    BITWISE_AND_ASSIGN = 40
    BITWISE_OR_ASSIGN = 41
    BITWISE_XOR_ASSIGN = 42
    SUBSCRIPT = 43

    IF_ELSE = 44

    CALL = 45

    @property
    def is_unary(self) -> bool:
        return ExprKind.UNARY_PLUS <= self <= ExprKind.POST_DEC

    @property
    def is_binary(self) -> bool:
        return ExprKind.SHIFT_LEFT <= self <= ExprKind.SUBSCRIPT


@dataclass(frozen=True)
class Placeholder:
    """A stand-in for the ``index``-th argument given to :func:`evaluate` (1-based)."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError("placeholders must be >= 1")


def _check_elements(kind: ExprKind, elements: tuple) -> None:
    count = len(elements)
    if kind is ExprKind.TERMINAL:
        if count != 1:
            raise TypeError("a terminal holds exactly one value")
        if isinstance(elements[0], Expression):
            raise TypeError("a terminal cannot hold an expression")
        return
    if not all(isinstance(e, Expression) for e in elements):
        raise TypeError(f"the elements of a {kind.name} expression must be expressions")
    if kind is ExprKind.EXPR_REF or kind.is_unary:
        expected_ok = count == 1
    elif kind.is_binary:
        expected_ok = count == 2
    elif kind is ExprKind.IF_ELSE:
        expected_ok = count == 3
    else:
        expected_ok = count >= 1
    if not expected_ok:
        raise TypeError(f"wrong number of elements ({count}) for a {kind.name} expression")


class Expression:
    """An unevaluated expression of a given kind over a tuple of elements."""

    __slots__ = ("kind", "elements")

    def __init__(self, kind: ExprKind, elements) -> None:
        kind = ExprKind(kind)
        elements = tuple(elements)
        _check_elements(kind, elements)
        self.kind = kind
        self.elements = elements

    def __repr__(self) -> str:
        return f"Expression({self.kind.name}, {self.elements!r})"

    def value(self) -> Any:
        """Same as the free function :func:`value`."""
        return value(self)

    def left(self) -> Expression:
        """Same as the free function :func:`left`."""
        return left(self)

    def right(self) -> Expression:
        """Same as the free function :func:`right`."""
        return right(self)

    def __call__(self, *args: Any) -> Expression:
        return make_expression(ExprKind.CALL, self, *args)

    def __getitem__(self, key: Any) -> Expression:
        return make_expression(ExprKind.SUBSCRIPT, self, key)

    def __add__(self, other: Any) -> Expression:
        return make_expression(ExprKind.PLUS, self, other)

    def __radd__(self, other: Any) -> Expression:
        return make_expression(ExprKind.PLUS, other, self)

    def __sub__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MINUS, self, other)

    def __rsub__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MINUS, other, self)

    def __mul__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MULTIPLIES, self, other)

    def __rmul__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MULTIPLIES, other, self)

    def __truediv__(self, other: Any) -> Expression:
        return make_expression(ExprKind.DIVIDES, self, other)

    def __rtruediv__(self, other: Any) -> Expression:
        return make_expression(ExprKind.DIVIDES, other, self)

    def __mod__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MODULUS, self, other)

    def __rmod__(self, other: Any) -> Expression:
        return make_expression(ExprKind.MODULUS, other, self)

    def __lshift__(self, other: Any) -> Expression:
        return make_expression(ExprKind.SHIFT_LEFT, self, other)

    def __rlshift__(self, other: Any) -> Expression:
        return make_expression(ExprKind.SHIFT_LEFT, other, self)

    def __rshift__(self, other: Any) -> Expression:
        return make_expression(ExprKind.SHIFT_RIGHT, self, other)

    def __rrshift__(self, other: Any) -> Expression:
        return make_expression(ExprKind.SHIFT_RIGHT, other, self)

    def __and__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_AND, self, other)

    def __rand__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_AND, other, self)

    def __or__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_OR, self, other)

    def __ror__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_OR, other, self)

    def __xor__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_XOR, self, other)

    def __rxor__(self, other: Any) -> Expression:
        return make_expression(ExprKind.BITWISE_XOR, other, self)

    def __neg__(self) -> Expression:
        return make_expression(ExprKind.NEGATE, self)

    def __pos__(self) -> Expression:
        return make_expression(ExprKind.UNARY_PLUS, self)

    def __invert__(self) -> Expression:
        return make_expression(ExprKind.COMPLEMENT, self)


def make_terminal(value: Any) -> Expression:
    """Wrap a plain value in a terminal expression."""
    if isinstance(value, Expression):
        raise TypeError("make_terminal() cannot wrap an expression")
    return Expression(ExprKind.TERMINAL, (value,))


def as_expr(value: Any) -> Expression:
    """Return ``value`` if it is an expression, otherwise a terminal holding it."""
    return value if isinstance(value, Expression) else make_terminal(value)


def make_expression(kind: ExprKind, *args: Any) -> Expression:
    """Build an expression of ``kind``; plain operands become terminals."""
    kind = ExprKind(kind)
    if kind is ExprKind.TERMINAL:
        if len(args) != 1:
            raise TypeError("a terminal holds exactly one value")
        return make_terminal(args[0])
    if kind is ExprKind.EXPR_REF:
        return Expression(kind, args)
    return Expression(kind, (as_expr(a) for a in args))


def placeholder(index: int) -> Expression:
    """Return a terminal standing for the ``index``-th evaluation argument."""
    return make_terminal(Placeholder(index))


def _deref(expr: Any) -> Any:
    while isinstance(expr, Expression) and expr.kind is ExprKind.EXPR_REF:
        expr = expr.elements[0]
    return expr


def value(expr: Any) -> Any:
    """Return the value held by a terminal, looking through references.

    Anything that is not a terminal is returned unchanged.
    """
    expr = _deref(expr)
    if isinstance(expr, Expression) and expr.kind is ExprKind.TERMINAL:
        return expr.elements[0]
    return expr


def _binary_element(expr: Any, position: int, name: str) -> Expression:
    target = _deref(expr)
    if not isinstance(target, Expression) or not target.kind.is_binary:
        raise TypeError(f"{name}() requires a binary expression")
    return _deref(target.elements[position])


def left(expr: Any) -> Expression:
    """Return the left operand of a binary expression."""
    return _binary_element(expr, 0, "left")


def right(expr: Any) -> Expression:
    """Return the right operand of a binary expression."""
    return _binary_element(expr, 1, "right")


def if_else(cond: Any, then: Any, otherwise: Any) -> Expression:
    """Build a conditional expression; only the chosen branch is evaluated."""
    return make_expression(ExprKind.IF_ELSE, cond, then, otherwise)


class _Address:
    __slots__ = ("target",)

    def __init__(self, target: Any) -> None:
        self.target = target

    def __repr__(self) -> str:
        return f"<address of {self.target!r}>"


def _dereference(v: Any) -> Any:
    if isinstance(v, _Address):
        return v.target
    raise TypeError(f"cannot dereference {v!r}")


def _member_access(obj: Any, member: Any) -> Any:
    """Apply a member accessor (a callable taking the object) to ``obj``."""
    if not callable(member):
        raise TypeError(f"member accessor {member!r} is not callable")
    return member(obj)


_UNARY_OPS: dict[ExprKind, Callable[[Any], Any]] = {
    ExprKind.UNARY_PLUS: operator.pos,
    ExprKind.NEGATE: operator.neg,
    ExprKind.DEREFERENCE: _dereference,
    ExprKind.COMPLEMENT: operator.invert,
    ExprKind.ADDRESS_OF: _Address,
    ExprKind.LOGICAL_NOT: operator.not_,
    ExprKind.PRE_INC: lambda v: v + 1,
    ExprKind.PRE_DEC: lambda v: v - 1,
    ExprKind.POST_INC: lambda v: v,
    ExprKind.POST_DEC: lambda v: v,
}

_BINARY_OPS: dict[ExprKind, Callable[[Any, Any], Any]] = {
    ExprKind.SHIFT_LEFT: operator.lshift,
    ExprKind.SHIFT_RIGHT: operator.rshift,
    ExprKind.MULTIPLIES: operator.mul,
    ExprKind.DIVIDES: operator.truediv,
    ExprKind.MODULUS: operator.mod,
    ExprKind.PLUS: operator.add,
    ExprKind.MINUS: operator.sub,
    ExprKind.LESS: operator.lt,
    ExprKind.GREATER: operator.gt,
    ExprKind.LESS_EQUAL: operator.le,
    ExprKind.GREATER_EQUAL: operator.ge,
    ExprKind.EQUAL_TO: operator.eq,
    ExprKind.NOT_EQUAL_TO: operator.ne,
    ExprKind.BITWISE_AND: operator.and_,
    ExprKind.BITWISE_OR: operator.or_,
    ExprKind.BITWISE_XOR: operator.xor,
    ExprKind.MEM_PTR: _member_access,
    ExprKind.ASSIGN: lambda target, source: source,
    ExprKind.SHIFT_LEFT_ASSIGN: operator.ilshift,
    ExprKind.SHIFT_RIGHT_ASSIGN: operator.irshift,
    ExprKind.MULTIPLIES_ASSIGN: operator.imul,
    ExprKind.DIVIDES_ASSIGN: operator.itruediv,
    ExprKind.MODULUS_ASSIGN: operator.imod,
    ExprKind.PLUS_ASSIGN: operator.iadd,
    ExprKind.MINUS_ASSIGN: operator.isub,
    ExprKind.BITWISE_AND_ASSIGN: operator.iand,
    ExprKind.BITWISE_OR_ASSIGN: operator.ior,
    ExprKind.BITWISE_XOR_ASSIGN: operator.ixor,
    ExprKind.SUBSCRIPT: operator.getitem,
}


def _evaluate(expr: Expression, args: tuple) -> Any:
    kind = expr.kind
    elements = expr.elements
    if kind is ExprKind.TERMINAL:
        held = elements[0]
        if isinstance(held, Placeholder):
            if held.index > len(args):
                raise IndexError(
                    f"placeholder {held.index} has no argument ({len(args)} given)"
                )
            return args[held.index - 1]
        return held
    if kind is ExprKind.EXPR_REF:
        return _evaluate(elements[0], args)
    if kind is ExprKind.IF_ELSE:
        cond, then, otherwise = elements
        return _evaluate(then if _evaluate(cond, args) else otherwise, args)
    if kind is ExprKind.LOGICAL_AND:
        return bool(_evaluate(elements[0], args)) and bool(_evaluate(elements[1], args))
    if kind is ExprKind.LOGICAL_OR:
        return bool(_evaluate(elements[0], args)) or bool(_evaluate(elements[1], args))
    if kind is ExprKind.COMMA:
        _evaluate(elements[0], args)
        return _evaluate(elements[1], args)
    if kind is ExprKind.CALL:
        func = _evaluate(elements[0], args)
        return func(*(_evaluate(e, args) for e in elements[1:]))
    if kind.is_unary:
        return _UNARY_OPS[kind](_evaluate(elements[0], args))
    return _BINARY_OPS[kind](_evaluate(elements[0], args), _evaluate(elements[1], args))


def evaluate(expr: Any, *args: Any) -> Any:
    """Evaluate an expression, substituting ``args`` for its placeholders."""
    return _evaluate(as_expr(expr), args)


__all__ = [
    "ExprKind",
    "Expression",
    "Placeholder",
    "as_expr",
    "evaluate",
    "if_else",
    "left",
    "make_expression",
    "make_terminal",
    "placeholder",
    "right",
    "value",
]