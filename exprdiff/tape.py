"""Value stacks and tapes used while evaluating and differentiating expression trees."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


def _format_number(value: object) -> str:
    if isinstance(value, float):
        return format(value, "g")
    return str(value)


class Stack:
    """A last-in first-out stack of floats that refuses NaN values."""

    def __init__(self) -> None:
        self._items: list[float] = []

    def push(self, value: float) -> None:
        """Push a value; NaN is rejected."""
        if math.isnan(value):
            raise ValueError("cannot push NaN onto a stack")
        self._items.append(value)

    def pop(self) -> float:
        """Remove and return the top value."""
        if not self._items:
            raise IndexError("pop from an empty stack")
        return self._items.pop()

    def peek(self) -> float:
        """Return the top value without removing it."""
        if not self._items:
            raise IndexError("peek at an empty stack")
        return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        """Remove every value."""
        self._items.clear()

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"


class Tape(Generic[T]):
    """An append-only record of values with a movable cursor.

    ``index`` counts the values appended since the last clear; callers may
    move it back to read the tape in reverse.
    """

    def __init__(self) -> None:
        self.values: list[T] = []
        self.index = 0

    def append(self, value: T) -> None:
        """Append a value and advance the cursor."""
        self.values.append(value)
        self.index += 1

    def _check(self, i: int) -> None:
        if not 0 <= i < len(self.values):
            raise IndexError(f"tape position {i} out of range (size {len(self.values)})")

    def __getitem__(self, i: int) -> T:
        self._check(i)
        return self.values[i]

    def __setitem__(self, i: int, value: T) -> None:
        self._check(i)
        self.values[i] = value

    def __len__(self) -> int:
        return len(self.values)

    def clear(self) -> None:
        """Drop every value and reset the cursor."""
        self.values.clear()
        self.index = 0

    def __str__(self) -> str:
        parts = [f"Tape size[{len(self.values)}]"]
        for position, value in enumerate(self.values):
            if position % 10 == 0:
                parts.append("\n")
            parts.append(f"{_format_number(value)},")
        parts.append("\n")
        return "".join(parts)


@dataclass
class Workspace:
    """The stacks and tapes shared by one evaluation or differentiation pass."""

    values: Stack = field(default_factory=Stack)
    partials: Stack = field(default_factory=Stack)
    tape: Tape = field(default_factory=Tape)
    indices: Tape = field(default_factory=Tape)

    def clear(self) -> None:
        """Empty every stack and tape."""
        self.values.clear()
        self.partials.clear()
        self.tape.clear()
        self.indices.clear()