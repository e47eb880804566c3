"""pypolyfem.autodiff.expressions
Scalar expression trees with forward-mode derivatives.

Every node evaluates to ``(value, grad)`` where ``grad`` maps a global dof
index to the partial derivative of the expression with respect to it.
"""
from __future__ import annotations

import numbers
from typing import Dict, Sequence, Tuple

Grad = Dict[int, float]


def _as_expr(obj) -> "Expression":
    if isinstance(obj, Expression):
        return obj
    if isinstance(obj, numbers.Real):
        return Constant(obj)
    raise TypeError(f"Cannot convert {type(obj).__name__} to an Expression")


def _axpy(alpha: float, x: Grad, out: Grad) -> Grad:
    for k, v in x.items():
        out[k] = out.get(k, 0.0) + alpha * v
    return out


class Expression:
    """Base class of every node in a residual expression."""

    def evaluate(self) -> Tuple[float, Grad]:
        raise NotImplementedError

    def __float__(self):
        return float(self.evaluate()[0])

    def gradient(self) -> Grad:
        return self.evaluate()[1]

    def __repr__(self):
        return f"{self.__class__.__name__}()"

    def __add__(self, other): return Sum(self, _as_expr(other))
    def __radd__(self, other): return Sum(_as_expr(other), self)
    def __sub__(self, other): return Sub(self, _as_expr(other))
    def __rsub__(self, other): return Sub(_as_expr(other), self)
    def __mul__(self, other): return Prod(self, _as_expr(other))
    def __rmul__(self, other): return Prod(_as_expr(other), self)
    def __truediv__(self, other): return Div(self, _as_expr(other))
    def __neg__(self): return Prod(Constant(-1.0), self)


class Constant(Expression):
    def __init__(self, value: float):
        self.value = float(value)

    def evaluate(self):
        return self.value, {}

    def __repr__(self):
        return f"Constant({self.value:g})"


class Variable(Expression):
    """An unknown: its global dof index and its current value."""

    def __init__(self, index: int, value: float = 0.0):
        if index < 0:
            raise ValueError("Variable needs a non-negative dof index")
        self.index = int(index)
        self.value = float(value)

    def evaluate(self):
        return self.value, {self.index: 1.0}

    def __repr__(self):
        return f"Variable({self.index}, {self.value:g})"


class Sum(Expression):
    def __init__(self, a: Expression, b: Expression):
        self.a, self.b = a, b

    def evaluate(self):
        va, ga = self.a.evaluate()
        vb, gb = self.b.evaluate()
        return va + vb, _axpy(1.0, gb, dict(ga))

    def __repr__(self):
        return f"({self.a!r} + {self.b!r})"


class Sub(Expression):
    def __init__(self, a: Expression, b: Expression):
        self.a, self.b = a, b

    def evaluate(self):
        va, ga = self.a.evaluate()
        vb, gb = self.b.evaluate()
        return va - vb, _axpy(-1.0, gb, dict(ga))

    def __repr__(self):
        return f"({self.a!r} - {self.b!r})"


class Prod(Expression):
    def __init__(self, a: Expression, b: Expression):
        self.a, self.b = a, b

    def evaluate(self):
        va, ga = self.a.evaluate()
        vb, gb = self.b.evaluate()
        # product rule
        return va * vb, _axpy(va, gb, _axpy(vb, ga, {}))

    def __repr__(self):
        return f"({self.a!r} * {self.b!r})"


class Div(Expression):
    def __init__(self, a: Expression, b: Expression):
        self.a, self.b = a, b

    def evaluate(self):
        va, ga = self.a.evaluate()
        vb, gb = self.b.evaluate()
        return va / vb, _axpy(-va / (vb * vb), gb, _axpy(1.0 / vb, ga, {}))

    def __repr__(self):
        return f"({self.a!r} / {self.b!r})"


class LinearCombination(Expression):
    """``sum_k coeffs[k] * terms[k]``, flat instead of a deep Sum chain."""

    def __init__(self, coeffs: Sequence[float], terms: Sequence):
        if len(coeffs) != len(terms):
            raise ValueError("coeffs and terms must have the same length")
        self.coeffs = [float(c) for c in coeffs]
        self.terms = [_as_expr(t) for t in terms]

    def evaluate(self):
        value, grad = 0.0, {}
        for c, t in zip(self.coeffs, self.terms):
            v, g = t.evaluate()
            value += c * v
            _axpy(c, g, grad)
        return value, grad

    def __repr__(self):
        return " + ".join(f"{c:g}*{t!r}" for c, t in zip(self.coeffs, self.terms)) or "0"
