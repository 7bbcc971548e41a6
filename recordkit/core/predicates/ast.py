"""Predicate AST.

Predicates are written against a :class:`Parameter` standing for the record
being tested, much like a one-argument lambda::

    active = where(ProjectTypeViewModel, lambda vm: vm.is_active == True)
    named = where(ProjectTypeViewModel, lambda vm: (vm.id > 3) & vm.type_name_en.in_(["A", "B"]))

Python's ``and``, ``or`` and ``not`` cannot be overloaded; using them on a
predicate raises ``TypeError``. Combine with ``&``, ``|`` and ``~`` instead.
"""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from recordkit.core.predicates.visitor import PredicateVisitor

R = TypeVar("R")


class CompareOp(str, Enum):
    """Comparison operators."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    @property
    def function(self) -> Callable[[Any, Any], bool]:
        return _OPERATORS[self]

    @property
    def is_ordering(self) -> bool:
        return self not in (CompareOp.EQ, CompareOp.NE)


_OPERATORS: dict[CompareOp, Callable[[Any, Any], bool]] = {
    CompareOp.EQ: operator.eq,
    CompareOp.NE: operator.ne,
    CompareOp.LT: operator.lt,
    CompareOp.LE: operator.le,
    CompareOp.GT: operator.gt,
    CompareOp.GE: operator.ge,
}

_BOOL_ERROR = "Predicates cannot be used as booleans; combine them with &, | and ~"


def as_expr(value: Any) -> Expr:
    """Wrap plain Python values as :class:`Constant` nodes."""
    if isinstance(value, Expr):
        return value
    if isinstance(value, (Parameter, Predicate)):
        raise TypeError(f"{type(value).__name__} cannot be used as an operand")
    return Constant(value)


class Expr(ABC):
    """Base class of every predicate node."""

    __slots__ = ()

    @abstractmethod
    def accept(self, visitor: PredicateVisitor[R]) -> R: ...

    def __bool__(self) -> bool:
        raise TypeError(_BOOL_ERROR)

    def __and__(self, other: Any) -> And:
        return And(self, as_expr(other))

    def __rand__(self, other: Any) -> And:
        return And(as_expr(other), self)

    def __or__(self, other: Any) -> Or:
        return Or(self, as_expr(other))

    def __ror__(self, other: Any) -> Or:
        return Or(as_expr(other), self)

    def __invert__(self) -> Not:
        return Not(self)


class Operand(Expr):
    """Value-producing node supporting comparison operators."""

    __slots__ = ()

    def _compare(self, op: CompareOp, other: Any) -> Comparison:
        return Comparison(op, self, as_expr(other))

    def __eq__(self, other: Any) -> Comparison:  # type: ignore[override]
        return self._compare(CompareOp.EQ, other)

    def __ne__(self, other: Any) -> Comparison:  # type: ignore[override]
        return self._compare(CompareOp.NE, other)

    def __lt__(self, other: Any) -> Comparison:
        return self._compare(CompareOp.LT, other)

    def __le__(self, other: Any) -> Comparison:
        return self._compare(CompareOp.LE, other)

    def __gt__(self, other: Any) -> Comparison:
        return self._compare(CompareOp.GT, other)

    def __ge__(self, other: Any) -> Comparison:
        return self._compare(CompareOp.GE, other)

    __hash__ = Expr.__hash__

    def in_(self, values: Iterable[Any]) -> Membership:
        return Membership(self, tuple(values))

    def is_none(self) -> Comparison:
        return Comparison(CompareOp.EQ, self, Constant(None))

    def is_not_none(self) -> Comparison:
        return Comparison(CompareOp.NE, self, Constant(None))


class Parameter:
    """Placeholder for the record a predicate is applied to.

    Attribute access yields :class:`FieldRef` nodes; unknown fields raise
    ``AttributeError``. ``parameter["name"]`` works for field names that
    clash with Python keywords.
    """

    __slots__ = ("_record_type", "_name")

    def __init__(self, record_type: type, name: str = "record"):
        self._record_type = record_type
        self._name = name

    @property
    def record_type(self) -> type:
        return self._record_type

    @property
    def name(self) -> str:
        return self._name

    def has_field(self, name: str) -> bool:
        fields = getattr(self._record_type, "model_fields", None)
        if fields is not None:
            return name in fields
        return name in getattr(self._record_type, "__annotations__", {})

    def __getattr__(self, name: str) -> FieldRef:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> FieldRef:
        if not self.has_field(name):
            raise AttributeError(f"{self._record_type.__name__} has no field '{name}'")
        return FieldRef(self, name)

    def __repr__(self) -> str:
        return f"Parameter({self._record_type.__name__}, {self._name!r})"


class FieldRef(Operand):
    """Access to a field of the predicate parameter."""

    __slots__ = ("parameter", "name")

    def __init__(self, parameter: Parameter, name: str):
        self.parameter = parameter
        self.name = name

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_field(self)

    def __repr__(self) -> str:
        return f"{self.parameter.name}.{self.name}"


class Constant(Operand):
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_constant(self)

    def __repr__(self) -> str:
        return repr(self.value)


class Comparison(Expr):
    __slots__ = ("op", "left", "right")

    def __init__(self, op: CompareOp, left: Expr, right: Expr):
        self.op = CompareOp(op)
        self.left = left
        self.right = right

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_comparison(self)

    def __repr__(self) -> str:
        return f"({self.left!r} {self.op.value} {self.right!r})"


class Membership(Expr):
    """``operand in values``."""

    __slots__ = ("operand", "values")

    def __init__(self, operand: Expr, values: tuple[Any, ...]):
        self.operand = operand
        self.values = values

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_membership(self)

    def __repr__(self) -> str:
        return f"({self.operand!r} in {self.values!r})"


class And(Expr):
    __slots__ = ("left", "right")

    def __init__(self, left: Expr, right: Expr):
        self.left = left
        self.right = right

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_and(self)

    def __repr__(self) -> str:
        return f"({self.left!r} & {self.right!r})"


class Or(Expr):
    __slots__ = ("left", "right")

    def __init__(self, left: Expr, right: Expr):
        self.left = left
        self.right = right

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_or(self)

    def __repr__(self) -> str:
        return f"({self.left!r} | {self.right!r})"


class Not(Expr):
    __slots__ = ("operand",)

    def __init__(self, operand: Expr):
        self.operand = operand

    def accept(self, visitor: PredicateVisitor[R]) -> R:
        return visitor.visit_not(self)

    def __repr__(self) -> str:
        return f"~{self.operand!r}"


class Predicate:
    """A boolean expression bound to a parameter, the analogue of ``lambda record: ...``."""

    __slots__ = ("parameter", "body")

    def __init__(self, parameter: Parameter, body: Expr):
        self.parameter = parameter
        self.body = as_expr(body)

    @property
    def record_type(self) -> type:
        return self.parameter.record_type

    def evaluate(self, record: Any) -> bool:
        from recordkit.core.predicates.evaluator import evaluate

        return evaluate(self, record)

    def __call__(self, record: Any) -> bool:
        return self.evaluate(record)

    def _combine(self, other: Predicate, node_type: type[And] | type[Or]) -> Predicate:
        if not isinstance(other, Predicate):
            return NotImplemented
        if other.record_type is not self.record_type:
            raise TypeError(
                f"Cannot combine predicates over {self.record_type.__name__} and {other.record_type.__name__}"
            )
        from recordkit.core.predicates.translator import rebind

        return Predicate(self.parameter, node_type(self.body, rebind(other, self.parameter).body))

    def __and__(self, other: Predicate) -> Predicate:
        return self._combine(other, And)

    def __or__(self, other: Predicate) -> Predicate:
        return self._combine(other, Or)

    def __invert__(self) -> Predicate:
        return Predicate(self.parameter, Not(self.body))

    def __bool__(self) -> bool:
        raise TypeError(_BOOL_ERROR)

    def __repr__(self) -> str:
        return f"<Predicate {self.parameter.name}: {self.body!r}>"


def where(record_type: type, build: Callable[[Parameter], Any], name: str = "record") -> Predicate:
    """Build a :class:`Predicate` over ``record_type``.

    Args:
        record_type: The record type the predicate is written against
        build: Callable receiving the parameter and returning an expression
        name: Parameter name, only used in ``repr``

    Returns:
        The bound predicate
    """
    parameter = Parameter(record_type, name)
    return Predicate(parameter, build(parameter))
