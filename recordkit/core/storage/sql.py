"""Predicate to SQL compilation."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from recordkit.core.predicates import (
    And,
    CompareOp,
    Comparison,
    Constant,
    Expr,
    FieldRef,
    Membership,
    Not,
    Or,
    Predicate,
    PredicateVisitor,
)

_SQL_OPERATORS = {
    CompareOp.EQ: "=",
    CompareOp.NE: "<>",
    CompareOp.LT: "<",
    CompareOp.LE: "<=",
    CompareOp.GT: ">",
    CompareOp.GE: ">=",
}


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _is_null(node: Expr) -> bool:
    return isinstance(node, Constant) and node.value is None


class SqlCompiler(PredicateVisitor[str]):
    """Renders a predicate body as a parameterised SQL boolean expression.

    ``== None`` and ``!= None`` become ``IS NULL`` and ``IS NOT NULL``; an
    empty membership test is ``FALSE``.
    """

    def __init__(self, parameter: Any = None):
        self.parameter = parameter
        self.params: list[Any] = []

    def visit_field(self, node: FieldRef) -> str:
        if self.parameter is not None and node.parameter is not self.parameter:
            raise ValueError(f"Field {node!r} is not bound to the compiled predicate")
        return quote_identifier(node.name)

    def visit_constant(self, node: Constant) -> str:
        if node.value is None:
            return "NULL"
        if isinstance(node.value, bool):
            return "TRUE" if node.value else "FALSE"
        self.params.append(node.value)
        return "?"

    def visit_comparison(self, node: Comparison) -> str:
        if node.op in (CompareOp.EQ, CompareOp.NE) and (_is_null(node.left) or _is_null(node.right)):
            operand = node.right if _is_null(node.left) else node.left
            if _is_null(operand):
                return "TRUE" if node.op is CompareOp.EQ else "FALSE"
            suffix = "IS NULL" if node.op is CompareOp.EQ else "IS NOT NULL"
            return f"({self.visit(operand)} {suffix})"
        left = self.visit(node.left)
        right = self.visit(node.right)
        return f"({left} {_SQL_OPERATORS[node.op]} {right})"

    def visit_membership(self, node: Membership) -> str:
        values = [value for value in node.values if value is not None]
        includes_null = len(values) != len(node.values)
        operand = self.visit(node.operand)
        clauses = []
        if values:
            placeholders = ", ".join(self.visit_constant(Constant(value)) for value in values)
            clauses.append(f"{operand} IN ({placeholders})")
        if includes_null:
            clauses.append(f"{operand} IS NULL")
        if not clauses:
            return "FALSE"
        return "(" + " OR ".join(clauses) + ")"

    def visit_and(self, node: And) -> str:
        return f"({self.visit(node.left)} AND {self.visit(node.right)})"

    def visit_or(self, node: Or) -> str:
        return f"({self.visit(node.left)} OR {self.visit(node.right)})"

    def visit_not(self, node: Not) -> str:
        return f"(NOT {self.visit(node.operand)})"


def compile_where(predicates: Iterable[Predicate]) -> tuple[str, list[Any]]:
    """Compile predicates into one ``WHERE`` body joined by ``AND``.

    Returns:
        The clause (empty when there are no predicates) and its parameters
    """
    clauses: list[str] = []
    params: list[Any] = []
    for predicate in predicates:
        compiler = SqlCompiler(predicate.parameter)
        clauses.append(compiler.visit(predicate.body))
        params.extend(compiler.params)
    return " AND ".join(clauses), params
