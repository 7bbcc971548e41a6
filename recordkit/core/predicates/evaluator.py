"""In-memory predicate evaluation."""

from __future__ import annotations

from typing import Any

from recordkit.core.predicates.ast import (
    And,
    Comparison,
    Constant,
    FieldRef,
    Membership,
    Not,
    Or,
    Predicate,
)
from recordkit.core.predicates.visitor import PredicateVisitor


class PredicateEvaluator(PredicateVisitor[Any]):
    """Evaluates a predicate body against one record.

    Ordering comparisons involving ``None`` are false, matching SQL.
    """

    def __init__(self, predicate: Predicate, record: Any):
        self.parameter = predicate.parameter
        self.record = record

    def visit_field(self, node: FieldRef) -> Any:
        if node.parameter is not self.parameter:
            raise ValueError(f"Field {node!r} is not bound to the evaluated parameter")
        return getattr(self.record, node.name)

    def visit_constant(self, node: Constant) -> Any:
        return node.value

    def visit_comparison(self, node: Comparison) -> bool:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if node.op.is_ordering and (left is None or right is None):
            return False
        return bool(node.op.function(left, right))

    def visit_membership(self, node: Membership) -> bool:
        return self.visit(node.operand) in node.values

    def visit_and(self, node: And) -> bool:
        return bool(self.visit(node.left)) and bool(self.visit(node.right))

    def visit_or(self, node: Or) -> bool:
        return bool(self.visit(node.left)) or bool(self.visit(node.right))

    def visit_not(self, node: Not) -> bool:
        return not bool(self.visit(node.operand))


def evaluate(predicate: Predicate, record: Any) -> bool:
    """Whether ``record`` satisfies ``predicate``."""
    return bool(PredicateEvaluator(predicate, record).visit(predicate.body))


def filter_records(predicate: Predicate | None, records: list[Any]) -> list[Any]:
    if predicate is None:
        return list(records)
    return [record for record in records if evaluate(predicate, record)]
