"""Typed visitors over the predicate AST."""

from __future__ import annotations

from typing import Generic, TypeVar

from recordkit.core.predicates.ast import (
    And,
    Comparison,
    Constant,
    Expr,
    FieldRef,
    Membership,
    Not,
    Or,
)

R = TypeVar("R")


class PredicateVisitor(Generic[R]):
    """Dispatches on node type; subclasses implement every ``visit_*`` method."""

    def visit(self, node: Expr) -> R:
        return node.accept(self)

    def visit_field(self, node: FieldRef) -> R:
        raise NotImplementedError

    def visit_constant(self, node: Constant) -> R:
        raise NotImplementedError

    def visit_comparison(self, node: Comparison) -> R:
        raise NotImplementedError

    def visit_membership(self, node: Membership) -> R:
        raise NotImplementedError

    def visit_and(self, node: And) -> R:
        raise NotImplementedError

    def visit_or(self, node: Or) -> R:
        raise NotImplementedError

    def visit_not(self, node: Not) -> R:
        raise NotImplementedError


class PredicateTransformer(PredicateVisitor[Expr]):
    """Rebuilds the tree; override the hooks for the nodes to rewrite."""

    def visit_field(self, node: FieldRef) -> Expr:
        return node

    def visit_constant(self, node: Constant) -> Expr:
        return node

    def visit_comparison(self, node: Comparison) -> Expr:
        return Comparison(node.op, self.visit(node.left), self.visit(node.right))

    def visit_membership(self, node: Membership) -> Expr:
        return Membership(self.visit(node.operand), node.values)

    def visit_and(self, node: And) -> Expr:
        return And(self.visit(node.left), self.visit(node.right))

    def visit_or(self, node: Or) -> Expr:
        return Or(self.visit(node.left), self.visit(node.right))

    def visit_not(self, node: Not) -> Expr:
        return Not(self.visit(node.operand))
