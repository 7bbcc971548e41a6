"""Predicate AST, evaluation and translation."""

from recordkit.core.predicates.ast import (
    And,
    CompareOp,
    Comparison,
    Constant,
    Expr,
    FieldRef,
    Membership,
    Not,
    Or,
    Parameter,
    Predicate,
    where,
)
from recordkit.core.predicates.evaluator import PredicateEvaluator, evaluate, filter_records
from recordkit.core.predicates.translator import (
    ParameterReplacer,
    coerce_key_value,
    primary_key_predicate,
    rebind,
    translate,
)
from recordkit.core.predicates.visitor import PredicateTransformer, PredicateVisitor

__all__ = [
    "And",
    "CompareOp",
    "Comparison",
    "Constant",
    "Expr",
    "FieldRef",
    "Membership",
    "Not",
    "Or",
    "Parameter",
    "Predicate",
    "PredicateEvaluator",
    "PredicateTransformer",
    "PredicateVisitor",
    "ParameterReplacer",
    "coerce_key_value",
    "evaluate",
    "filter_records",
    "primary_key_predicate",
    "rebind",
    "translate",
    "where",
]
