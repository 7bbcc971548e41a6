"""Translation of view-model predicates into entity predicates."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from recordkit.core.exceptions import InvalidKeyValueError, UnmappableFieldError
from recordkit.core.predicates.ast import (
    CompareOp,
    Comparison,
    Constant,
    Expr,
    FieldRef,
    Parameter,
    Predicate,
)
from recordkit.core.predicates.visitor import PredicateTransformer


class ParameterReplacer(PredicateTransformer):
    """Swaps one parameter for another, resolving each field by name on the new record type."""

    def __init__(self, old: Parameter, new: Parameter):
        self.old = old
        self.new = new

    def visit_field(self, node: FieldRef) -> Expr:
        if node.parameter is not self.old:
            return node
        if not self.new.has_field(node.name):
            raise UnmappableFieldError(node.name, self.new.record_type)
        return FieldRef(self.new, node.name)


def rebind(predicate: Predicate, parameter: Parameter) -> Predicate:
    """Rewrite ``predicate`` so its fields refer to ``parameter``."""
    if predicate.parameter is parameter:
        return predicate
    body = ParameterReplacer(predicate.parameter, parameter).visit(predicate.body)
    return Predicate(parameter, body)


def translate(predicate: Predicate, entity_type: type) -> Predicate:
    """Translate a predicate written against a view model onto ``entity_type``.

    The structure is preserved; every field of the view-model parameter is
    looked up by name on the entity.

    Raises:
        UnmappableFieldError: If a referenced field does not exist on the entity
    """
    return rebind(predicate, Parameter(entity_type, "entity"))


def coerce_key_value(entity_type: type[BaseModel], key_field: str, value: Any) -> Any:
    """Convert ``value`` to the type of ``entity_type.key_field``."""
    annotation = entity_type.model_fields[key_field].annotation
    try:
        return TypeAdapter(annotation).validate_python(value)
    except ValidationError as e:
        raise InvalidKeyValueError(key_field, value, e.errors()[0]["msg"]) from e


def primary_key_predicate(entity_type: type[BaseModel], key_field: str, value: Any) -> Predicate:
    """Build ``entity.<key_field> == value`` directly.

    Args:
        entity_type: Entity type to filter
        key_field: Primary key field name
        value: Key value, or a record carrying the key field

    Raises:
        UnmappableFieldError: If the entity has no ``key_field``
        InvalidKeyValueError: If the value cannot be converted to the key type
    """
    if key_field not in entity_type.model_fields:
        raise UnmappableFieldError(key_field, entity_type)

    if isinstance(value, BaseModel) and key_field in type(value).model_fields:
        value = getattr(value, key_field)

    parameter = Parameter(entity_type, "entity")
    key_value = coerce_key_value(entity_type, key_field, value)
    return Predicate(parameter, Comparison(CompareOp.EQ, FieldRef(parameter, key_field), Constant(key_value)))
