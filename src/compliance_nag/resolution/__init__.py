"""Deferred value resolution used by rule predicates."""

from .value_resolver import (
    DEFAULT_MAX_DEPTH,
    UNRESOLVED,
    Deferred,
    ResolutionError,
    TokenKind,
    TypeMismatch,
    UnresolvedValueError,
    ValueTypeError,
    check_type,
    is_deferred,
    is_unresolved,
    require_value,
    resolve,
    resolve_as,
    resolve_deep,
    resolve_partial,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "UNRESOLVED",
    "Deferred",
    "ResolutionError",
    "TokenKind",
    "TypeMismatch",
    "UnresolvedValueError",
    "ValueTypeError",
    "check_type",
    "is_deferred",
    "is_unresolved",
    "require_value",
    "resolve",
    "resolve_as",
    "resolve_deep",
    "resolve_partial",
]
