"""Resolution of deferred property values against a declaration unit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple, Type, Union

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..models import ResourceNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 16

ExpectedType = Union[Type[Any], Tuple[Type[Any], ...]]


class TokenKind(str, Enum):
    """Kinds of deferred tokens found in declaration documents."""

    REF = "Ref"
    GET_ATT = "GetAtt"
    IMPORT_VALUE = "ImportValue"
    INTRINSIC = "Intrinsic"


@dataclass(frozen=True, slots=True)
class Deferred:
    """Placeholder for a value that is fixed only at a later stage.

    For ``INTRINSIC`` tokens ``reference`` holds the function name (for
    example ``Fn::Join``) and ``argument`` its converted argument.
    """

    reference: str
    kind: TokenKind = TokenKind.REF
    argument: Any = field(default=None, hash=False)

    def __str__(self) -> str:
        return f"${{{self.kind.value}:{self.reference}}}"

    def to_declaration(self) -> Dict[str, Any]:
        """Return the long-form template object this token was read from."""

        if self.kind is TokenKind.REF:
            return {"Ref": self.reference}
        if self.kind is TokenKind.GET_ATT:
            return {"Fn::GetAtt": self.reference.split(".", 1)}
        if self.kind is TokenKind.IMPORT_VALUE:
            return {"Fn::ImportValue": self.reference}
        return {self.reference: self.argument}


class _Unresolved:
    _instance: Optional["_Unresolved"] = None

    def __new__(cls) -> "_Unresolved":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        raise TypeError("UNRESOLVED has no truth value; compare with 'is UNRESOLVED'")

    def __reduce__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = _Unresolved()


@dataclass(frozen=True, slots=True)
class TypeMismatch:
    """Returned when a resolved value does not have the requested type."""

    expected: Tuple[str, ...]
    actual: str
    value: Any


class ResolutionError(RuntimeError):
    """Base class for resolution problems raised from inside rule predicates."""


class UnresolvedValueError(ResolutionError):
    """Raised by :func:`require_value` when a token cannot be resolved."""

    def __init__(self, node_id: str, token: Any) -> None:
        super().__init__(f"Value {token} of '{node_id}' cannot be resolved before deployment")
        self.node_id = node_id
        self.token = token


class ValueTypeError(ResolutionError):
    """Raised by :func:`require_value` when a value has an unexpected type."""

    def __init__(self, node_id: str, mismatch: TypeMismatch) -> None:
        expected = " or ".join(mismatch.expected)
        super().__init__(
            f"Expected {expected} on '{node_id}' but found {mismatch.actual}: {mismatch.value!r}"
        )
        self.node_id = node_id
        self.mismatch = mismatch


def is_deferred(value: Any) -> bool:
    return isinstance(value, Deferred)


def is_unresolved(value: Any) -> bool:
    return value is UNRESOLVED


def _unit_values(node: "ResourceNode") -> Mapping[str, Any]:
    unit = node.unit
    if unit is None:
        return {}
    return unit.values


def resolve(node: "ResourceNode", value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Return ``value`` with a top-level deferred token substituted.

    Concrete values are returned unchanged. Reference chains are followed
    through the unit's values up to ``max_depth`` hops; a cycle, an overlong
    chain, a missing reference or a cross-unit import yields ``UNRESOLVED``.
    """

    if not isinstance(value, Deferred):
        return value

    values = _unit_values(node)
    seen: set[str] = set()
    current: Any = value
    for _ in range(max_depth):
        if not isinstance(current, Deferred):
            return current
        if current.kind is TokenKind.IMPORT_VALUE:
            return UNRESOLVED
        if current.kind is TokenKind.INTRINSIC:
            return _evaluate_intrinsic(node, current, max_depth)
        if current.reference in seen:
            logger.debug("Cyclic reference %s while resolving %s", current, node.id)
            return UNRESOLVED
        seen.add(current.reference)
        if current.reference not in values:
            return UNRESOLVED
        current = values[current.reference]

    if isinstance(current, Deferred):
        logger.debug("Reference chain from %s exceeded %d hops on %s", value, max_depth, node.id)
        return UNRESOLVED
    return current


def resolve_deep(
    node: "ResourceNode", value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> Any:
    """Resolve tokens nested anywhere inside lists and mappings.

    Tokens that cannot be resolved are replaced by ``UNRESOLVED`` in place.
    """

    if max_depth < 0:
        return UNRESOLVED

    resolved = resolve(node, value, max_depth=max_depth)
    if isinstance(resolved, Mapping):
        result: Dict[Any, Any] = {}
        for key, item in resolved.items():
            result[key] = resolve_deep(node, item, max_depth=max_depth - 1)
        return result
    if isinstance(resolved, (list, tuple)):
        return [resolve_deep(node, item, max_depth=max_depth - 1) for item in resolved]
    return resolved


def _evaluate_intrinsic(node: "ResourceNode", token: Deferred, max_depth: int) -> Any:
    # only Fn::Join over fully known string parts has a value before deployment
    if token.reference != "Fn::Join" or max_depth <= 0:
        return UNRESOLVED
    argument = token.argument
    if not (isinstance(argument, list) and len(argument) == 2 and isinstance(argument[0], str)):
        return UNRESOLVED
    parts = resolve_deep(node, argument[1], max_depth=max_depth - 1)
    if not isinstance(parts, list) or not all(isinstance(part, str) for part in parts):
        return UNRESOLVED
    return argument[0].join(parts)


def resolve_partial(
    node: "ResourceNode", value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> Any:
    """Resolve what can be resolved and keep the rest in declaration form.

    Unlike :func:`resolve_deep`, tokens that cannot be resolved are replaced
    by their long-form template object (``{"Ref": ...}``, ``{"Fn::Join": ...}``)
    instead of ``UNRESOLVED``.
    """

    if max_depth < 0:
        return value.to_declaration() if isinstance(value, Deferred) else value

    if isinstance(value, Deferred):
        values = _unit_values(node)
        if value.kind in (TokenKind.REF, TokenKind.GET_ATT) and value.reference in values:
            return resolve_partial(node, values[value.reference], max_depth=max_depth - 1)
        resolved = resolve(node, value, max_depth=max_depth)
        if resolved is UNRESOLVED:
            resolved = value.to_declaration()
        return resolve_partial(node, resolved, max_depth=max_depth - 1)
    if isinstance(value, Mapping):
        return {
            key: resolve_partial(node, item, max_depth=max_depth - 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [resolve_partial(node, item, max_depth=max_depth - 1) for item in value]
    return value


def _normalize_expected(expected: ExpectedType) -> Tuple[Type[Any], ...]:
    if isinstance(expected, tuple):
        return expected
    return (expected,)


def check_type(value: Any, expected: ExpectedType) -> Optional[TypeMismatch]:
    """Return a :class:`TypeMismatch` unless ``value`` is one of ``expected``.

    ``bool`` is only accepted when asked for explicitly; it never satisfies
    ``int`` or ``float``.
    """

    types = _normalize_expected(expected)
    if isinstance(value, bool):
        accepted = bool in types
    else:
        accepted = isinstance(value, types)
    if accepted:
        return None
    return TypeMismatch(
        expected=tuple(item.__name__ for item in types),
        actual=type(value).__name__,
        value=value,
    )


def resolve_as(node: "ResourceNode", value: Any, expected: ExpectedType) -> Any:
    """Resolve ``value`` and check it against ``expected``.

    Returns the concrete value, ``None`` when the property is absent,
    ``UNRESOLVED``, or a :class:`TypeMismatch`.
    """

    resolved = resolve(node, value)
    if resolved is None or resolved is UNRESOLVED:
        return resolved
    mismatch = check_type(resolved, expected)
    if mismatch is not None:
        return mismatch
    return resolved


def require_value(
    node: "ResourceNode", value: Any, expected: Optional[ExpectedType] = None
) -> Any:
    """Resolve ``value`` for a predicate that leaves unresolved data to policy.

    Raises :class:`UnresolvedValueError` so the engine can apply the
    configured unresolved-value policy, and :class:`ValueTypeError` when the
    value does not have the expected type.
    """

    if expected is None:
        resolved = resolve(node, value)
    else:
        resolved = resolve_as(node, value, expected)
    if resolved is UNRESOLVED:
        raise UnresolvedValueError(node.id, value)
    if isinstance(resolved, TypeMismatch):
        raise ValueTypeError(node.id, resolved)
    return resolved
