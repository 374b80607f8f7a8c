"""Rule descriptors registered with rule packs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, FrozenSet, Iterable

from ..models import FindingSeverity

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..models import ResourceNode


class RuleOutcome(str, Enum):
    """Result of a single predicate evaluation."""

    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    NOT_APPLICABLE = "not_applicable"


Predicate = Callable[["ResourceNode"], RuleOutcome]


class RuleRegistrationError(ValueError):
    """Raised when rule descriptors cannot be registered together."""


@dataclass(frozen=True, slots=True)
class RuleDescriptor:
    """Identity, severity, text and predicate of one compliance rule."""

    id: str
    severity: FindingSeverity
    summary: str
    explanation: str
    predicate: Predicate = field(repr=False, compare=False)
    resource_types: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise RuleRegistrationError("Rule descriptors require a non-empty id")
        if not isinstance(self.severity, FindingSeverity):
            object.__setattr__(self, "severity", FindingSeverity(self.severity))
        object.__setattr__(self, "resource_types", frozenset(self.resource_types))

    def applies_to(self, resource_type: str | None) -> bool:
        """Cheap type filter run before the predicate; an empty set means any type."""

        if resource_type is None:
            return False
        return not self.resource_types or resource_type in self.resource_types


def rule(
    rule_id: str,
    severity: FindingSeverity,
    summary: str,
    explanation: str,
    resource_types: Iterable[str] = (),
) -> Callable[[Predicate], RuleDescriptor]:
    """Decorator turning a predicate function into a :class:`RuleDescriptor`."""

    def decorator(predicate: Predicate) -> RuleDescriptor:
        return RuleDescriptor(
            id=rule_id,
            severity=severity,
            summary=summary,
            explanation=explanation,
            predicate=predicate,
            resource_types=frozenset(resource_types),
        )

    return decorator
