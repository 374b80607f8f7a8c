"""Rule packs: ordered collections of rule descriptors for one baseline."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Tuple

from ..models import FindingSeverity, ResourceNode
from .descriptor import RuleDescriptor, RuleRegistrationError

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..engine import RuleEngine


class RulePack:
    """A named baseline whose rules run against every visited resource."""

    def __init__(self, name: str, descriptors: Iterable[RuleDescriptor]) -> None:
        if not name or not name.strip():
            raise RuleRegistrationError("Rule packs require a non-empty name")

        registered: list[RuleDescriptor] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.id in seen:
                raise RuleRegistrationError(
                    f"Rule id '{descriptor.id}' is registered twice in pack '{name}'"
                )
            seen.add(descriptor.id)
            registered.append(descriptor)

        self.name = name
        self._descriptors: Tuple[RuleDescriptor, ...] = tuple(registered)

    def __repr__(self) -> str:
        return f"RulePack(name={self.name!r}, rules={len(self._descriptors)})"

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[RuleDescriptor]:
        return iter(self._descriptors)

    @property
    def descriptors(self) -> Tuple[RuleDescriptor, ...]:
        return self._descriptors

    @property
    def rule_ids(self) -> Tuple[str, ...]:
        return tuple(descriptor.id for descriptor in self._descriptors)

    # ------------------------------------------------------------------
    def with_severity_overrides(self, overrides: Mapping[str, FindingSeverity]) -> "RulePack":
        """Return a copy of the pack with the given rule severities replaced."""

        if not overrides:
            return self
        descriptors = [
            replace(descriptor, severity=overrides[descriptor.id])
            if descriptor.id in overrides
            else descriptor
            for descriptor in self._descriptors
        ]
        return RulePack(self.name, descriptors)

    def without_rules(self, rule_ids: Iterable[str]) -> "RulePack":
        excluded = set(rule_ids)
        if not excluded:
            return self
        return RulePack(
            self.name,
            [descriptor for descriptor in self._descriptors if descriptor.id not in excluded],
        )

    # ------------------------------------------------------------------
    def on_visit(self, node: ResourceNode, engine: "RuleEngine") -> None:
        """Evaluate every applicable rule of the pack against ``node``."""

        if not node.is_resource:
            return
        for descriptor in self._descriptors:
            if descriptor.applies_to(node.type):
                engine.evaluate(node, descriptor)
