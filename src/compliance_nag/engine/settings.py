"""Settings recognised by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping

_ENABLED = {"enabled", "enable", "true", "yes", "on"}
_DISABLED = {"disabled", "disable", "false", "no", "off"}

_KEY_ALIASES = {
    "suppressionInheritance": "suppression_inheritance",
    "unresolvedValuePolicy": "unresolved_value_policy",
}


class UnresolvedValuePolicy(str, Enum):
    """How the engine reacts when a predicate hits a value it cannot resolve."""

    TREAT_AS_COMPLIANT = "treat_as_compliant"
    TREAT_AS_NON_COMPLIANT = "treat_as_non_compliant"
    REQUIRE_EXPLICIT_HANDLING = "require_explicit_handling"

    @classmethod
    def parse(cls, value: object) -> "UnresolvedValuePolicy":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip()
            if "_" in normalized or "-" in normalized or normalized.isupper():
                normalized = normalized.lower().replace("-", "_")
            else:
                # camelCase spelling, e.g. treatAsCompliant
                normalized = "".join(
                    f"_{char.lower()}" if char.isupper() else char for char in normalized
                )
            try:
                return cls(normalized)
            except ValueError:
                pass
        choices = ", ".join(policy.value for policy in cls)
        raise ValueError(f"Unknown unresolved value policy {value!r}; expected one of {choices}")


def _parse_switch(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _ENABLED:
            return True
        if normalized in _DISABLED:
            return False
    raise ValueError(f"Setting '{name}' must be enabled or disabled, got {value!r}")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Run-wide switches applied by the rule engine."""

    suppression_inheritance: bool = True
    unresolved_value_policy: UnresolvedValuePolicy = UnresolvedValuePolicy.REQUIRE_EXPLICIT_HANDLING
    verbose: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EngineSettings":
        return cls().merged(data)

    def merged(self, data: Mapping[str, Any] | None) -> "EngineSettings":
        """Return a copy with the values from ``data`` applied on top."""

        if not data:
            return self

        known = {item.name for item in fields(self)}
        changes: dict[str, Any] = {}
        for raw_key, value in data.items():
            key = _KEY_ALIASES.get(str(raw_key), str(raw_key))
            if key not in known:
                raise ValueError(f"Unknown engine setting '{raw_key}'")
            if value is None:
                continue
            if key == "unresolved_value_policy":
                changes[key] = UnresolvedValuePolicy.parse(value)
            else:
                changes[key] = _parse_switch(key, value)

        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "suppression_inheritance": "enabled" if self.suppression_inheritance else "disabled",
            "unresolved_value_policy": self.unresolved_value_policy.value,
            "verbose": self.verbose,
        }
