"""Finding models shared by the rule engine and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

INVALID_SUPPRESSION_RULE_ID = "Nag-InvalidSuppression"
UNKNOWN_SUPPRESSION_RULE_ID = "Nag-UnknownSuppressionRule"


class FindingSeverity(str, Enum):
    """Severity levels a rule can be registered with."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class FindingStatus(str, Enum):
    """Whether a finding is in effect or was silenced by a suppression."""

    ACTIVE = "active"
    SUPPRESSED = "suppressed"


class FindingCategory(str, Enum):
    """Separates compliance failures from problems with the run itself."""

    COMPLIANCE = "compliance"
    AUTHORING = "authoring"
    INTERNAL = "internal"


@dataclass(frozen=True, slots=True)
class Finding:
    """The outcome of one rule for one resource that is worth reporting."""

    resource_id: str
    rule_id: str
    severity: FindingSeverity
    message: str
    status: FindingStatus = FindingStatus.ACTIVE
    category: FindingCategory = FindingCategory.COMPLIANCE
    justification: Optional[str] = None
    resource_type: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_active(self) -> bool:
        return self.status is FindingStatus.ACTIVE

    @property
    def is_error(self) -> bool:
        """Return ``True`` for authoring and internal errors."""

        return self.category is not FindingCategory.COMPLIANCE
