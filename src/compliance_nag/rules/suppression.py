"""Matching of authored suppressions against rule identifiers.

Patterns are either an exact rule id (``AwsSolutions-IAM4``) or a non-empty
prefix followed by a single trailing ``*`` (``AwsSolutions-*``). Matching is
case-sensitive. Any other use of ``*`` makes the pattern malformed; malformed
patterns never match and are reported separately as authoring errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from ..models import ResourceNode, Suppression

WILDCARD = "*"


class SuppressionStatus(str, Enum):
    NOT_SUPPRESSED = "not_suppressed"
    SUPPRESSED = "suppressed"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class SuppressionResult:
    """Answer of :meth:`SuppressionMatcher.is_suppressed`."""

    status: SuppressionStatus
    justification: Optional[str] = None
    reason: Optional[str] = None
    entry: Optional[Suppression] = None
    scope: Optional[str] = None

    @property
    def is_suppressed(self) -> bool:
        return self.status is SuppressionStatus.SUPPRESSED


NOT_SUPPRESSED = SuppressionResult(status=SuppressionStatus.NOT_SUPPRESSED)


def validate_pattern(pattern: str) -> Optional[str]:
    """Return why ``pattern`` is malformed, or ``None`` when it is usable."""

    if not pattern or not pattern.strip():
        return "suppression pattern is empty"
    if pattern != pattern.strip():
        return f"suppression pattern '{pattern}' has surrounding whitespace"
    if pattern == WILDCARD:
        return "a bare '*' would suppress every rule; name a rule family prefix"
    if WILDCARD in pattern[:-1]:
        return f"suppression pattern '{pattern}' may only use '*' as its last character"
    return None


def pattern_matches(pattern: str, rule_id: str) -> bool:
    if validate_pattern(pattern) is not None:
        return False
    if pattern.endswith(WILDCARD):
        return rule_id.startswith(pattern[:-1])
    return pattern == rule_id


class SuppressionMatcher:
    """Decide whether a finding for ``(node, rule_id)`` is suppressed."""

    def __init__(self, *, inheritance: bool = True) -> None:
        self.inheritance = inheritance

    def scopes(self, node: ResourceNode) -> Iterator[ResourceNode]:
        """Yield the nodes whose suppressions apply to ``node``, nearest first."""

        yield node
        if not self.inheritance or not node.inherit_suppressions:
            return
        for ancestor in node.ancestors():
            yield ancestor
            if not ancestor.inherit_suppressions:
                return

    def is_suppressed(self, node: ResourceNode, rule_id: str) -> SuppressionResult:
        for scope in self.scopes(node):
            for entry in scope.suppressions:
                if not pattern_matches(entry.rule_pattern, rule_id):
                    continue

                justification = (entry.justification or "").strip()
                if not justification:
                    return SuppressionResult(
                        status=SuppressionStatus.INVALID,
                        reason=(
                            f"suppression '{entry.rule_pattern}' on '{scope.path}' "
                            "has no justification"
                        ),
                        entry=entry,
                        scope=scope.path,
                    )
                return SuppressionResult(
                    status=SuppressionStatus.SUPPRESSED,
                    justification=justification,
                    entry=entry,
                    scope=scope.path,
                )

        return NOT_SUPPRESSED
