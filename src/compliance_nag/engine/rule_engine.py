"""Application of a single rule to a single resource node."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..models import (
    INVALID_SUPPRESSION_RULE_ID,
    Finding,
    FindingCategory,
    FindingSeverity,
    FindingStatus,
    ResourceNode,
)
from ..resolution import UnresolvedValueError
from ..rules.descriptor import RuleDescriptor, RuleOutcome
from ..rules.suppression import SuppressionMatcher, SuppressionResult, SuppressionStatus
from .ledger import EvaluationLedger
from .reporter import FindingReporter
from .settings import EngineSettings, UnresolvedValuePolicy

logger = logging.getLogger(__name__)


class RuleEngine:
    """Evaluate rule descriptors against nodes and record the findings."""

    def __init__(
        self,
        ledger: EvaluationLedger,
        reporter: FindingReporter,
        settings: EngineSettings | None = None,
        *,
        matcher: SuppressionMatcher | None = None,
    ) -> None:
        self.ledger = ledger
        self.reporter = reporter
        self.settings = settings or EngineSettings()
        self.matcher = matcher or SuppressionMatcher(
            inheritance=self.settings.suppression_inheritance
        )

    # ------------------------------------------------------------------
    def evaluate(self, node: ResourceNode, descriptor: RuleDescriptor) -> Optional[Finding]:
        """Apply ``descriptor`` to ``node`` once per run.

        Returns the finding describing the rule outcome, or ``None`` when the
        pair was already evaluated or the resource passed. Authoring errors
        caused by an invalid suppression are recorded alongside it.
        """

        if not self.ledger.try_mark(node.id, descriptor.id):
            logger.debug("Skipping %s on %s: already evaluated", descriptor.id, node.id)
            return None

        try:
            outcome = descriptor.predicate(node)
        except UnresolvedValueError as exc:
            policy = self.settings.unresolved_value_policy
            if policy is UnresolvedValuePolicy.TREAT_AS_COMPLIANT:
                outcome = RuleOutcome.COMPLIANT
            elif policy is UnresolvedValuePolicy.TREAT_AS_NON_COMPLIANT:
                outcome = RuleOutcome.NON_COMPLIANT
            else:
                return self._record_internal_error(
                    node,
                    descriptor,
                    f"the rule did not handle an unresolved value ({exc})",
                    error_type="unresolved_value",
                )
        except Exception as exc:  # noqa: BLE001 - one bad predicate must not abort the pack
            logger.warning(
                "Rule %s raised while evaluating %s", descriptor.id, node.id, exc_info=True
            )
            return self._record_internal_error(
                node,
                descriptor,
                f"{type(exc).__name__}: {exc}",
                error_type=type(exc).__name__,
            )

        if not isinstance(outcome, RuleOutcome):
            return self._record_internal_error(
                node,
                descriptor,
                f"the predicate returned {outcome!r} instead of a rule outcome",
                error_type="invalid_outcome",
            )

        if outcome is not RuleOutcome.NON_COMPLIANT:
            return None

        suppression = self.matcher.is_suppressed(node, descriptor.id)
        if suppression.status is SuppressionStatus.SUPPRESSED:
            finding = self._build_finding(
                node,
                descriptor,
                status=FindingStatus.SUPPRESSED,
                justification=suppression.justification,
                extra={"suppression_scope": suppression.scope},
            )
            self.reporter.record(finding)
            return finding

        finding = self._build_finding(node, descriptor)
        self.reporter.record(finding)
        if suppression.status is SuppressionStatus.INVALID and self._first_report(
            node, suppression
        ):
            self.reporter.record(self._invalid_suppression_finding(node, descriptor, suppression))
        return finding

    def _first_report(self, node: ResourceNode, suppression: SuppressionResult) -> bool:
        # one authoring finding per offending entry, however many rules it covers
        pattern = suppression.entry.rule_pattern if suppression.entry else ""
        return self.ledger.try_mark(
            node.id, f"{INVALID_SUPPRESSION_RULE_ID}:{suppression.scope}:{pattern}"
        )

    # ------------------------------------------------------------------
    def _message(self, descriptor: RuleDescriptor) -> str:
        message = f"{descriptor.id}: {descriptor.summary}"
        if self.settings.verbose and descriptor.explanation:
            message = f"{message}\n{descriptor.explanation}"
        return message

    def _build_finding(
        self,
        node: ResourceNode,
        descriptor: RuleDescriptor,
        *,
        status: FindingStatus = FindingStatus.ACTIVE,
        justification: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> Finding:
        metadata: Dict[str, Any] = {"explanation": descriptor.explanation}
        if extra:
            metadata.update(extra)
        return Finding(
            resource_id=node.id,
            rule_id=descriptor.id,
            severity=descriptor.severity,
            message=self._message(descriptor),
            status=status,
            justification=justification,
            resource_type=node.type,
            metadata=metadata,
        )

    def _invalid_suppression_finding(
        self,
        node: ResourceNode,
        descriptor: RuleDescriptor,
        suppression: SuppressionResult,
    ) -> Finding:
        return Finding(
            resource_id=node.id,
            rule_id=INVALID_SUPPRESSION_RULE_ID,
            severity=FindingSeverity.ERROR,
            message=(
                f"{INVALID_SUPPRESSION_RULE_ID}: {suppression.reason}; "
                f"{descriptor.id} was not suppressed"
            ),
            category=FindingCategory.AUTHORING,
            resource_type=node.type,
            metadata={
                "suppressed_rule": descriptor.id,
                "pattern": suppression.entry.rule_pattern if suppression.entry else None,
                "suppression_scope": suppression.scope,
            },
        )

    def _record_internal_error(
        self,
        node: ResourceNode,
        descriptor: RuleDescriptor,
        detail: str,
        *,
        error_type: str,
    ) -> Finding:
        finding = Finding(
            resource_id=node.id,
            rule_id=descriptor.id,
            severity=FindingSeverity.ERROR,
            message=f"{descriptor.id}: rule could not be evaluated - {detail}",
            category=FindingCategory.INTERNAL,
            resource_type=node.type,
            metadata={"error_type": error_type},
        )
        self.reporter.record(finding)
        return finding
