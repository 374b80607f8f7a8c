"""One evaluation pass of a set of rule packs over one declaration unit."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from ..models import (
    INVALID_SUPPRESSION_RULE_ID,
    UNKNOWN_SUPPRESSION_RULE_ID,
    DeclarationUnit,
    Finding,
    FindingCategory,
    FindingSeverity,
    ResourceNode,
)
from ..rules.descriptor import RuleRegistrationError
from ..rules.rule_pack import RulePack
from ..rules.suppression import pattern_matches, validate_pattern
from .ledger import EvaluationLedger
from .reporter import FindingReporter
from .rule_engine import RuleEngine
from .settings import EngineSettings

logger = logging.getLogger(__name__)


class NagRun:
    """Owns the ledger, reporter and engine for a single run.

    ``visit`` is the entry point a host traversal calls for every node it
    delivers, as many times as it likes; ``run`` performs the whole pass over
    a :class:`DeclarationUnit` itself.
    """

    def __init__(self, packs: Iterable[RulePack], settings: EngineSettings | None = None) -> None:
        self.packs: Tuple[RulePack, ...] = tuple(packs)
        self.settings = settings or EngineSettings()
        self._rule_ids = self._check_registrations(self.packs)

        self.ledger = EvaluationLedger()
        self.reporter = FindingReporter()
        self.engine = RuleEngine(self.ledger, self.reporter, self.settings)

    @staticmethod
    def _check_registrations(packs: Sequence[RulePack]) -> List[str]:
        owners: dict[str, str] = {}
        names: set[str] = set()
        for pack in packs:
            if pack.name in names:
                raise RuleRegistrationError(f"Rule pack '{pack.name}' is registered twice")
            names.add(pack.name)
            for rule_id in pack.rule_ids:
                if rule_id in owners:
                    raise RuleRegistrationError(
                        f"Rule id '{rule_id}' is registered by both "
                        f"'{owners[rule_id]}' and '{pack.name}'"
                    )
                owners[rule_id] = pack.name
        return list(owners)

    @property
    def rule_ids(self) -> List[str]:
        return list(self._rule_ids)

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return self.reporter.all()

    # ------------------------------------------------------------------
    def visit(self, node: ResourceNode) -> None:
        for pack in self.packs:
            pack.on_visit(node, self.engine)

    def run(self, unit: DeclarationUnit) -> Tuple[Finding, ...]:
        """Visit every node of ``unit`` in pre-order and validate its suppressions."""

        visited = 0
        for node in unit.walk():
            self.visit(node)
            visited += 1
        self.validate_suppressions(unit)

        findings = self.reporter.all()
        logger.info(
            "Evaluated %d nodes of %s against %d packs: %d findings",
            visited,
            unit.name,
            len(self.packs),
            len(findings),
        )
        return findings

    # ------------------------------------------------------------------
    def validate_suppressions(self, unit: DeclarationUnit) -> None:
        """Report malformed suppression patterns and patterns matching no rule."""

        for node in unit.walk():
            for entry in node.suppressions:
                pattern = entry.rule_pattern
                problem = validate_pattern(pattern)
                if problem is not None:
                    rule_id = INVALID_SUPPRESSION_RULE_ID
                    severity = FindingSeverity.ERROR
                    detail = problem
                elif any(pattern_matches(pattern, rule_id) for rule_id in self._rule_ids):
                    continue
                else:
                    rule_id = UNKNOWN_SUPPRESSION_RULE_ID
                    severity = FindingSeverity.WARN
                    detail = f"suppression pattern '{pattern}' matches no registered rule"

                if not self.ledger.try_mark(node.id, f"{rule_id}:{pattern}"):
                    continue
                self.reporter.record(
                    Finding(
                        resource_id=node.id,
                        rule_id=rule_id,
                        severity=severity,
                        message=f"{rule_id}: {detail}",
                        category=FindingCategory.AUTHORING,
                        resource_type=node.type,
                        metadata={"pattern": pattern},
                    )
                )
