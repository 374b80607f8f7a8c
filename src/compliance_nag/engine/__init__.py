"""Rule application engine: ledger, reporter, engine and run orchestration."""

from .ledger import EvaluationLedger
from .reporter import FindingReporter
from .rule_engine import RuleEngine
from .run import NagRun
from .settings import EngineSettings, UnresolvedValuePolicy

__all__ = [
    "EngineSettings",
    "EvaluationLedger",
    "FindingReporter",
    "NagRun",
    "RuleEngine",
    "UnresolvedValuePolicy",
]
