"""Rule descriptors, suppression matching, rule packs and manifest handling."""

from .descriptor import Predicate, RuleDescriptor, RuleOutcome, RuleRegistrationError, rule
from .suppression import (
    NOT_SUPPRESSED,
    SuppressionMatcher,
    SuppressionResult,
    SuppressionStatus,
    pattern_matches,
    validate_pattern,
)
from .rule_pack import RulePack
from .rule_pack_manager import ManifestConfig, PackConfig, RulePackError, RulePackManager

__all__ = [
    "NOT_SUPPRESSED",
    "ManifestConfig",
    "PackConfig",
    "Predicate",
    "RuleDescriptor",
    "RuleOutcome",
    "RulePack",
    "RulePackError",
    "RulePackManager",
    "RuleRegistrationError",
    "SuppressionMatcher",
    "SuppressionResult",
    "SuppressionStatus",
    "pattern_matches",
    "rule",
    "validate_pattern",
]
