"""Data models for declaration trees and compliance findings."""

from .finding import (
    INVALID_SUPPRESSION_RULE_ID,
    UNKNOWN_SUPPRESSION_RULE_ID,
    Finding,
    FindingCategory,
    FindingSeverity,
    FindingStatus,
)
from .resource import DeclarationUnit, ResourceNode, Suppression

__all__ = [
    "INVALID_SUPPRESSION_RULE_ID",
    "UNKNOWN_SUPPRESSION_RULE_ID",
    "DeclarationUnit",
    "Finding",
    "FindingCategory",
    "FindingSeverity",
    "FindingStatus",
    "ResourceNode",
    "Suppression",
]
