from __future__ import annotations

import pytest

from compliance_nag.models import DeclarationUnit, ResourceNode, Suppression
from compliance_nag.rules import (
    SuppressionMatcher,
    SuppressionStatus,
    pattern_matches,
    validate_pattern,
)


def _tree() -> tuple[ResourceNode, ResourceNode, ResourceNode]:
    unit = DeclarationUnit(name="Stack")
    assert unit.root is not None
    network = unit.root.add_child(ResourceNode(path="Stack/Network"))
    group = network.add_child(
        ResourceNode(path="Stack/Network/WebSg", type="AWS::EC2::SecurityGroup")
    )
    return unit.root, network, group


@pytest.mark.parametrize(
    ("pattern", "rule_id", "expected"),
    [
        ("AwsSolutions-EC23", "AwsSolutions-EC23", True),
        ("AwsSolutions-EC23", "AwsSolutions-EC2", False),
        ("AwsSolutions-*", "AwsSolutions-IAM4", True),
        ("AwsSolutions-*", "HIPAA.Security-EFSEncrypted", False),
        ("awssolutions-iam4", "AwsSolutions-IAM4", False),
        ("*", "AwsSolutions-IAM4", False),
        ("AwsSolutions-*4", "AwsSolutions-IAM4", False),
    ],
)
def test_pattern_matching(pattern: str, rule_id: str, expected: bool) -> None:
    assert pattern_matches(pattern, rule_id) is expected


@pytest.mark.parametrize("pattern", ["", "   ", "*", "Aws*Solutions-IAM4", " AwsSolutions-IAM4"])
def test_malformed_patterns_are_reported(pattern: str) -> None:
    assert validate_pattern(pattern) is not None


def test_valid_patterns_pass_validation() -> None:
    assert validate_pattern("AwsSolutions-IAM4") is None
    assert validate_pattern("NIST.800.53.R5-IAM*") is None


def test_unsuppressed_node() -> None:
    _, _, group = _tree()

    result = SuppressionMatcher().is_suppressed(group, "AwsSolutions-EC23")

    assert result.status is SuppressionStatus.NOT_SUPPRESSED
    assert result.is_suppressed is False


def test_ancestor_suppression_is_inherited() -> None:
    root, _, group = _tree()
    root.suppressions.append(Suppression("AwsSolutions-*", "sandbox stack"))

    result = SuppressionMatcher().is_suppressed(group, "AwsSolutions-EC23")

    assert result.status is SuppressionStatus.SUPPRESSED
    assert result.justification == "sandbox stack"
    assert result.scope == "Stack"


def test_nearest_scope_wins() -> None:
    root, network, group = _tree()
    root.suppressions.append(Suppression("AwsSolutions-EC23", "root reason"))
    network.suppressions.append(Suppression("AwsSolutions-EC23", "network reason"))

    result = SuppressionMatcher().is_suppressed(group, "AwsSolutions-EC23")

    assert result.justification == "network reason"
    assert result.scope == "Stack/Network"


def test_first_matching_entry_in_a_scope_wins() -> None:
    _, _, group = _tree()
    group.suppressions.extend(
        [
            Suppression("AwsSolutions-*", "family reason"),
            Suppression("AwsSolutions-EC23", "specific reason"),
        ]
    )

    result = SuppressionMatcher().is_suppressed(group, "AwsSolutions-EC23")

    assert result.justification == "family reason"


def test_blank_justification_is_invalid_not_suppressed() -> None:
    root, _, group = _tree()
    group.suppressions.append(Suppression("AwsSolutions-EC23", "   "))
    root.suppressions.append(Suppression("AwsSolutions-EC23", "would otherwise apply"))

    result = SuppressionMatcher().is_suppressed(group, "AwsSolutions-EC23")

    assert result.status is SuppressionStatus.INVALID
    assert result.is_suppressed is False
    assert "no justification" in (result.reason or "")
    assert result.entry == Suppression("AwsSolutions-EC23", "   ")


def test_disabled_inheritance_only_checks_the_node() -> None:
    root, _, group = _tree()
    root.suppressions.append(Suppression("AwsSolutions-EC23", "stack-wide"))

    result = SuppressionMatcher(inheritance=False).is_suppressed(group, "AwsSolutions-EC23")

    assert result.status is SuppressionStatus.NOT_SUPPRESSED


def test_node_can_block_inheritance() -> None:
    root, network, group = _tree()
    root.suppressions.append(Suppression("AwsSolutions-EC23", "stack-wide"))
    network.inherit_suppressions = False

    matcher = SuppressionMatcher()

    assert [scope.path for scope in matcher.scopes(group)] == [
        "Stack/Network/WebSg",
        "Stack/Network",
    ]
    assert matcher.is_suppressed(group, "AwsSolutions-EC23").status is (
        SuppressionStatus.NOT_SUPPRESSED
    )
