from __future__ import annotations

import pytest

from compliance_nag.models import DeclarationUnit, Finding, FindingSeverity, ResourceNode


def _finding() -> Finding:
    return Finding(
        resource_id="Stack/Key",
        rule_id="Demo-1",
        severity=FindingSeverity.ERROR,
        message="Demo-1: summary",
        metadata={"explanation": "Rotate keys."},
    )


def test_finding_metadata_is_read_only() -> None:
    source = {"explanation": "Rotate keys."}
    finding = Finding(
        resource_id="Stack/Key",
        rule_id="Demo-1",
        severity=FindingSeverity.ERROR,
        message="Demo-1: summary",
        metadata=source,
    )
    source["explanation"] = "changed"

    assert finding.metadata["explanation"] == "Rotate keys."
    with pytest.raises(TypeError):
        finding.metadata["explanation"] = "changed"  # type: ignore[index]


def test_findings_are_hashable_and_comparable() -> None:
    assert _finding() == _finding()
    assert len({_finding(), _finding()}) == 1
    assert dict(_finding().metadata) == {"explanation": "Rotate keys."}


def test_unit_without_explicit_root_walks_its_own_root() -> None:
    unit = DeclarationUnit(name="Stack")
    assert unit.root is not None
    unit.root.add_child(ResourceNode(path="Stack/Key", type="AWS::KMS::Key"))

    assert [node.path for node in unit.walk()] == ["Stack", "Stack/Key"]
    assert [node.path for node in unit.resources()] == ["Stack/Key"]
    assert unit.find("Stack/Key") is not None
