from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from compliance_nag.models import Suppression
from compliance_nag.normalization import NormalizationError, UnitNormalizer
from compliance_nag.resolution import Deferred, TokenKind

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"


def test_native_document_builds_nested_tree() -> None:
    document = yaml.safe_load((FIXTURES / "native-app.yaml").read_text(encoding="utf-8"))

    unit = UnitNormalizer().normalize(document, name="ignored", source="native-app.yaml")

    assert unit.name == "App"
    assert unit.source == "native-app.yaml"
    assert [node.path for node in unit.walk()] == [
        "App",
        "App/Data",
        "App/Data/Key",
        "App/Data/Database",
        "App/Role",
    ]
    assert [node.path for node in unit.resources()] == [
        "App/Data/Key",
        "App/Data/Database",
        "App/Role",
    ]

    assert unit.root is not None
    assert unit.root.suppressions == [
        Suppression("AwsSolutions-AS3", "Scaling notifications are wired up by the platform team")
    ]

    database = unit.find("App/Data/Database")
    assert database is not None
    assert database.inherit_suppressions is False
    assert database.get_property("Port") == Deferred("DbPort")
    assert database.parent is unit.find("App/Data")
    assert database.unit is unit

    role = unit.find("App/Role")
    assert role is not None
    assert role.get_property("ManagedPolicyArns") == [
        Deferred("SharedPolicyArn", TokenKind.IMPORT_VALUE)
    ]
    assert unit.values["DbPort"] == Deferred("PortParameter")


def test_cloudformation_template_reads_nag_metadata() -> None:
    document = json.loads(
        (FIXTURES / "templates" / "Storage.template.json").read_text(encoding="utf-8")
    )

    unit = UnitNormalizer().normalize(document, name="Storage")

    assert [node.path for node in unit.resources()] == [
        "Storage/DataKey",
        "Storage/AuditKey",
        "Storage/OpenSg",
    ]
    assert unit.root is not None
    assert unit.root.suppressions == [
        Suppression("AwsSolutions-COG2", "No user pools in this stack")
    ]
    audit_key = unit.find("Storage/AuditKey")
    assert audit_key is not None
    assert audit_key.type == "AWS::KMS::Key"
    assert audit_key.suppressions == [Suppression("AwsSolutions-IAM4", "")]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({"Ref": "Bucket"}, Deferred("Bucket")),
        ({"Fn::GetAtt": ["Key", "Arn"]}, Deferred("Key.Arn", TokenKind.GET_ATT)),
        ({"Fn::GetAtt": "Key.Arn"}, Deferred("Key.Arn", TokenKind.GET_ATT)),
        ({"Fn::ImportValue": "Shared"}, Deferred("Shared", TokenKind.IMPORT_VALUE)),
        (
            {"Fn::Join": ["", ["a", {"Ref": "B"}]]},
            Deferred("Fn::Join", TokenKind.INTRINSIC, ["", ["a", Deferred("B")]]),
        ),
        ({"Fn::Sub": "${Bucket}-logs"}, Deferred("Fn::Sub", TokenKind.INTRINSIC, "${Bucket}-logs")),
        ([{"Ref": "A"}, 1], [Deferred("A"), 1]),
        ({"Ref": "A", "Other": 1}, {"Ref": "A", "Other": 1}),
    ],
)
def test_convert_tokens(raw: object, expected: object) -> None:
    assert UnitNormalizer().convert_tokens(raw) == expected


@pytest.mark.parametrize(
    "document",
    [
        ["not", "a", "mapping"],
        {"resources": [{"type": "AWS::KMS::Key"}]},
        {"resources": [{"id": "A/B", "type": "AWS::KMS::Key"}]},
        {"resources": [{"id": "Key", "properties": ["x"]}]},
        {"resources": [{"id": "Key", "suppressions": {"id": "AwsSolutions-KMS5"}}]},
        {"Resources": ["Key"]},
    ],
)
def test_malformed_documents_raise(document: object) -> None:
    with pytest.raises(NormalizationError):
        UnitNormalizer().normalize(document)  # type: ignore[arg-type]
