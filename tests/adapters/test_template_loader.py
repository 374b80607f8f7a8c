from __future__ import annotations

from pathlib import Path

import pytest

from compliance_nag.adapters import TemplateLoader, TemplateLoaderError
from compliance_nag.models import FindingCategory
from compliance_nag.service import ComplianceService

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"


def test_directory_discovery_skips_hidden_and_unrelated_files() -> None:
    loader = TemplateLoader(FIXTURES / "templates")

    templates = loader.load_templates()

    assert [template.name for template in templates] == ["Storage", "Compliant"]
    assert templates[1].path == (FIXTURES / "templates" / "nested" / "Compliant.template.yaml")
    assert "Resources" in templates[1].document


def test_single_file_is_loaded_regardless_of_suffix() -> None:
    (template,) = TemplateLoader(FIXTURES / "native-app.yaml").load_templates()

    assert template.name == "native-app"
    assert template.document["name"] == "App"


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(TemplateLoaderError):
        TemplateLoader(tmp_path / "absent").load_templates()


def test_empty_directory_raises(tmp_path: Path) -> None:
    (tmp_path / "readme.md").write_text("nothing here", encoding="utf-8")

    with pytest.raises(TemplateLoaderError, match="No templates"):
        TemplateLoader(tmp_path).load_templates()


@pytest.mark.parametrize(
    ("filename", "content"),
    [
        ("Bad.template.json", "{not json"),
        ("Bad.template.yaml", "Resources: [\n"),
        ("List.template.json", "[1, 2]"),
    ],
)
def test_invalid_documents_raise(tmp_path: Path, filename: str, content: str) -> None:
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")

    with pytest.raises(TemplateLoaderError):
        TemplateLoader(path).load_templates()


def test_yaml_short_form_tags_expand_to_long_form() -> None:
    (template,) = TemplateLoader(FIXTURES / "short-form").load_templates()

    resources = template.document["Resources"]
    assert resources["DataKey"]["Properties"] == {
        "EnableKeyRotation": {"Ref": "Rotate"},
        "Description": {"Fn::Sub": "${AWS::StackName} data key"},
    }
    assert resources["AdminRole"]["Properties"]["RoleName"] == {
        "Fn::Join": ["-", [{"Ref": "AWS::StackName"}, "admin"]]
    }
    assert resources["KeyAlias"]["Properties"]["TargetKeyId"] == {
        "Fn::GetAtt": ["DataKey", "Arn"]
    }


def test_short_form_template_is_evaluated_with_deferred_values() -> None:
    service = ComplianceService()

    result = service.validate(FIXTURES / "short-form")

    assert [
        (finding.resource_id, finding.rule_id, finding.category) for finding in result.findings
    ] == [
        ("App/DataKey", "AwsSolutions-KMS5", FindingCategory.COMPLIANCE),
        ("App/AdminRole", "AwsSolutions-IAM4", FindingCategory.COMPLIANCE),
    ]
