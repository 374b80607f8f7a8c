"""NIST 800-53 rev 4 baseline."""

from __future__ import annotations

from ...models import FindingSeverity, ResourceNode
from ...resolution import require_value, resolve_deep
from ..descriptor import RuleOutcome, rule
from ..rule_pack import RulePack

PACK_NAME = "NIST.800.53.R4"


@rule(
    f"{PACK_NAME}-CloudTrailLogFileValidationEnabled",
    FindingSeverity.ERROR,
    "The trail does not have log file validation enabled - (Control ID: AC-6).",
    "Utilize AWS CloudTrail log file validation to check the integrity of CloudTrail logs. "
    "Log file validation helps determine if a log file was modified or deleted or unchanged "
    "after CloudTrail delivered it.",
    resource_types=("AWS::CloudTrail::Trail",),
)
def cloudtrail_log_file_validation(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::CloudTrail::Trail":
        return RuleOutcome.NOT_APPLICABLE

    enabled = require_value(node, node.get_property("EnableLogFileValidation"), bool)
    return RuleOutcome.COMPLIANT if enabled is True else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-CodeBuildURLCheck",
    FindingSeverity.ERROR,
    "The CodeBuild project which utilizes either a GitHub or BitBucket source repository "
    "does not utilize OAUTH - (Control ID: SA-3(a)).",
    "OAUTH is the most secure method of authenticating your CodeBuild application. Use OAuth "
    "instead of personal access tokens or a user name and password to grant authorization for "
    "accessing GitHub or Bitbucket repositories.",
    resource_types=("AWS::CodeBuild::Project",),
)
def codebuild_uses_oauth(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::CodeBuild::Project":
        return RuleOutcome.NOT_APPLICABLE

    source = resolve_deep(node, node.get_property("Source"))
    auth = source.get("Auth") if isinstance(source, dict) else None
    if not isinstance(auth, dict):
        return RuleOutcome.NON_COMPLIANT
    auth_type = require_value(node, auth.get("Type"), str)
    return RuleOutcome.COMPLIANT if auth_type == "OAUTH" else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-EC2CheckDefaultSecurityGroupClosed",
    FindingSeverity.ERROR,
    "The VPC's default security group allows inbound or outbound traffic - (Control IDs: "
    "AC-4, SC-7, SC-7(3)).",
    "When creating a VPC through CloudFormation, the default security group will always be "
    "open. Therefore it is important to always close the default security group after stack "
    "creation whenever a VPC is created. Restricting all the traffic on the default security "
    "group helps in restricting remote access to your AWS resources.",
    resource_types=("AWS::EC2::VPC",),
)
def vpc_default_security_group_closed(node: ResourceNode) -> RuleOutcome:
    # VPCs created through a template never have their default security group closed
    if node.type != "AWS::EC2::VPC":
        return RuleOutcome.NOT_APPLICABLE
    return RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-SageMakerNotebookDirectInternetAccessDisabled",
    FindingSeverity.ERROR,
    "The SageMaker notebook does not disable direct internet access - (Control IDs: AC-3, "
    "AC-4, AC-6, AC-21(b), SC-7, SC-7(3)).",
    "By preventing direct internet access, you can keep sensitive data from being accessed "
    "by unauthorized users.",
    resource_types=("AWS::SageMaker::NotebookInstance",),
)
def sagemaker_notebook_no_direct_internet(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::SageMaker::NotebookInstance":
        return RuleOutcome.NOT_APPLICABLE

    access = require_value(node, node.get_property("DirectInternetAccess"), str)
    return RuleOutcome.COMPLIANT if access == "Disabled" else RuleOutcome.NON_COMPLIANT


RULES = (
    cloudtrail_log_file_validation,
    codebuild_uses_oauth,
    vpc_default_security_group_closed,
    sagemaker_notebook_no_direct_internet,
)


def build_pack() -> RulePack:
    return RulePack(PACK_NAME, RULES)
