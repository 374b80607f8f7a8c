"""Behaviour of the builtin rule packs against small resource fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from compliance_nag.engine import NagRun
from compliance_nag.models import DeclarationUnit, FindingCategory, ResourceNode
from compliance_nag.normalization import UnitNormalizer
from compliance_nag.resolution import Deferred, TokenKind, UnresolvedValueError
from compliance_nag.rules import RuleOutcome
from compliance_nag.rules.catalog import (
    aws_solutions,
    available_packs,
    get_builtin_pack,
    hipaa_security,
    nist_800_53_r4,
    nist_800_53_r5,
)

COMPLIANT = RuleOutcome.COMPLIANT
NON_COMPLIANT = RuleOutcome.NON_COMPLIANT


def _resource(
    resource_type: str, properties: dict[str, Any], values: dict[str, Any] | None = None
) -> ResourceNode:
    unit = DeclarationUnit(name="Stack", values=dict(values or {}))
    assert unit.root is not None
    return unit.root.add_child(
        ResourceNode(path="Stack/Resource", type=resource_type, properties=properties)
    )


def test_builtin_packs_are_registered() -> None:
    assert available_packs() == [
        "AwsSolutions",
        "HIPAA.Security",
        "NIST.800.53.R4",
        "NIST.800.53.R5",
    ]
    pack = get_builtin_pack("AwsSolutions")
    assert all(rule_id.startswith("AwsSolutions-") for rule_id in pack.rule_ids)
    with pytest.raises(KeyError):
        get_builtin_pack("Unknown")


@pytest.mark.parametrize(
    ("properties", "expected"),
    [
        ({}, COMPLIANT),
        ({"ManagedPolicyArns": ["arn:aws:iam::aws:policy/AdministratorAccess"]}, NON_COMPLIANT),
        ({"ManagedPolicyArns": ["arn:aws:iam::123456789012:policy/team-policy"]}, COMPLIANT),
    ],
)
def test_iam4_flags_aws_managed_policies(properties: dict[str, Any], expected: RuleOutcome):
    node = _resource("AWS::IAM::Role", properties)

    assert aws_solutions.iam_no_managed_policies.predicate(node) is expected


def _cdk_policy_arn(*middle: object) -> Deferred:
    return Deferred(
        "Fn::Join",
        TokenKind.INTRINSIC,
        ["", ["arn:", Deferred("AWS::Partition"), *middle]],
    )


@pytest.mark.parametrize(
    ("arn", "expected"),
    [
        (_cdk_policy_arn(":iam::aws:policy/AdministratorAccess"), NON_COMPLIANT),
        (
            _cdk_policy_arn(":iam::", Deferred("AWS::AccountId"), ":policy/team-policy"),
            COMPLIANT,
        ),
        (_cdk_policy_arn(":iam::123456789012:policy/team-policy"), COMPLIANT),
    ],
)
def test_iam4_judges_joined_arns_by_their_template_text(arn: Deferred, expected: RuleOutcome):
    node = _resource("AWS::IAM::Role", {"ManagedPolicyArns": [arn]})

    assert aws_solutions.iam_no_managed_policies.predicate(node) is expected


def test_iam4_on_synthesized_template_reports_compliance_finding() -> None:
    document = {
        "Resources": {
            "Role": {
                "Type": "AWS::IAM::Role",
                "Properties": {
                    "ManagedPolicyArns": [
                        {
                            "Fn::Join": [
                                "",
                                [
                                    "arn:",
                                    {"Ref": "AWS::Partition"},
                                    ":iam::aws:policy/AdministratorAccess",
                                ],
                            ]
                        }
                    ]
                },
            }
        }
    }
    unit = UnitNormalizer().normalize(document, name="Stack")

    findings = NagRun([get_builtin_pack("AwsSolutions")]).run(unit)

    assert [(item.resource_id, item.rule_id, item.category) for item in findings] == [
        ("Stack/Role", "AwsSolutions-IAM4", FindingCategory.COMPLIANCE)
    ]


def test_iam4_delegates_unresolved_arns_to_policy() -> None:
    node = _resource(
        "AWS::IAM::Role",
        {"ManagedPolicyArns": [Deferred("PolicyArn", TokenKind.IMPORT_VALUE)]},
    )

    with pytest.raises(UnresolvedValueError):
        aws_solutions.iam_no_managed_policies.predicate(node)


@pytest.mark.parametrize(
    ("properties", "values", "expected"),
    [
        ({"EnableKeyRotation": True}, {}, COMPLIANT),
        ({"EnableKeyRotation": False}, {}, NON_COMPLIANT),
        ({}, {}, NON_COMPLIANT),
        ({"EnableKeyRotation": Deferred("Rotate")}, {"Rotate": True}, COMPLIANT),
        ({"EnableKeyRotation": Deferred("Rotate")}, {}, NON_COMPLIANT),
        ({"KeySpec": "RSA_2048"}, {}, COMPLIANT),
    ],
)
def test_kms5_requires_rotation_on_symmetric_keys(
    properties: dict[str, Any], values: dict[str, Any], expected: RuleOutcome
):
    node = _resource("AWS::KMS::Key", properties, values)

    assert aws_solutions.kms_key_rotation.predicate(node) is expected


def test_cog2_requires_mfa() -> None:
    on = _resource("AWS::Cognito::UserPool", {"MfaConfiguration": "ON"})
    optional = _resource("AWS::Cognito::UserPool", {"MfaConfiguration": "OPTIONAL"})

    assert aws_solutions.cognito_requires_mfa.predicate(on) is COMPLIANT
    assert aws_solutions.cognito_requires_mfa.predicate(optional) is NON_COMPLIANT


def test_aec3_requires_both_encryption_flags() -> None:
    both = _resource(
        "AWS::ElastiCache::ReplicationGroup",
        {"AtRestEncryptionEnabled": True, "TransitEncryptionEnabled": True},
    )
    one = _resource("AWS::ElastiCache::ReplicationGroup", {"AtRestEncryptionEnabled": True})

    assert aws_solutions.elasticache_encryption.predicate(both) is COMPLIANT
    assert aws_solutions.elasticache_encryption.predicate(one) is NON_COMPLIANT


@pytest.mark.parametrize(
    ("resource_type", "properties", "expected"),
    [
        ("AWS::RDS::DBInstance", {"Engine": "postgres", "Port": 5432}, NON_COMPLIANT),
        ("AWS::RDS::DBInstance", {"Engine": "postgres", "Port": 6543}, COMPLIANT),
        ("AWS::RDS::DBInstance", {"Engine": "aurora-mysql"}, COMPLIANT),
        ("AWS::RDS::DBInstance", {"Engine": "mysql"}, NON_COMPLIANT),
        ("AWS::RDS::DBCluster", {"Engine": "aurora-postgresql", "Port": 5432}, NON_COMPLIANT),
        ("AWS::RDS::DBCluster", {"Engine": "aurora-mysql", "Port": 3307}, COMPLIANT),
    ],
)
def test_rds11_flags_default_ports(
    resource_type: str, properties: dict[str, Any], expected: RuleOutcome
):
    node = _resource(resource_type, properties)

    assert aws_solutions.rds_non_default_port.predicate(node) is expected


def test_ec23_flags_open_ingress() -> None:
    open_group = _resource(
        "AWS::EC2::SecurityGroup",
        {"SecurityGroupIngress": [{"CidrIp": Deferred("AnyWhere")}]},
        {"AnyWhere": "0.0.0.0/0"},
    )
    closed_group = _resource(
        "AWS::EC2::SecurityGroup", {"SecurityGroupIngress": [{"CidrIp": "10.0.0.0/16"}]}
    )
    open_ingress = _resource("AWS::EC2::SecurityGroupIngress", {"CidrIpv6": "::/0"})

    rule = aws_solutions.security_group_no_open_ingress
    assert rule.predicate(open_group) is NON_COMPLIANT
    assert rule.predicate(closed_group) is COMPLIANT
    assert rule.predicate(open_ingress) is NON_COMPLIANT


def test_as3_requires_every_scaling_notification() -> None:
    events = [
        "autoscaling:EC2_INSTANCE_LAUNCH",
        "autoscaling:EC2_INSTANCE_LAUNCH_ERROR",
        "autoscaling:EC2_INSTANCE_TERMINATE",
        "autoscaling:EC2_INSTANCE_TERMINATE_ERROR",
    ]
    complete = _resource(
        "AWS::AutoScaling::AutoScalingGroup",
        {"NotificationConfigurations": [{"NotificationTypes": events}]},
    )
    partial = _resource(
        "AWS::AutoScaling::AutoScalingGroup",
        {"NotificationConfigurations": [{"NotificationTypes": events[:2]}]},
    )

    assert aws_solutions.autoscaling_notifications.predicate(complete) is COMPLIANT
    assert aws_solutions.autoscaling_notifications.predicate(partial) is NON_COMPLIANT


def test_hipaa_rules() -> None:
    assert hipaa_security.efs_encrypted.predicate(
        _resource("AWS::EFS::FileSystem", {"Encrypted": True})
    ) is COMPLIANT
    assert hipaa_security.dms_replication_not_public.predicate(
        _resource("AWS::DMS::ReplicationInstance", {})
    ) is NON_COMPLIANT
    assert hipaa_security.launch_config_public_ip_disabled.predicate(
        _resource("AWS::AutoScaling::LaunchConfiguration", {"AssociatePublicIpAddress": False})
    ) is COMPLIANT
    assert hipaa_security.vpc_no_unrestricted_route_to_igw.predicate(
        _resource("AWS::EC2::Route", {"GatewayId": "igw-1", "DestinationCidrBlock": "0.0.0.0/0"})
    ) is NON_COMPLIANT


@pytest.mark.parametrize(
    ("kms_key", "expected"),
    [
        (None, NON_COMPLIANT),
        ("aws/secretsmanager", NON_COMPLIANT),
        ("alias/team-key", COMPLIANT),
        (Deferred("Key.Arn", TokenKind.GET_ATT), COMPLIANT),
    ],
)
def test_hipaa_secrets_need_customer_keys(kms_key: Any, expected: RuleOutcome) -> None:
    properties = {} if kms_key is None else {"KmsKeyId": kms_key}
    node = _resource("AWS::SecretsManager::Secret", properties)

    assert hipaa_security.secret_uses_customer_key.predicate(node) is expected


def test_nist_r4_rules() -> None:
    assert nist_800_53_r4.cloudtrail_log_file_validation.predicate(
        _resource("AWS::CloudTrail::Trail", {"EnableLogFileValidation": True})
    ) is COMPLIANT
    assert nist_800_53_r4.codebuild_uses_oauth.predicate(
        _resource("AWS::CodeBuild::Project", {"Source": {"Auth": {"Type": "OAUTH"}}})
    ) is COMPLIANT
    assert nist_800_53_r4.codebuild_uses_oauth.predicate(
        _resource("AWS::CodeBuild::Project", {"Source": {"Type": "GITHUB"}})
    ) is NON_COMPLIANT
    assert nist_800_53_r4.vpc_default_security_group_closed.predicate(
        _resource("AWS::EC2::VPC", {})
    ) is NON_COMPLIANT
    assert nist_800_53_r4.sagemaker_notebook_no_direct_internet.predicate(
        _resource("AWS::SageMaker::NotebookInstance", {"DirectInternetAccess": "Enabled"})
    ) is NON_COMPLIANT


def test_nist_r5_rules() -> None:
    full_access = {"Statement": [{"Effect": "Allow", "Action": "s3:*", "Resource": "*"}]}
    scoped = {"Statement": [{"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": "*"}]}

    rule = nist_800_53_r5.iam_policy_no_full_access
    assert rule.predicate(
        _resource("AWS::IAM::Policy", {"PolicyDocument": full_access})
    ) is NON_COMPLIANT
    assert rule.predicate(
        _resource("AWS::IAM::Role", {"Policies": [{"PolicyDocument": scoped}]})
    ) is COMPLIANT
    assert nist_800_53_r5.ec2_instance_profile_attached.predicate(
        _resource("AWS::EC2::Instance", {"IamInstanceProfile": Deferred("Profile")})
    ) is COMPLIANT
