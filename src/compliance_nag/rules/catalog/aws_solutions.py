"""AWS Solutions baseline: general architecture best practices."""

from __future__ import annotations

import json
import re

from ...models import FindingSeverity, ResourceNode
from ...resolution import (
    UNRESOLVED,
    UnresolvedValueError,
    require_value,
    resolve_as,
    resolve_deep,
    resolve_partial,
)
from ..descriptor import RuleOutcome, rule
from ..rule_pack import RulePack

PACK_NAME = "AwsSolutions"

_ACCOUNT_ID = re.compile(r"\d{12}")
_BARE_TOKEN_KEYS = ("Ref", "Fn::GetAtt", "Fn::ImportValue")

_SCALING_EVENTS = (
    "autoscaling:EC2_INSTANCE_LAUNCH",
    "autoscaling:EC2_INSTANCE_LAUNCH_ERROR",
    "autoscaling:EC2_INSTANCE_TERMINATE",
    "autoscaling:EC2_INSTANCE_TERMINATE_ERROR",
)

# (engine substring, default port) pairs for DB instances
_DEFAULT_INSTANCE_PORTS = (
    ("mariadb", 3306),
    ("mysql", 3306),
    ("postgres", 5432),
    ("oracle", 1521),
    ("sqlserver", 1433),
)


def _open_cidr(node: ResourceNode, value: object) -> bool:
    cidr = resolve_as(node, value, str)
    return isinstance(cidr, str) and cidr.endswith("/0")


def _is_bare_token(declared: object) -> bool:
    return (
        isinstance(declared, dict)
        and len(declared) == 1
        and next(iter(declared)) in _BARE_TOKEN_KEYS
    )


@rule(
    f"{PACK_NAME}-IAM4",
    FindingSeverity.ERROR,
    "The IAM user, role, or group uses AWS managed policies.",
    "An AWS managed policy is a standalone policy that is created and administered by AWS. "
    "Currently, many AWS managed policies do not restrict resource scope. Replace AWS managed "
    "policies with system specific (customer) managed policies.",
    resource_types=("AWS::IAM::Role", "AWS::IAM::User", "AWS::IAM::Group"),
)
def iam_no_managed_policies(node: ResourceNode) -> RuleOutcome:
    if node.type not in ("AWS::IAM::Role", "AWS::IAM::User", "AWS::IAM::Group"):
        return RuleOutcome.NOT_APPLICABLE

    arns = require_value(node, node.get_property("ManagedPolicyArns"), list)
    for arn in arns or []:
        declared = resolve_partial(node, arn)
        if _is_bare_token(declared):
            raise UnresolvedValueError(node.id, arn)
        # joined ARNs are judged on their template text, pseudo parameters included
        prefix = json.dumps(declared, default=str).split("/", 1)[0]
        if not (_ACCOUNT_ID.search(prefix) or "AWS::AccountId" in prefix):
            return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT


@rule(
    f"{PACK_NAME}-KMS5",
    FindingSeverity.ERROR,
    "The KMS Symmetric key does not have automatic key rotation enabled.",
    "KMS key rotation allow a system to set an yearly rotation schedule for a KMS key so when a "
    "AWS KMS key is required to encrypt new data, the KMS service can automatically use the "
    "latest version of the HSA backing key to perform the encryption.",
    resource_types=("AWS::KMS::Key",),
)
def kms_key_rotation(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::KMS::Key":
        return RuleOutcome.NOT_APPLICABLE

    key_spec = require_value(node, node.get_property("KeySpec"))
    if key_spec not in (None, "SYMMETRIC_DEFAULT"):
        return RuleOutcome.COMPLIANT

    rotation = resolve_as(node, node.get_property("EnableKeyRotation"), bool)
    if rotation is UNRESOLVED:
        # rotation is normally wired up in the same stack; unknown means not proven
        return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT if rotation is True else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-COG2",
    FindingSeverity.ERROR,
    "The Cognito user pool does not require MFA.",
    "Multi-factor authentication (MFA) increases security for the application by adding "
    "another authentication method, and not relying solely on user name and password.",
    resource_types=("AWS::Cognito::UserPool",),
)
def cognito_requires_mfa(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::Cognito::UserPool":
        return RuleOutcome.NOT_APPLICABLE

    mfa = require_value(node, node.get_property("MfaConfiguration"), str)
    return RuleOutcome.COMPLIANT if mfa == "ON" else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-AEC3",
    FindingSeverity.ERROR,
    "The ElastiCache Redis cluster does not have both encryption in transit and at rest enabled.",
    "Encryption in transit helps secure communications between the nodes in a cluster. "
    "Encryption at rest helps protect data from unauthorized access to the underlying storage.",
    resource_types=("AWS::ElastiCache::ReplicationGroup",),
)
def elasticache_encryption(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::ElastiCache::ReplicationGroup":
        return RuleOutcome.NOT_APPLICABLE

    at_rest = require_value(node, node.get_property("AtRestEncryptionEnabled"), bool)
    in_transit = require_value(node, node.get_property("TransitEncryptionEnabled"), bool)
    if at_rest is True and in_transit is True:
        return RuleOutcome.COMPLIANT
    return RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-RDS11",
    FindingSeverity.ERROR,
    "The RDS instance or Aurora DB cluster uses its default endpoint port.",
    "Port obfuscation (using a non default endpoint port) adds an additional layer of defense "
    "against non-targeted attacks (i.e. MySQL/Aurora port 3306, SQL Server port 1433, "
    "PostgreSQL port 5432, etc).",
    resource_types=("AWS::RDS::DBCluster", "AWS::RDS::DBInstance"),
)
def rds_non_default_port(node: ResourceNode) -> RuleOutcome:
    if node.type == "AWS::RDS::DBCluster":
        port = require_value(node, node.get_property("Port"), int)
        if port is None:
            return RuleOutcome.NON_COMPLIANT
        engine = require_value(node, node.get_property("Engine"), str).lower()
        if engine in ("aurora", "aurora-mysql") and port == 3306:
            return RuleOutcome.NON_COMPLIANT
        if engine == "aurora-postgresql" and port == 5432:
            return RuleOutcome.NON_COMPLIANT
        return RuleOutcome.COMPLIANT

    if node.type == "AWS::RDS::DBInstance":
        engine = require_value(node, node.get_property("Engine"), str)
        if engine is None:
            return RuleOutcome.NON_COMPLIANT
        engine = engine.lower()
        port = require_value(node, node.get_property("Port"), int)
        if port is None:
            # aurora instances take the port of their cluster
            return RuleOutcome.COMPLIANT if "aurora" in engine else RuleOutcome.NON_COMPLIANT
        for name, default_port in _DEFAULT_INSTANCE_PORTS:
            if name in engine and port == default_port:
                return RuleOutcome.NON_COMPLIANT
        return RuleOutcome.COMPLIANT

    return RuleOutcome.NOT_APPLICABLE


@rule(
    f"{PACK_NAME}-EC23",
    FindingSeverity.ERROR,
    "The Security Group allows for 0.0.0.0/0 or ::/0 inbound access.",
    "Large port ranges, when open, expose instances to unwanted attacks. More than that, they "
    "make traceability of vulnerabilities very difficult.",
    resource_types=("AWS::EC2::SecurityGroup", "AWS::EC2::SecurityGroupIngress"),
)
def security_group_no_open_ingress(node: ResourceNode) -> RuleOutcome:
    if node.type == "AWS::EC2::SecurityGroup":
        ingress_rules = resolve_deep(node, node.get_property("SecurityGroupIngress"))
        if not isinstance(ingress_rules, list):
            return RuleOutcome.COMPLIANT
        for ingress in ingress_rules:
            if not isinstance(ingress, dict):
                continue
            if _open_cidr(node, ingress.get("CidrIp")) or _open_cidr(
                node, ingress.get("CidrIpv6")
            ):
                return RuleOutcome.NON_COMPLIANT
        return RuleOutcome.COMPLIANT

    if node.type == "AWS::EC2::SecurityGroupIngress":
        if _open_cidr(node, node.get_property("CidrIp")) or _open_cidr(
            node, node.get_property("CidrIpv6")
        ):
            return RuleOutcome.NON_COMPLIANT
        return RuleOutcome.COMPLIANT

    return RuleOutcome.NOT_APPLICABLE


@rule(
    f"{PACK_NAME}-AS3",
    FindingSeverity.ERROR,
    "The Auto Scaling Group does not have notifications configured for all scaling events.",
    "Notifications on EC2 instance launch, launch error, termination, and termination errors "
    "allow operators to gain better insights into systems attributes such as activity and health.",
    resource_types=("AWS::AutoScaling::AutoScalingGroup",),
)
def autoscaling_notifications(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::AutoScaling::AutoScalingGroup":
        return RuleOutcome.NOT_APPLICABLE

    configurations = resolve_deep(node, node.get_property("NotificationConfigurations"))
    if not isinstance(configurations, list):
        return RuleOutcome.NON_COMPLIANT

    configured: set[str] = set()
    for configuration in configurations:
        if not isinstance(configuration, dict):
            continue
        types = configuration.get("NotificationTypes")
        if isinstance(types, list):
            configured.update(item for item in types if isinstance(item, str))

    if all(event in configured for event in _SCALING_EVENTS):
        return RuleOutcome.COMPLIANT
    return RuleOutcome.NON_COMPLIANT


RULES = (
    iam_no_managed_policies,
    kms_key_rotation,
    cognito_requires_mfa,
    elasticache_encryption,
    rds_non_default_port,
    security_group_no_open_ingress,
    autoscaling_notifications,
)


def build_pack() -> RulePack:
    return RulePack(PACK_NAME, RULES)
