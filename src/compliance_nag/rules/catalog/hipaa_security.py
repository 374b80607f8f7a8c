"""HIPAA Security baseline."""

from __future__ import annotations

from ...models import FindingSeverity, ResourceNode
from ...resolution import UNRESOLVED, require_value, resolve_as
from ..descriptor import RuleOutcome, rule
from ..rule_pack import RulePack

PACK_NAME = "HIPAA.Security"


def _is_unrestricted(node: ResourceNode, value: object) -> bool:
    cidr = resolve_as(node, value, str)
    return isinstance(cidr, str) and "/0" in cidr


@rule(
    f"{PACK_NAME}-DMSReplicationNotPublic",
    FindingSeverity.ERROR,
    "The DMS replication instance is public - (Control IDs: 164.308(a)(3)(i), "
    "164.308(a)(4)(ii)(A), 164.308(a)(4)(ii)(C), 164.312(a)(1), 164.312(e)(1)).",
    "DMS replication instances can contain sensitive information and access control is "
    "required for such accounts.",
    resource_types=("AWS::DMS::ReplicationInstance",),
)
def dms_replication_not_public(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::DMS::ReplicationInstance":
        return RuleOutcome.NOT_APPLICABLE

    # public by default, so it has to be turned off explicitly
    public = require_value(node, node.get_property("PubliclyAccessible"), bool)
    return RuleOutcome.COMPLIANT if public is False else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-EFSEncrypted",
    FindingSeverity.ERROR,
    "The EFS does not have encryption at rest enabled - (Control IDs: 164.312(a)(2)(iv), "
    "164.312(e)(2)(ii)).",
    "Because sensitive data can exist and to help protect data at rest, ensure encryption is "
    "enabled for your Amazon Elastic File System (EFS).",
    resource_types=("AWS::EFS::FileSystem",),
)
def efs_encrypted(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::EFS::FileSystem":
        return RuleOutcome.NOT_APPLICABLE

    encrypted = require_value(node, node.get_property("Encrypted"), bool)
    return RuleOutcome.COMPLIANT if encrypted is True else RuleOutcome.NON_COMPLIANT


@rule(
    f"{PACK_NAME}-SecretsManagerUsingKMSKey",
    FindingSeverity.ERROR,
    "The secret is not encrypted with a KMS Customer managed key - (Control IDs: "
    "164.312(a)(2)(iv), 164.312(e)(2)(ii)).",
    "To help protect data at rest, ensure encryption with AWS Key Management Service (AWS KMS) "
    "is enabled for AWS Secrets Manager secrets.",
    resource_types=("AWS::SecretsManager::Secret",),
)
def secret_uses_customer_key(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::SecretsManager::Secret":
        return RuleOutcome.NOT_APPLICABLE

    key_id = resolve_as(node, node.get_property("KmsKeyId"), str)
    if key_id is UNRESOLVED:
        # a token here is a reference to a key declared elsewhere, i.e. a customer key
        return RuleOutcome.COMPLIANT
    if key_id is None or key_id == "aws/secretsmanager":
        return RuleOutcome.NON_COMPLIANT
    if not isinstance(key_id, str):
        return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT


@rule(
    f"{PACK_NAME}-VPCNoUnrestrictedRouteToIGW",
    FindingSeverity.ERROR,
    "The route table may contain one or more unrestricted route(s) to an IGW "
    "('0.0.0.0/0' or '::/0') - (Control ID: 164.312(e)(1)).",
    "Ensure Amazon EC2 route tables do not have unrestricted routes to an internet gateway. "
    "Removing or limiting the access to the internet for workloads within Amazon VPCs can "
    "reduce unintended access within your environment.",
    resource_types=("AWS::EC2::Route",),
)
def vpc_no_unrestricted_route_to_igw(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::EC2::Route":
        return RuleOutcome.NOT_APPLICABLE
    if node.get_property("GatewayId") is None:
        return RuleOutcome.COMPLIANT

    if _is_unrestricted(node, node.get_property("DestinationCidrBlock")):
        return RuleOutcome.NON_COMPLIANT
    if _is_unrestricted(node, node.get_property("DestinationIpv6CidrBlock")):
        return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT


@rule(
    f"{PACK_NAME}-AutoscalingLaunchConfigPublicIpDisabled",
    FindingSeverity.ERROR,
    "The Auto Scaling launch configuration does not have public IP addresses disabled - "
    "(Control IDs: 164.308(a)(3)(i), 164.308(a)(3)(ii)(B), 164.308(a)(4)(ii)(A), "
    "164.308(a)(4)(ii)(C), 164.312(a)(1), 164.312(e)(1)).",
    "If you configure your Network Interfaces with a public IP address, then the associated "
    "resources to those Network Interfaces are reachable from the internet. EC2 resources "
    "should not be publicly accessible, as this may allow unintended access to your "
    "applications or servers.",
    resource_types=("AWS::AutoScaling::LaunchConfiguration",),
)
def launch_config_public_ip_disabled(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::AutoScaling::LaunchConfiguration":
        return RuleOutcome.NOT_APPLICABLE

    public_ip = require_value(node, node.get_property("AssociatePublicIpAddress"), bool)
    return RuleOutcome.COMPLIANT if public_ip is False else RuleOutcome.NON_COMPLIANT


RULES = (
    dms_replication_not_public,
    efs_encrypted,
    secret_uses_customer_key,
    vpc_no_unrestricted_route_to_igw,
    launch_config_public_ip_disabled,
)


def build_pack() -> RulePack:
    return RulePack(PACK_NAME, RULES)
