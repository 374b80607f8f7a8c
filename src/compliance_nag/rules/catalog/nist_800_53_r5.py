"""NIST 800-53 rev 5 baseline."""

from __future__ import annotations

from typing import Any, Iterable

from ...models import FindingSeverity, ResourceNode
from ...resolution import resolve_deep
from ..descriptor import RuleOutcome, rule
from ..rule_pack import RulePack

PACK_NAME = "NIST.800.53.R5"


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _grants_full_access(document: Any) -> bool:
    """Return ``True`` when an Allow statement grants ``*`` or ``service:*``."""

    if not isinstance(document, dict):
        return False
    for statement in _as_list(document.get("Statement")):
        if not isinstance(statement, dict) or statement.get("Effect") != "Allow":
            continue
        for action in _as_list(statement.get("Action")):
            if isinstance(action, str) and (action == "*" or action.endswith(":*")):
                return True
    return False


def _inline_documents(policies: Any) -> Iterable[Any]:
    for policy in _as_list(policies):
        if isinstance(policy, dict):
            yield policy.get("PolicyDocument")


@rule(
    f"{PACK_NAME}-EC2InstanceProfileAttached",
    FindingSeverity.ERROR,
    "The EC2 instance does not have an instance profile attached - (Control IDs: AC-3, "
    "CM-5(1)(a), CM-6a).",
    "EC2 instance profiles pass an IAM role to an EC2 instance. Attaching an instance profile "
    "to your instances can assist with least privilege and permissions management.",
    resource_types=("AWS::EC2::Instance",),
)
def ec2_instance_profile_attached(node: ResourceNode) -> RuleOutcome:
    if node.type != "AWS::EC2::Instance":
        return RuleOutcome.NOT_APPLICABLE
    # presence is enough; a token here still names a profile
    if node.get_property("IamInstanceProfile") is None:
        return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT


@rule(
    f"{PACK_NAME}-IAMPolicyNoStatementsWithFullAccess",
    FindingSeverity.ERROR,
    "The IAM policy grants full access - (Control IDs: AC-3, AC-5b, AC-6(2), AC-6(10), "
    "CM-5(1)(a)).",
    "Ensure IAM Actions are restricted to only those actions that are needed. Allowing users "
    "to have more privileges than needed to complete a task may violate the principle of "
    "least privilege and separation of duties.",
    resource_types=(
        "AWS::IAM::Policy",
        "AWS::IAM::ManagedPolicy",
        "AWS::IAM::Group",
        "AWS::IAM::Role",
    ),
)
def iam_policy_no_full_access(node: ResourceNode) -> RuleOutcome:
    if node.type in ("AWS::IAM::Policy", "AWS::IAM::ManagedPolicy"):
        documents: Iterable[Any] = [resolve_deep(node, node.get_property("PolicyDocument"))]
    elif node.type in ("AWS::IAM::Group", "AWS::IAM::Role"):
        documents = _inline_documents(resolve_deep(node, node.get_property("Policies")))
    else:
        return RuleOutcome.NOT_APPLICABLE

    if any(_grants_full_access(document) for document in documents):
        return RuleOutcome.NON_COMPLIANT
    return RuleOutcome.COMPLIANT


RULES = (
    ec2_instance_profile_attached,
    iam_policy_no_full_access,
)


def build_pack() -> RulePack:
    return RulePack(PACK_NAME, RULES)
