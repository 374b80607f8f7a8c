"""Command-line interface implementation for the compliance tooling."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

from ..adapters import TemplateLoaderError
from ..engine import UnresolvedValuePolicy
from ..models import Finding, FindingSeverity
from ..rules import RulePackError, RulePackManager
from ..service import ComplianceService, ValidationResult

logger = logging.getLogger(__name__)

SEVERITY_RANK = {
    FindingSeverity.INFO: 0,
    FindingSeverity.WARN: 1,
    FindingSeverity.ERROR: 2,
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(slots=True)
class ValidationReport:
    """Collection of findings plus contextual metadata."""

    findings: Sequence[Finding]
    metadata: Mapping[str, Any]

    @property
    def active_findings(self) -> list[Finding]:
        return [finding for finding in self.findings if finding.is_active]

    @property
    def highest_severity(self) -> FindingSeverity | None:
        active = self.active_findings
        if not active:
            return None
        return max(active, key=lambda finding: SEVERITY_RANK[finding.severity]).severity

    def counts_by_severity(self) -> dict[str, int]:
        """Count active findings per severity."""

        counts: MutableMapping[FindingSeverity, int] = {
            severity: 0 for severity in FindingSeverity
        }
        for finding in self.active_findings:
            counts[finding.severity] += 1
        return {severity.value: count for severity, count in counts.items()}

    def should_fail(self, fail_on: FindingSeverity) -> bool:
        for finding in self.active_findings:
            if SEVERITY_RANK[finding.severity] >= SEVERITY_RANK[fail_on]:
                return True
            if finding.is_error and finding.severity is FindingSeverity.ERROR:
                return True
        return False

    def to_dict(self) -> dict[str, Any]:
        active = self.active_findings
        return {
            "metadata": dict(self.metadata),
            "summary": {
                "total_findings": len(self.findings),
                "active_findings": len(active),
                "suppressed_findings": len(self.findings) - len(active),
                "error_findings": sum(1 for finding in self.findings if finding.is_error),
                "highest_severity": self.highest_severity.value if self.highest_severity else None,
                "counts": self.counts_by_severity(),
            },
            "findings": [_serialize_finding(finding) for finding in self.findings],
        }


def _serialize_finding(finding: Finding) -> dict[str, Any]:
    return {
        "rule_id": finding.rule_id,
        "resource_id": finding.resource_id,
        "resource_type": finding.resource_type,
        "severity": finding.severity.value,
        "status": finding.status.value,
        "category": finding.category.value,
        "message": finding.message,
        "justification": finding.justification,
        "metadata": dict(finding.metadata),
    }


def render_table(report: ValidationReport, *, include_suppressed: bool = True) -> str:
    """Render findings as a simple text table for terminal output."""

    findings = [
        finding for finding in report.findings if include_suppressed or finding.is_active
    ]
    if not findings:
        return "No findings detected."

    headers = ("Severity", "Status", "Rule ID", "Resource", "Message")
    rows = [headers]
    extra_lines: list[list[str]] = [[]]
    for finding in findings:
        first_line, *rest = finding.message.splitlines() or [""]
        if finding.justification:
            rest.append(f"Justification: {finding.justification}")
        rows.append(
            (
                finding.severity.value,
                finding.status.value,
                finding.rule_id,
                finding.resource_id,
                first_line,
            )
        )
        extra_lines.append(rest)

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(headers))]
    indent = " " * (sum(widths[:-1]) + 2 * (len(widths) - 1))

    def format_row(values: tuple[str, str, str, str, str]) -> str:
        line = "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))
        return line.rstrip()

    lines = [format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    for row, extra in zip(rows[1:], extra_lines[1:], strict=True):
        lines.append(format_row(row))
        lines.extend(f"{indent}{text}" for text in extra)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(prog="iac-nag", description="IaC compliance rule checks")
    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser(
        "validate", help="Evaluate declaration templates and report compliance findings."
    )
    validate_parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=Path.cwd(),
        help="Template file, or a directory searched for *.template.json/yaml files.",
    )
    validate_parser.add_argument(
        "--rule-manifest",
        dest="rule_manifests",
        action="append",
        default=None,
        type=str,
        help="Path to a rule manifest YAML/JSON file selecting rule packs and settings.",
    )
    validate_parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in FindingSeverity],
        default=FindingSeverity.ERROR.value,
        help="Fail the run when active findings at or above the provided severity are present.",
    )
    validate_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format for validation results.",
    )
    validate_parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Append each rule's explanation to its finding message.",
    )
    validate_parser.add_argument(
        "--hide-suppressed",
        action="store_true",
        help="Leave suppressed findings out of the table output.",
    )
    validate_parser.add_argument(
        "--unresolved-policy",
        choices=[policy.value for policy in UnresolvedValuePolicy],
        default=None,
        help="How rules treat property values that cannot be resolved.",
    )
    validate_parser.add_argument(
        "--no-suppression-inheritance",
        dest="suppression_inheritance",
        action="store_false",
        default=None,
        help="Only honour suppressions declared directly on a resource.",
    )
    validate_parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Verbosity of diagnostic logging written to stderr.",
    )

    return parser


def create_service(*, default_rule_manifests: Sequence[str] | None = None) -> ComplianceService:
    """Create a compliance service using the packaged rule catalog."""

    if default_rule_manifests is None:
        manager = RulePackManager()
    else:
        manager = RulePackManager(default_rule_manifests)
    return ComplianceService(rule_pack_manager=manager)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.verbose is not None:
        overrides["verbose"] = args.verbose
    if args.unresolved_policy is not None:
        overrides["unresolved_value_policy"] = args.unresolved_policy
    if args.suppression_inheritance is not None:
        overrides["suppression_inheritance"] = args.suppression_inheritance
    return overrides


def _build_report(result: ValidationResult) -> ValidationReport:
    return ValidationReport(findings=result.findings, metadata=result.metadata)


def _format_report(
    report: ValidationReport,
    *,
    fail_on: FindingSeverity,
    output_format: str,
    include_suppressed: bool = True,
) -> tuple[str, bool]:
    if output_format not in {"table", "json"}:
        raise ValueError("format must be either 'table' or 'json'")

    if output_format == "json":
        output = json.dumps(report.to_dict(), indent=2)
    else:
        output = render_table(report, include_suppressed=include_suppressed)

    return output, report.should_fail(fail_on)


def _handle_validate(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    service = create_service()

    try:
        result = service.validate(
            args.path.resolve(),
            manifests=list(args.rule_manifests or []),
            settings_overrides=_settings_overrides(args),
        )
    except (TemplateLoaderError, RulePackError) as exc:
        logger.debug("Validation aborted", exc_info=True)
        print(f"Error: {exc}")
        return 2

    report = _build_report(result)
    output, should_fail = _format_report(
        report,
        fail_on=FindingSeverity(args.fail_on),
        output_format=args.format,
        include_suppressed=not args.hide_suppressed,
    )

    print(output)
    return 1 if should_fail else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate":
        return _handle_validate(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
