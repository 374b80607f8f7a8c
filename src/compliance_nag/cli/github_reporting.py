"""Helpers for publishing compliance findings to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Sequence

from ..models.resource import PATH_SEPARATOR

SEVERITY_ORDER = ["error", "warn", "info"]
ANNOTATION_LEVELS = {
    "error": "error",
    "warn": "warning",
    "info": "notice",
}


def _normalize_counts(raw_counts: Mapping[str, int] | None) -> MutableMapping[str, int]:
    counts: MutableMapping[str, int] = {severity: 0 for severity in SEVERITY_ORDER}
    if not raw_counts:
        return counts
    for severity, value in raw_counts.items():
        severity_key = str(severity).lower()
        if severity_key in counts:
            counts[severity_key] = int(value)
    return counts


def format_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for the provided report."""

    summary: Mapping[str, object] = report.get("summary") or {}
    metadata: Mapping[str, object] = report.get("metadata") or {}
    findings: Sequence[Mapping[str, object]] = report.get("findings") or []

    total_findings = int(summary.get("total_findings", 0))
    suppressed = int(summary.get("suppressed_findings", 0))
    errors = int(summary.get("error_findings", 0))
    highest = summary.get("highest_severity")
    highest_display = str(highest).title() if highest else "None"

    counts = _normalize_counts(summary.get("counts"))

    lines: list[str] = [
        "# IaC Compliance Report",
        "",
        f"**Total findings:** {total_findings}",
        f"**Suppressed:** {suppressed}",
        f"**Authoring/internal errors:** {errors}",
        f"**Highest active severity:** {highest_display}",
        "",
        "| Severity | Active findings |",
        "| --- | ---: |",
    ]

    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.title()} | {counts[severity]} |")

    if metadata:
        lines.extend(["", "## Metadata", ""])
        for key in sorted(metadata):
            value = metadata[key]
            lines.append(f"- **{key}:** {value}")

    active = [finding for finding in findings if finding.get("status", "active") == "active"]
    if active:
        lines.extend(["", "## Findings", ""])
        display_limit = 10
        for finding in active[:display_limit]:
            severity = str(finding.get("severity", "info")).lower()
            rule_id = str(finding.get("rule_id", "")).strip()
            message = _first_line(finding.get("message"))
            resource_id = str(finding.get("resource_id") or "").strip()

            bullet = f"- **{severity.title()}**"
            if rule_id:
                bullet += f" `{rule_id}`"
            if message:
                bullet += f" - {message}"
            if resource_id:
                bullet += f" _(Resource: `{resource_id}`)_"
            lines.append(bullet)

        remaining = len(active) - display_limit
        if remaining > 0:
            lines.append(f"- ...and {remaining} more findings.")

    lines.append("")
    return "\n".join(lines)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for the findings.

    Suppressed findings are downgraded to notices so that reviewers can still
    see what was waived and why.
    """

    metadata: Mapping[str, object] = report.get("metadata") or {}
    sources = metadata.get("sources")
    if not isinstance(sources, Mapping):
        sources = {}

    findings: Sequence[Mapping[str, object]] = report.get("findings") or []
    for finding in findings:
        severity = str(finding.get("severity", "info")).lower()
        suppressed = finding.get("status") == "suppressed"
        level = "notice" if suppressed else ANNOTATION_LEVELS.get(severity, "notice")
        rule_id = str(finding.get("rule_id", "")).strip()
        message = str(finding.get("message", "")).strip()
        resource_id = str(finding.get("resource_id") or "").strip()

        title_parts: list[str] = []
        if severity:
            title_parts.append(severity.title())
        if rule_id:
            title_parts.append(rule_id)
        if suppressed:
            title_parts.append("suppressed")
        title = " - ".join(title_parts)

        body_parts = [message] if message else []
        if resource_id:
            body_parts.append(f"Resource: {resource_id}")
        justification = finding.get("justification")
        if suppressed and justification:
            body_parts.append(f"Justification: {justification}")
        if not body_parts:
            body_parts.append("Compliance finding reported without message.")

        body = "; ".join(body_parts)
        body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")

        attributes: list[str] = []
        file_path = _source_for(resource_id, sources)
        if file_path:
            attributes.append(f"file={file_path}")
        if title:
            attributes.append(f"title={title}")

        attribute_segment = ""
        if attributes:
            attribute_segment = " " + ",".join(attributes)

        yield f"::{level}{attribute_segment}::{body}"


def _source_for(resource_id: str, sources: Mapping[str, object]) -> str | None:
    """Map a resource id to the template it came from via its unit name."""

    if not resource_id:
        return None
    unit_name = resource_id.split(PATH_SEPARATOR, 1)[0]
    source = sources.get(unit_name)
    if isinstance(source, str) and source.strip():
        return source.strip()
    return None


def _first_line(value: object) -> str:
    text = str(value or "").strip()
    return text.splitlines()[0] if text else ""


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None) -> None:
    if destination is None:
        return

    content = format_summary(report)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="iac-nag-github",
        description="Publish compliance findings as GitHub job summary and annotations.",
    )
    parser.add_argument("report", type=Path, help="Path to the compliance report JSON file.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    report = _load_report(args.report)

    _write_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
