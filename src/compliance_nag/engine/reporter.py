"""Collection of findings emitted during a run."""

from __future__ import annotations

from typing import Iterator, List, Tuple

from ..models import Finding, FindingStatus


class FindingReporter:
    """Append-only, insertion-ordered store of the findings of one run."""

    def __init__(self) -> None:
        self._findings: List[Finding] = []

    def record(self, finding: Finding) -> None:
        self._findings.append(finding)

    def all(self) -> Tuple[Finding, ...]:
        return tuple(self._findings)

    def active(self) -> List[Finding]:
        return [finding for finding in self._findings if finding.status is FindingStatus.ACTIVE]

    def suppressed(self) -> List[Finding]:
        return [
            finding for finding in self._findings if finding.status is FindingStatus.SUPPRESSED
        ]

    def errors(self) -> List[Finding]:
        """Return authoring and internal-error findings."""

        return [finding for finding in self._findings if finding.is_error]

    def __iter__(self) -> Iterator[Finding]:
        return iter(tuple(self._findings))

    def __len__(self) -> int:
        return len(self._findings)
