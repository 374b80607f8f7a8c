"""Per-run record of the (resource, rule) pairs already evaluated."""

from __future__ import annotations

from typing import Set, Tuple


class EvaluationLedger:
    """Guarantees each rule is evaluated at most once per resource in a run.

    Host traversals may deliver the same node more than once; the ledger is
    what keeps those repeated visits from producing duplicate findings.
    """

    def __init__(self) -> None:
        self._evaluated: Set[Tuple[str, str]] = set()

    def try_mark(self, resource_id: str, rule_id: str) -> bool:
        """Mark the pair and return ``True`` only if it was not marked before."""

        key = (resource_id, rule_id)
        if key in self._evaluated:
            return False
        self._evaluated.add(key)
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._evaluated

    def __len__(self) -> int:
        return len(self._evaluated)
