"""Builtin rule packs shipped with the engine."""

from __future__ import annotations

from typing import Callable, Dict, List

from ..rule_pack import RulePack
from . import aws_solutions, hipaa_security, nist_800_53_r4, nist_800_53_r5

BUILTIN_PACKS: Dict[str, Callable[[], RulePack]] = {
    aws_solutions.PACK_NAME: aws_solutions.build_pack,
    hipaa_security.PACK_NAME: hipaa_security.build_pack,
    nist_800_53_r4.PACK_NAME: nist_800_53_r4.build_pack,
    nist_800_53_r5.PACK_NAME: nist_800_53_r5.build_pack,
}


def available_packs() -> List[str]:
    return list(BUILTIN_PACKS)


def get_builtin_pack(name: str) -> RulePack:
    """Return a fresh instance of the builtin pack called ``name``."""

    try:
        factory = BUILTIN_PACKS[name]
    except KeyError:
        raise KeyError(f"Unknown rule pack '{name}'") from None
    return factory()


__all__ = ["BUILTIN_PACKS", "available_packs", "get_builtin_pack"]
