"""Orchestration layer used by the CLI to execute compliance validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence

from .adapters import TemplateLoader, TemplateLoaderError
from .engine import EngineSettings, NagRun
from .models import Finding
from .normalization import NormalizationError, UnitNormalizer
from .rules import RulePackError, RulePackManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValidationResult:
    """Result returned by :class:`ComplianceService` runs."""

    findings: list[Finding]
    metadata: Mapping[str, Any]


TemplateLoaderFactory = Callable[[Path], TemplateLoader]


class ComplianceService:
    """High level service responsible for template ingestion and rule evaluation."""

    def __init__(
        self,
        *,
        template_loader_factory: TemplateLoaderFactory | None = None,
        normalizer: UnitNormalizer | None = None,
        rule_pack_manager: RulePackManager | None = None,
    ) -> None:
        self._template_loader_factory = template_loader_factory or TemplateLoader
        self._normalizer = normalizer or UnitNormalizer()
        self._rule_pack_manager = rule_pack_manager or RulePackManager()

    # ------------------------------------------------------------------
    def validate(
        self,
        path: Path,
        *,
        manifests: Sequence[str | Path] | None = None,
        settings_overrides: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """Evaluate every declaration unit found at ``path``.

        Each unit gets its own run so ledger entries never leak between
        templates. Settings from the manifests are merged with
        ``settings_overrides`` (command line flags win).
        """

        packs, settings = self._rule_pack_manager.build(manifests)
        if settings_overrides:
            try:
                settings = settings.merged(settings_overrides)
            except ValueError as exc:
                raise RulePackError(f"Invalid engine settings: {exc}") from exc

        loader = self._template_loader_factory(path)
        templates = loader.load_templates()

        findings: List[Finding] = []
        resource_count = 0
        units: List[str] = []
        sources: dict[str, str] = {}
        for template in templates:
            try:
                unit = self._normalizer.normalize(
                    template.document, name=template.name, source=str(template.path)
                )
            except NormalizationError as exc:
                raise TemplateLoaderError(f"{template.path}: {exc}") from exc

            nag_run = NagRun(packs, settings)
            findings.extend(nag_run.run(unit))
            resource_count += len(unit.resources())
            units.append(unit.name)
            sources[unit.name] = str(template.path)

        logger.info(
            "Validated %d unit(s) with %d resource(s): %d finding(s)",
            len(units),
            resource_count,
            len(findings),
        )

        metadata: dict[str, Any] = {
            "path": str(path),
            "units": units,
            "sources": sources,
            "unit_count": len(units),
            "resource_count": resource_count,
            "packs": [pack.name for pack in packs],
            "settings": settings.to_dict(),
        }

        return ValidationResult(findings=findings, metadata=metadata)


__all__ = [
    "ComplianceService",
    "EngineSettings",
    "RulePackError",
    "TemplateLoaderError",
    "ValidationResult",
]
