"""Utilities for loading and merging rule pack manifest files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Sequence, Set, Tuple

import yaml

from ..engine.settings import EngineSettings
from ..models import FindingSeverity
from .catalog import BUILTIN_PACKS
from .descriptor import RuleRegistrationError
from .rule_pack import RulePack


class RulePackError(RuntimeError):
    """Raised when rule pack manifests cannot be loaded or parsed."""


@dataclass(slots=True)
class PackConfig:
    """Manifest configuration of one rule pack."""

    name: str
    enabled: bool = True
    severity_overrides: Dict[str, FindingSeverity] = field(default_factory=dict)
    disabled_rules: Set[str] = field(default_factory=set)


@dataclass(slots=True)
class ManifestConfig:
    """Merged result of all manifests: pack configurations plus engine settings."""

    packs: List[PackConfig] = field(default_factory=list)
    settings: EngineSettings = field(default_factory=EngineSettings)


_DEFAULT_MANIFEST = Path(__file__).resolve().parent / "manifests" / "default.yaml"


class RulePackManager:
    """Load rule pack manifests and build the enabled packs for a run."""

    def __init__(
        self,
        default_manifests: Sequence[Path | str] | None = None,
        *,
        pack_factories: Mapping[str, Callable[[], RulePack]] | None = None,
    ) -> None:
        manifest_paths: List[Path]
        if default_manifests is None:
            manifest_paths = []
            if _DEFAULT_MANIFEST.exists():
                manifest_paths.append(_DEFAULT_MANIFEST)
        else:
            manifest_paths = [Path(path) for path in default_manifests]

        self._default_manifests = manifest_paths
        self._pack_factories = dict(pack_factories if pack_factories is not None else BUILTIN_PACKS)

    # ------------------------------------------------------------------
    def load_config(self, manifests: Sequence[Path | str] | None = None) -> ManifestConfig:
        """Merge the default and supplied manifests, later files winning."""

        manifest_paths = [Path(path) for path in self._default_manifests]
        if manifests:
            manifest_paths.extend(Path(path) for path in manifests)

        packs: MutableMapping[str, PackConfig] = {}
        settings = EngineSettings()
        for manifest_path in manifest_paths:
            data = self._load_manifest(manifest_path)

            raw_settings = data.get("settings")
            if raw_settings is not None:
                if not isinstance(raw_settings, Mapping):
                    raise RulePackError(f"'settings' must be a mapping in {manifest_path}")
                try:
                    settings = settings.merged(raw_settings)
                except ValueError as exc:
                    raise RulePackError(f"Invalid settings in {manifest_path}: {exc}") from exc

            for pack_config in data.get("packs", []) or []:
                if not isinstance(pack_config, Mapping):
                    continue
                name = pack_config.get("name")
                if not name:
                    continue

                pack = packs.get(name, PackConfig(name=name))
                if "enabled" in pack_config:
                    pack.enabled = bool(pack_config["enabled"])

                disabled = pack_config.get("disabled_rules")
                if isinstance(disabled, Sequence) and not isinstance(disabled, str):
                    pack.disabled_rules.update(str(rule_id).strip() for rule_id in disabled)

                severity = pack_config.get("severity")
                if isinstance(severity, Mapping):
                    for rule_id, level in severity.items():
                        if not isinstance(rule_id, str):
                            continue

                        severity_value: FindingSeverity | None
                        if isinstance(level, FindingSeverity):
                            severity_value = level
                        elif isinstance(level, str):
                            try:
                                severity_value = FindingSeverity(level.strip().lower())
                            except ValueError:
                                raise RulePackError(
                                    f"Unknown severity '{level}' for rule '{rule_id}' "
                                    f"in {manifest_path}"
                                ) from None
                        else:
                            continue

                        pack.severity_overrides[rule_id.strip()] = severity_value

                packs[name] = pack

        return ManifestConfig(packs=list(packs.values()), settings=settings)

    # ------------------------------------------------------------------
    def load(self, manifests: Sequence[Path | str] | None = None) -> List[PackConfig]:
        """Return all pack configurations defined by the provided manifests."""

        return self.load_config(manifests).packs

    def enabled_packs(self, manifests: Sequence[Path | str] | None = None) -> List[PackConfig]:
        """Return only the packs that are enabled after merging manifests."""

        return [pack for pack in self.load(manifests) if pack.enabled]

    # ------------------------------------------------------------------
    def build(
        self, manifests: Sequence[Path | str] | None = None
    ) -> Tuple[List[RulePack], EngineSettings]:
        """Instantiate the enabled packs with their overrides applied."""

        config = self.load_config(manifests)
        packs: List[RulePack] = []
        for pack_config in config.packs:
            if not pack_config.enabled:
                continue
            packs.append(self.build_pack(pack_config))
        return packs, config.settings

    def build_pack(self, pack_config: PackConfig) -> RulePack:
        factory = self._pack_factories.get(pack_config.name)
        if factory is None:
            available = ", ".join(sorted(self._pack_factories)) or "none"
            raise RulePackError(
                f"Unknown rule pack '{pack_config.name}' (available: {available})"
            )

        try:
            pack = factory()
        except RuleRegistrationError as exc:
            raise RulePackError(f"Rule pack '{pack_config.name}' is malformed: {exc}") from exc

        unknown = (set(pack_config.severity_overrides) | pack_config.disabled_rules) - set(
            pack.rule_ids
        )
        if unknown:
            raise RulePackError(
                f"Rule pack '{pack_config.name}' has no rules named: {', '.join(sorted(unknown))}"
            )

        return pack.without_rules(pack_config.disabled_rules).with_severity_overrides(
            pack_config.severity_overrides
        )

    # ------------------------------------------------------------------
    def _load_manifest(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise RulePackError(f"Rule pack manifest not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise RulePackError(f"Failed to read rule pack manifest {path}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise RulePackError(f"Invalid YAML in rule pack manifest {path}") from exc

        if not isinstance(data, Mapping):
            raise RulePackError(f"Rule pack manifest must be a mapping: {path}")

        return dict(data)
