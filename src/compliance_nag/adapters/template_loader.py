from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List

import yaml

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = (".template.json", ".template.yaml", ".template.yml")
_YAML_SUFFIXES = (".yaml", ".yml")


class TemplateYamlLoader(yaml.SafeLoader):
    """``SafeLoader`` that expands CloudFormation short-form tags.

    ``!Ref Name`` becomes ``{"Ref": "Name"}``, ``!GetAtt Res.Attr`` becomes
    ``{"Fn::GetAtt": ["Res", "Attr"]}`` and any other ``!Name value`` becomes
    ``{"Fn::Name": value}``.
    """


def _construct_short_form(loader: yaml.SafeLoader, suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if suffix in ("Ref", "Condition"):
        return {suffix: value}
    if suffix == "GetAtt" and isinstance(value, str):
        return {"Fn::GetAtt": value.split(".", 1)}
    return {f"Fn::{suffix}": value}


TemplateYamlLoader.add_multi_constructor("!", _construct_short_form)


class TemplateLoaderError(RuntimeError):
    """Exception raised when declaration documents cannot be loaded."""


@dataclass(slots=True)
class LoadedTemplate:
    """One declaration document read from disk."""

    name: str
    path: Path
    document: Any


class TemplateLoader:
    """Load declaration documents from a single file or a directory tree.

    Directories are searched recursively for ``*.template.json``,
    ``*.template.yaml`` and ``*.template.yml`` files; hidden directories
    (``cdk.out`` asset folders start with a dot in most setups) are skipped.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] = ".",
        *,
        suffixes: Iterable[str] = TEMPLATE_SUFFIXES,
    ) -> None:
        self.path = Path(path).resolve()
        self.suffixes = tuple(suffixes)

    def load_templates(self) -> List[LoadedTemplate]:
        """Return every document found at the configured path."""

        if not self.path.exists():
            raise TemplateLoaderError(f"Template path not found: {self.path}")

        if self.path.is_file():
            return [self._load_file(self.path)]

        files = self._discover()
        if not files:
            raise TemplateLoaderError(
                f"No templates matching {', '.join(self.suffixes)} found under {self.path}"
            )
        logger.debug("Discovered %d template(s) under %s", len(files), self.path)
        return [self._load_file(path) for path in files]

    # Discovery ------------------------------------------------------------------
    def _discover(self) -> List[Path]:
        found: set[Path] = set()
        for suffix in self.suffixes:
            for file_path in self.path.rglob(f"*{suffix}"):
                relative = file_path.relative_to(self.path)
                if any(part.startswith(".") for part in relative.parts[:-1]):
                    continue
                if file_path.is_file():
                    found.add(file_path)
        return sorted(found)

    # Parsing --------------------------------------------------------------------
    def _load_file(self, path: Path) -> LoadedTemplate:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateLoaderError(f"Failed to read template {path}") from exc

        if path.suffix.lower() in _YAML_SUFFIXES:
            try:
                document = yaml.load(content, Loader=TemplateYamlLoader)  # noqa: S506
            except yaml.YAMLError as exc:
                raise TemplateLoaderError(f"Invalid YAML in template: {path}") from exc
        else:
            try:
                document = json.loads(content)
            except json.JSONDecodeError as exc:
                raise TemplateLoaderError(f"Invalid JSON in template: {path}") from exc

        if not isinstance(document, dict):
            raise TemplateLoaderError(f"Template must contain a mapping: {path}")

        return LoadedTemplate(name=self._unit_name(path), path=path, document=document)

    def _unit_name(self, path: Path) -> str:
        name = path.name
        for suffix in self.suffixes + _YAML_SUFFIXES + (".json",):
            if name.lower().endswith(suffix):
                return name[: -len(suffix)] or name
        return path.stem


__all__ = [
    "LoadedTemplate",
    "TemplateLoader",
    "TemplateLoaderError",
    "TemplateYamlLoader",
    "TEMPLATE_SUFFIXES",
]
