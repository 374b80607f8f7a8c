"""Conversion helpers that turn declaration documents into resource trees."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from ..models import DeclarationUnit, ResourceNode, Suppression
from ..models.resource import PATH_SEPARATOR
from ..resolution import Deferred, TokenKind

_NAG_METADATA_KEY = "cdk_nag"
_NAG_SUPPRESSIONS_KEY = "rules_to_suppress"


class NormalizationError(ValueError):
    """Raised when a declaration document has an unusable shape."""


class UnitNormalizer:
    """Normalize declaration documents into :class:`DeclarationUnit` instances.

    Two document shapes are understood: the native nested form (``resources``
    with ``children``) and CloudFormation templates (``Resources``).
    """

    def normalize(
        self,
        document: Mapping[str, Any],
        *,
        name: str | None = None,
        source: str | None = None,
    ) -> DeclarationUnit:
        """Return the declaration unit described by ``document``."""

        if not isinstance(document, Mapping):
            raise NormalizationError("Declaration document must be a mapping")

        if "Resources" in document:
            return self._normalize_template(document, name=name, source=source)
        return self._normalize_native(document, name=name, source=source)

    # ------------------------------------------------------------------
    def _normalize_native(
        self, document: Mapping[str, Any], *, name: str | None, source: str | None
    ) -> DeclarationUnit:
        unit_name = str(document.get("name") or name or "Unit")
        root = ResourceNode(
            path=unit_name,
            suppressions=self._suppressions(document.get("suppressions")),
        )
        for entry in document.get("resources", []) or []:
            root.add_child(self._native_node(entry, parent_path=unit_name))

        values = self._values(document.get("values"))
        return DeclarationUnit(name=unit_name, values=values, root=root, source=source)

    def _native_node(self, entry: Any, *, parent_path: str) -> ResourceNode:
        if not isinstance(entry, Mapping):
            raise NormalizationError(f"Resource entries under '{parent_path}' must be mappings")
        node_id = str(entry.get("id") or "").strip()
        if not node_id or PATH_SEPARATOR in node_id:
            raise NormalizationError(
                f"Resource under '{parent_path}' needs an id without '{PATH_SEPARATOR}'"
            )

        path = f"{parent_path}{PATH_SEPARATOR}{node_id}"
        node = ResourceNode(
            path=path,
            type=entry.get("type"),
            properties=self._properties(entry.get("properties")),
            suppressions=self._suppressions(entry.get("suppressions")),
            inherit_suppressions=bool(entry.get("inherit_suppressions", True)),
        )
        for child in entry.get("children", []) or []:
            node.add_child(self._native_node(child, parent_path=path))
        return node

    # ------------------------------------------------------------------
    def _normalize_template(
        self, document: Mapping[str, Any], *, name: str | None, source: str | None
    ) -> DeclarationUnit:
        unit_name = name or "Template"
        resources = document.get("Resources") or {}
        if not isinstance(resources, Mapping):
            raise NormalizationError("'Resources' must map logical ids to resources")

        root = ResourceNode(
            path=unit_name,
            suppressions=self._suppressions(self._nag_suppressions(document.get("Metadata"))),
        )
        for logical_id, resource in resources.items():
            if not isinstance(resource, Mapping):
                raise NormalizationError(f"Resource '{logical_id}' must be a mapping")
            root.add_child(
                ResourceNode(
                    path=f"{unit_name}{PATH_SEPARATOR}{logical_id}",
                    type=resource.get("Type"),
                    properties=self._properties(resource.get("Properties")),
                    suppressions=self._suppressions(
                        self._nag_suppressions(resource.get("Metadata"))
                    ),
                )
            )

        return DeclarationUnit(name=unit_name, root=root, source=source)

    def _nag_suppressions(self, metadata: Any) -> Any:
        if not isinstance(metadata, Mapping):
            return None
        nag = metadata.get(_NAG_METADATA_KEY)
        if not isinstance(nag, Mapping):
            return None
        return nag.get(_NAG_SUPPRESSIONS_KEY)

    # ------------------------------------------------------------------
    def _suppressions(self, raw: Any) -> List[Suppression]:
        if not raw:
            return []
        if not isinstance(raw, Iterable) or isinstance(raw, (str, Mapping)):
            raise NormalizationError("Suppressions must be a list of {id, reason} entries")

        suppressions: List[Suppression] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                raise NormalizationError("Suppressions must be a list of {id, reason} entries")
            pattern = entry.get("id", entry.get("rule", ""))
            reason = entry.get("reason", entry.get("justification", ""))
            suppressions.append(
                Suppression(
                    rule_pattern=str(pattern) if pattern is not None else "",
                    justification=str(reason) if reason is not None else "",
                )
            )
        return suppressions

    def _properties(self, raw: Any) -> Dict[str, Any]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise NormalizationError("Resource properties must be a mapping")
        return {str(key): self.convert_tokens(value) for key, value in raw.items()}

    def _values(self, raw: Any) -> Dict[str, Any]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise NormalizationError("'values' must be a mapping")
        return {str(key): self.convert_tokens(value) for key, value in raw.items()}

    def convert_tokens(self, value: Any) -> Any:
        """Replace intrinsic-function objects with :class:`Deferred` tokens."""

        if isinstance(value, Mapping):
            if len(value) == 1:
                token = self._token(*next(iter(value.items())))
                if token is not None:
                    return token
            return {key: self.convert_tokens(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.convert_tokens(item) for item in value]
        return value

    def _token(self, key: Any, argument: Any) -> Deferred | None:
        if key == "Ref" and isinstance(argument, str):
            return Deferred(argument, TokenKind.REF)
        if key == "Fn::GetAtt":
            if isinstance(argument, str):
                return Deferred(argument, TokenKind.GET_ATT)
            if isinstance(argument, list) and all(isinstance(part, str) for part in argument):
                return Deferred(".".join(argument), TokenKind.GET_ATT)
        if key == "Fn::ImportValue" and isinstance(argument, str):
            return Deferred(argument, TokenKind.IMPORT_VALUE)
        if isinstance(key, str) and key.startswith("Fn::"):
            return Deferred(key, TokenKind.INTRINSIC, self.convert_tokens(argument))
        return None
