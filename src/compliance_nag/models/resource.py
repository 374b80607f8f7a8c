"""Resource tree models evaluated by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

PATH_SEPARATOR = "/"


@dataclass(frozen=True, slots=True)
class Suppression:
    """An authored override silencing rules that match ``rule_pattern``."""

    rule_pattern: str
    justification: str = ""


@dataclass(slots=True, eq=False)
class ResourceNode:
    """One node of a declaration tree.

    Nodes without a ``type`` only group other nodes (and may carry
    suppressions for their descendants); rules are evaluated against typed
    nodes only.
    """

    path: str
    type: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    suppressions: List[Suppression] = field(default_factory=list)
    inherit_suppressions: bool = True
    parent: Optional["ResourceNode"] = field(default=None, repr=False)
    children: List["ResourceNode"] = field(default_factory=list, repr=False)
    unit: Optional["DeclarationUnit"] = field(default=None, repr=False)

    @property
    def id(self) -> str:
        return self.path

    @property
    def name(self) -> str:
        return self.path.rsplit(PATH_SEPARATOR, 1)[-1]

    @property
    def is_resource(self) -> bool:
        return self.type is not None

    def get_property(self, name: str, default: Any = None) -> Any:
        return self.properties.get(name, default)

    def add_child(self, child: "ResourceNode") -> "ResourceNode":
        child.parent = self
        for node in child.walk():
            node.unit = self.unit
        self.children.append(child)
        return child

    def ancestors(self) -> Iterator["ResourceNode"]:
        """Yield the parent chain, nearest first."""

        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def walk(self) -> Iterator["ResourceNode"]:
        """Yield this node and its descendants in pre-order."""

        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(slots=True, eq=False)
class DeclarationUnit:
    """A deployable unit: one resource tree plus the values known inside it."""

    name: str
    values: Dict[str, Any] = field(default_factory=dict)
    root: Optional[ResourceNode] = field(default=None, repr=False)
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if self.root is None:
            self.root = ResourceNode(path=self.name)
        for node in self.root.walk():
            node.unit = self

    def walk(self) -> Iterator[ResourceNode]:
        return self.root.walk()  # type: ignore[union-attr]

    def resources(self) -> List[ResourceNode]:
        return [node for node in self.walk() if node.is_resource]

    def find(self, path: str) -> Optional[ResourceNode]:
        for node in self.walk():
            if node.path == path:
                return node
        return None
