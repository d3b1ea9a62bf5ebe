"""Catalog of node kinds.

The registry is a plain value handed to whoever builds a runnable flow. It is
consulted once to bind a behavior to every node; the executor only ever sees
the resulting ``{node_id: behavior}`` map.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import UnknownNodeKindError
from .executor import NodeBehavior
from .ir import Graph


@dataclass(frozen=True)
class NodeKind:
    name: str
    behavior: NodeBehavior
    category: str = "General"
    description: str = ""


class NodeRegistry:
    def __init__(self):
        self._kinds: Dict[str, NodeKind] = {}

    def register(self, name: str, behavior: Optional[NodeBehavior] = None, *,
                 category: str = "General", description: str = ""):
        """Register ``behavior`` under ``name``; without a behavior, return a decorator."""
        def _add(fn: NodeBehavior) -> NodeBehavior:
            self._kinds[name] = NodeKind(name, fn, category, description)
            return fn

        if behavior is None:
            return _add
        return _add(behavior)

    def get(self, name: str) -> Optional[NodeKind]:
        return self._kinds.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)

    def list_kinds(self) -> List[str]:
        return list(self._kinds)

    def list_categories(self) -> List[str]:
        seen: List[str] = []
        for kind in self._kinds.values():
            if kind.category not in seen:
                seen.append(kind.category)
        return seen

    def kinds_by_category(self, category: str) -> Dict[str, str]:
        return {k.name: k.description for k in self._kinds.values() if k.category == category}

    def bind(self, graph: Graph) -> Dict[int, NodeBehavior]:
        missing = [n.kind for n in graph.nodes if n.kind not in self]
        if missing:
            raise UnknownNodeKindError(missing)
        return {n.id: self._kinds[n.kind].behavior for n in graph.nodes}
