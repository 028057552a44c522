"""In-process store for the internal link graph and committed authority scores."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set, Tuple

from .types import AuthorityScore


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable view of the graph used by one propagation pass."""

    nodes: Tuple[str, ...]
    edges: Mapping[str, FrozenSet[str]]


class AuthorityGraph:
    """Directed link graph plus the last committed authority score vector.

    Writers hold the lock only while swapping state in; readers get the
    committed mapping directly, which is replaced wholesale on commit and
    never mutated afterwards.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: Set[str] = set()
        self._edges: Dict[str, Set[str]] = {}
        self._scores: Mapping[str, AuthorityScore] = {}
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def add_node(self, item_id: str) -> None:
        with self._lock:
            if item_id not in self._nodes:
                self._nodes.add(item_id)
                self._version += 1

    def set_outbound(self, source_id: str, targets: Iterable[str]) -> None:
        """Replace every outgoing edge of ``source_id``."""

        target_set = {target for target in targets}
        with self._lock:
            self._nodes.add(source_id)
            self._nodes.update(target_set)
            if target_set:
                self._edges[source_id] = target_set
            else:
                self._edges.pop(source_id, None)
            self._version += 1

    def load_edges(self, edges: Iterable[Tuple[str, str]], nodes: Iterable[str] = ()) -> None:
        """Rebuild the graph from a full edge list."""

        new_nodes: Set[str] = set(nodes)
        new_edges: Dict[str, Set[str]] = {}
        for source, target in edges:
            new_nodes.add(source)
            new_nodes.add(target)
            new_edges.setdefault(source, set()).add(target)
        with self._lock:
            self._nodes = new_nodes
            self._edges = new_edges
            self._version += 1

    def snapshot(self) -> GraphSnapshot:
        with self._lock:
            nodes = tuple(sorted(self._nodes))
            edges = {source: frozenset(targets) for source, targets in self._edges.items()}
        return GraphSnapshot(nodes=nodes, edges=edges)

    def commit_scores(self, scores: Mapping[str, AuthorityScore]) -> None:
        committed = dict(scores)
        with self._lock:
            self._scores = committed

    def scores(self) -> Mapping[str, AuthorityScore]:
        return self._scores

    def score(self, item_id: str) -> float:
        entry: Optional[AuthorityScore] = self._scores.get(item_id)
        return entry.score if entry is not None else 0.0

    def inbound_counts(self) -> Dict[str, int]:
        snapshot = self.snapshot()
        counts = {node: 0 for node in snapshot.nodes}
        for source, targets in snapshot.edges.items():
            for target in targets:
                if target != source:
                    counts[target] = counts.get(target, 0) + 1
        return counts
