"""
Protocol graph builder.

Derives the directed graph of protocol steps from connector shapes and
numbers the steps for display with a batched Kahn's algorithm:

- every round takes the whole ready queue as one batch,
- unvisited members of a batch node's parallel group are pulled into the
  same batch (parallel siblings always share a step number),
- each non-empty batch gets the next step number.

Nodes left unvisited (cycle members) get trailing numbers in store
order. That fallback does not describe a valid execution order, so the
result reports them in cyclic_node_ids and a warning is logged.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from models import ProtocolNodeShape, Shape, node_at


logger = logging.getLogger(__name__)


Edge = Tuple[str, str]


def resolve_connector(connector: Shape, nodes: List[ProtocolNodeShape],
                      by_id: Dict[str, ProtocolNodeShape]) -> Optional[Edge]:
    """
    Source and target node ids of a connector, or None.

    Explicit bindings win when both reference existing nodes; otherwise
    the endpoints are located geometrically. Self-loops resolve to None.
    """
    source = by_id.get(connector.from_node_id) if connector.from_node_id else None
    target = by_id.get(connector.to_node_id) if connector.to_node_id else None
    if source is None or target is None:
        source = node_at(nodes, connector.start_point)
        target = node_at(nodes, connector.end_point)
    if source is None or target is None or source.id == target.id:
        return None
    return source.id, target.id


@dataclass
class ProtocolGraph:
    """Protocol nodes (store order) and their de-duplicated edges."""
    nodes: List[ProtocolNodeShape] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def successors(self) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {n.id: [] for n in self.nodes}
        for source, target in self.edges:
            adjacency[source].append(target)
        return adjacency

    def in_degrees(self) -> Dict[str, int]:
        degrees = {n.id: 0 for n in self.nodes}
        for _, target in self.edges:
            degrees[target] += 1
        return degrees

    def parallel_groups(self) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = OrderedDict()
        for node in self.nodes:
            if node.parallel_group_id:
                groups.setdefault(node.parallel_group_id, []).append(node.id)
        return groups


def build_graph(shapes: Iterable[Shape]) -> ProtocolGraph:
    shapes = list(shapes)
    nodes = [s for s in shapes if s.is_protocol_node]
    by_id = {n.id: n for n in nodes}

    edges: List[Edge] = []
    seen: Set[Edge] = set()
    for connector in (s for s in shapes if s.is_connector):
        edge = resolve_connector(connector, nodes, by_id)
        if edge is not None and edge not in seen:
            seen.add(edge)
            edges.append(edge)
    return ProtocolGraph(nodes=nodes, edges=edges)


@dataclass
class StepNumbering:
    """Result of compute_step_numbers."""
    steps: Dict[str, int] = field(default_factory=dict)
    cyclic_node_ids: List[str] = field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        return bool(self.cyclic_node_ids)

    def get(self, node_id: str) -> Optional[int]:
        return self.steps.get(node_id)

    def batches(self) -> List[List[str]]:
        """Node ids grouped by step number, in step order."""
        grouped: Dict[int, List[str]] = {}
        for node_id, step in self.steps.items():
            grouped.setdefault(step, []).append(node_id)
        return [grouped[k] for k in sorted(grouped)]


def compute_step_numbers(shapes: Iterable[Shape]) -> StepNumbering:
    """Map every protocol node id to its 1-based display step number."""
    graph = build_graph(shapes)
    successors = graph.successors()
    in_degree = graph.in_degrees()
    groups = graph.parallel_groups()
    group_of = {n.id: n.parallel_group_id for n in graph.nodes if n.parallel_group_id}

    result = StepNumbering()
    visited: Set[str] = set()
    queue = [nid for nid in graph.node_ids if in_degree[nid] == 0]
    step = 1

    while queue:
        batch: List[str] = []
        for node_id in queue:
            if node_id in visited or node_id in batch:
                continue
            batch.append(node_id)
            group_id = group_of.get(node_id)
            if group_id:
                for sibling in groups[group_id]:
                    if sibling not in visited and sibling not in batch:
                        batch.append(sibling)
        queue = []

        if not batch:
            break

        for node_id in batch:
            result.steps[node_id] = step
            visited.add(node_id)

        for node_id in batch:
            for target in successors[node_id]:
                in_degree[target] -= 1
                if in_degree[target] <= 0 and target not in visited and target not in queue:
                    queue.append(target)
        step += 1

    for node_id in graph.node_ids:
        if node_id not in visited:
            result.steps[node_id] = step
            result.cyclic_node_ids.append(node_id)
            step += 1

    if result.cyclic_node_ids:
        logger.warning(
            f"Protocol graph contains a cycle; step numbers for "
            f"{len(result.cyclic_node_ids)} node(s) are arbitrary: "
            f"{', '.join(result.cyclic_node_ids)}"
        )

    return result
