"""Static analysis of the socket wiring at node granularity."""
from __future__ import annotations
from typing import List, Optional, Tuple
import networkx as nx

from .ir import Graph


def build_execution_graph(graph: Graph) -> List[Tuple[int, int]]:
    """Return one ``(source_node_id, target_node_id)`` pair per resolvable connection."""
    sockets = graph.socket_map()
    pairs = []
    for conn in graph.connections:
        src = sockets.get(conn.from_socket)
        dst = sockets.get(conn.to_socket)
        if src is not None and dst is not None:
            pairs.append((src.node_id, dst.node_id))
    return pairs


def to_digraph(graph: Graph) -> nx.DiGraph:
    nxg = nx.DiGraph()
    nxg.add_nodes_from([n.id for n in graph.nodes])
    nxg.add_edges_from(build_execution_graph(graph))
    return nxg


def estimate_total(graph: Graph) -> int:
    """Number of nodes a full run is expected to settle.

    Every node taking part in a connection is pulled by some terminal node in
    an acyclic graph; isolated terminal nodes are executed as well.
    """
    ids = {nid for pair in build_execution_graph(graph) for nid in pair}
    ids.update(n.id for n in graph.terminal_nodes())
    return len(ids)


def find_cycle(graph: Graph) -> Optional[List[int]]:
    try:
        edges = nx.find_cycle(to_digraph(graph))
    except nx.NetworkXNoCycle:
        return None
    return [u for u, _ in edges]


def topological_order(graph: Graph) -> List[int]:
    return list(nx.topological_sort(to_digraph(graph)))
