from pathlib import Path

from .generator import load_graph
from .graph import to_digraph
from .ir import Graph
import networkx as nx


def render_plan(g: Graph) -> str:
    nxg = to_digraph(g)
    sockets = g.socket_map()
    for c in g.connections:
        src, dst = sockets.get(c.from_socket), sockets.get(c.to_socket)
        if src is not None and dst is not None:
            nxg.edges[src.node_id, dst.node_id].setdefault("labels", []).append(f"{c.from_socket}->{c.to_socket}")

    order = list(nx.topological_sort(nxg))
    node_map = g.node_map()
    ends = {n.id for n in g.terminal_nodes()}
    lines = ["# ASCII Plan (topological order)"]
    for i, nid in enumerate(order, 1):
        node = node_map[nid]
        marker = "  (end)" if nid in ends else ""
        lines.append(f"{i:02d}. {node.id} [{node.kind}] {node.title}{marker}")
        for succ in nxg.successors(nid):
            elabel = ", ".join(nxg.get_edge_data(nid, succ)['labels'])
            lines.append(f"    └─▶ {succ}  ({elabel})")
    return "\n".join(lines)


def ascii_plan(path: Path) -> str:
    return render_plan(load_graph(path))
