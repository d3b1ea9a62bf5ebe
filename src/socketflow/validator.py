from pathlib import Path
from collections import Counter
from typing import Tuple, List

from .generator import load_graph
from .graph import find_cycle
from .ir import Graph


def validate_graph(g: Graph) -> Tuple[bool, List[str]]:
    messages: List[str] = []
    ok = True

    # 1) Unique node ids
    node_ids = {n.id for n in g.nodes}
    if len(node_ids) != len(g.nodes):
        ok = False
        messages.append("ERR: Duplicate node IDs detected.")
    else:
        messages.append("OK: Node IDs are unique.")

    # 2) Unique socket ids, each owned by the node that declares it
    socket_counts = Counter(s.id for n in g.nodes for s in n.sockets)
    dupes = sorted(sid for sid, count in socket_counts.items() if count > 1)
    if dupes:
        ok = False
        messages.append(f"ERR: Duplicate socket IDs detected: {', '.join(map(str, dupes))}.")
    else:
        messages.append("OK: Socket IDs are unique.")
    owners_ok = True
    for n in g.nodes:
        for s in n.sockets:
            if s.node_id != n.id:
                owners_ok = False
                messages.append(f"ERR: Socket {s.id} on node {n.id} claims owner {s.node_id}.")
    ok = ok and owners_ok

    # 3) Connection endpoints exist and run output -> input
    sockets = g.socket_map()
    endpoints_ok = True
    for c in g.connections:
        src = sockets.get(c.from_socket)
        dst = sockets.get(c.to_socket)
        if src is None or dst is None:
            endpoints_ok = False
            messages.append(f"ERR: Connection {c.from_socket}->{c.to_socket} references missing socket(s).")
            continue
        if src.direction != "output":
            endpoints_ok = False
            messages.append(f"ERR: Connection from {c.from_socket} does not start at an output socket.")
        if dst.direction != "input":
            endpoints_ok = False
            messages.append(f"ERR: Connection to {c.to_socket} does not end at an input socket.")
    if endpoints_ok:
        messages.append("OK: All connections run from an output to an input socket.")
    ok = ok and endpoints_ok

    # 4) One connection per input
    fan_in = Counter(c.to_socket for c in g.connections)
    crowded = sorted(sid for sid, count in fan_in.items() if count > 1)
    if crowded:
        ok = False
        messages.append(f"ERR: Input socket(s) with more than one connection: {', '.join(map(str, crowded))}.")
    else:
        messages.append("OK: Every input socket has at most one connection.")

    # 5) Acyclic check
    cycle = find_cycle(g)
    if cycle:
        ok = False
        messages.append(f"ERR: Cycle detected in the graph ({' -> '.join(map(str, cycle + cycle[:1]))}).")
    else:
        messages.append("OK: Graph is acyclic.")

    # 6) Something to pull from
    if g.terminal_nodes():
        messages.append("OK: Graph has at least one end node.")
    else:
        ok = False
        messages.append("ERR: No end nodes found; every node's output is consumed.")

    return ok, messages


def validate_graph_from_file(path: Path) -> Tuple[bool, List[str]]:
    return validate_graph(load_graph(path))
