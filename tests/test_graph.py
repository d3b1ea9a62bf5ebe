from socketflow.graph import build_execution_graph, estimate_total, find_cycle, topological_order
from socketflow.ir import Connection, Graph, Node, Socket


def _node(nid, inputs=1, outputs=1):
    sockets = [Socket(id=nid * 100 + i + 1, direction="input", node_id=nid) for i in range(inputs)]
    sockets += [Socket(id=nid * 100 + 11 + i, direction="output", node_id=nid) for i in range(outputs)]
    return Node(id=nid, title=f"N{nid}", kind="Test", sockets=sockets)


def _wire(src, dst, dst_input=1):
    return Connection(from_socket=src * 100 + 11, to_socket=dst * 100 + dst_input)


def test_pairs_follow_connections_and_skip_dangling_sockets():
    g = Graph(nodes=[_node(1), _node(2)],
              connections=[_wire(1, 2), Connection(from_socket=911, to_socket=201)])
    assert build_execution_graph(g) == [(1, 2)]


def test_estimate_counts_connected_and_isolated_end_nodes():
    g = Graph(nodes=[_node(1), _node(2), _node(3)], connections=[_wire(1, 2)])
    assert estimate_total(g) == 3


def test_find_cycle():
    acyclic = Graph(nodes=[_node(1), _node(2)], connections=[_wire(1, 2)])
    assert find_cycle(acyclic) is None

    cyclic = Graph(nodes=[_node(1), _node(2)], connections=[_wire(1, 2), _wire(2, 1)])
    assert sorted(find_cycle(cyclic)) == [1, 2]


def test_self_loop_is_a_cycle():
    g = Graph(nodes=[_node(1)], connections=[_wire(1, 1)])
    assert find_cycle(g) == [1]


def test_topological_order_puts_sources_first():
    g = Graph(nodes=[_node(3, inputs=2), _node(2), _node(1)],
              connections=[_wire(1, 2), _wire(2, 3), _wire(1, 3, dst_input=2)])
    assert topological_order(g) == [1, 2, 3]
