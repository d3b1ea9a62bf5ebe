from socketflow.generator import generate_graph_from_template
from socketflow.ir import Connection, Graph, Node, Socket
from socketflow.validator import validate_graph


def _pair():
    a = Node(id=1, title="A", kind="Text",
             sockets=[Socket(id=101, direction="input", node_id=1), Socket(id=111, direction="output", node_id=1)])
    b = Node(id=2, title="B", kind="Text",
             sockets=[Socket(id=201, direction="input", node_id=2), Socket(id=211, direction="output", node_id=2)])
    return [a, b]


def _errors(messages):
    return [m for m in messages if m.startswith("ERR:")]


def test_template_is_valid():
    ok, messages = validate_graph(generate_graph_from_template("diamond"))
    assert ok, messages
    assert not _errors(messages)


def test_connection_direction_is_checked():
    g = Graph(nodes=_pair(), connections=[Connection(from_socket=101, to_socket=211)])
    ok, messages = validate_graph(g)
    assert not ok
    assert any("output socket" in m for m in _errors(messages))
    assert any("input socket" in m for m in _errors(messages))


def test_missing_sockets_and_fan_in():
    g = Graph(nodes=_pair(), connections=[
        Connection(from_socket=999, to_socket=201),
        Connection(from_socket=111, to_socket=201),
    ])
    ok, messages = validate_graph(g)
    assert not ok
    errs = _errors(messages)
    assert any("missing socket" in m for m in errs)
    assert any("more than one connection: 201" in m for m in errs)


def test_cycle_and_missing_end_nodes():
    g = Graph(nodes=_pair(), connections=[
        Connection(from_socket=111, to_socket=201),
        Connection(from_socket=211, to_socket=101),
    ])
    ok, messages = validate_graph(g)
    assert not ok
    errs = _errors(messages)
    assert any("Cycle detected" in m for m in errs)
    assert any("No end nodes" in m for m in errs)


def test_duplicate_ids_and_wrong_owner():
    a, b = _pair()
    b = b.model_copy(update={"id": 1})
    ok, messages = validate_graph(Graph(nodes=[a, b]))
    assert not ok
    errs = _errors(messages)
    assert "ERR: Duplicate node IDs detected." in errs
    assert any("claims owner 2" in m for m in errs)
