import hashlib

import pytest

from socketflow.errors import UnknownNodeKindError
from socketflow.executor import ExecutionContext
from socketflow.ir import Graph, Node, Socket
from socketflow.nodes import builtin_registry
from socketflow.registry import NodeRegistry


def _ctx(kind, inputs=(), outputs=1, **config):
    sockets = [Socket(id=100 + i + 1, direction="input", node_id=1) for i in range(len(inputs))]
    sockets += [Socket(id=111 + i, direction="output", node_id=1) for i in range(outputs)]
    node = Node(id=1, title=kind, kind=kind, sockets=sockets, config=config)
    values = {100 + i + 1: v for i, v in enumerate(inputs)}

    async def get_input_value(socket_id):
        return values.get(socket_id)

    return ExecutionContext(node=node, get_input_value=get_input_value)


async def _run(kind, inputs=(), outputs=1, **config):
    behavior = builtin_registry().get(kind).behavior
    return await behavior(_ctx(kind, inputs, outputs, **config))


@pytest.mark.asyncio
async def test_constant_nodes():
    assert await _run("Text", value="hi") == "hi"
    assert await _run("Number", value="3") == 3
    assert await _run("Number", value="2.5") == 2.5
    assert await _run("Boolean", value="true") is True
    assert await _run("Boolean", value=0) is False


@pytest.mark.asyncio
async def test_number_rejects_garbage():
    with pytest.raises(ValueError, match="Not a number"):
        await _run("Number", value="abc")


@pytest.mark.asyncio
async def test_add_treats_missing_inputs_as_zero():
    assert await _run("Add", inputs=(2, None, "1.5")) == 3.5


@pytest.mark.asyncio
async def test_join_skips_empty_inputs_and_expands_newlines():
    assert await _run("Join", inputs=("a", None, "b"), separator=", ") == "a, b"
    assert await _run("Join", inputs=("a", "b"), separator="(new line)") == "a\nb"


@pytest.mark.asyncio
async def test_text_template():
    assert await _run("TextTemplate", inputs=("Bob",), template="Hi {{input}}, {{input}}!") == "Hi Bob, Bob!"
    assert await _run("TextTemplate", inputs=(None,), template="[{{input}}]") == "[]"
    assert await _run("TextTemplate", inputs=("x",), template="static") == "static"


@pytest.mark.asyncio
async def test_hash_returns_value_for_its_output_socket():
    out = await _run("Hash", inputs=("abc",), algorithm="md5")
    assert out == {111: hashlib.md5(b"abc").hexdigest()}
    default = await _run("Hash", inputs=("abc",))
    assert default[111] == hashlib.sha256(b"abc").hexdigest()


@pytest.mark.asyncio
async def test_delay_passes_input_through():
    assert await _run("Delay", inputs=("v",), delay_ms=0) == {111: "v"}
    assert await _run("Delay", inputs=("v",), delay_ms=-5) == {111: "v"}


@pytest.mark.asyncio
async def test_if_else():
    assert await _run("IfElse", inputs=("yes", "T", "F")) == {111: "T"}
    assert await _run("IfElse", inputs=({}, "T", "F")) == {111: "F"}
    assert await _run("IfElse", inputs=("yes", "T", "F"), strict=True) == {111: "F"}
    assert await _run("IfElse", inputs=(True, "T", "F"), strict=True) == {111: "T"}


@pytest.mark.asyncio
async def test_multi_output_node_without_outputs_fails():
    with pytest.raises(ValueError, match="no output socket"):
        await _run("Hash", inputs=("abc",), outputs=0)


def test_registry_catalog():
    registry = builtin_registry()
    assert "Join" in registry
    assert registry.get("Nope") is None
    assert registry.list_categories() == ["Input", "Math", "Text", "Data", "Flow"]
    assert set(registry.kinds_by_category("Flow")) == {"Delay", "IfElse"}


def test_registry_decorator_and_replacement():
    registry = NodeRegistry()

    @registry.register("Echo", category="Test", description="first")
    async def echo(ctx):
        return "one"

    registry.register("Echo", echo, description="second")
    assert len(registry) == 1
    assert registry.get("Echo").description == "second"
    assert registry.list_kinds() == ["Echo"]


def test_bind_resolves_every_node_or_names_unknown_kinds():
    registry = builtin_registry()
    good = Graph(nodes=[Node(id=1, title="t", kind="Text"), Node(id=2, title="j", kind="Join")])
    bound = registry.bind(good)
    assert bound[1] is registry.get("Text").behavior
    assert bound[2] is registry.get("Join").behavior

    bad = Graph(nodes=[Node(id=1, title="x", kind="Scraper"), Node(id=2, title="y", kind="Pdf")])
    with pytest.raises(UnknownNodeKindError) as info:
        registry.bind(bad)
    assert info.value.kinds == ["Pdf", "Scraper"]
    assert str(info.value) == "Unknown node kind(s): Pdf, Scraper"
