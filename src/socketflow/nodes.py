"""Built-in node kinds: constants and small text/data utilities."""
from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from typing import Any, Dict

from .executor import ExecutionContext
from .registry import NodeRegistry

logger = logging.getLogger(__name__)

HASH_ALGORITHMS = {"MD5": "md5", "SHA1": "sha1", "SHA256": "sha256", "SHA512": "sha512"}
DEFAULT_DELAY_MS = 1000

_input_re = re.compile(r"\{\{input\}\}")


def _first_output(ctx: ExecutionContext) -> int:
    outputs = ctx.node.output_sockets()
    if not outputs:
        raise ValueError(f"Node {ctx.node.id} ({ctx.node.title}) has no output socket")
    return outputs[0].id


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return bool(value)


async def text_node(ctx: ExecutionContext) -> Any:
    return ctx.config.get("value", "")


async def number_node(ctx: ExecutionContext) -> Any:
    raw = ctx.config.get("value", 0)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return raw
    try:
        num = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Not a number: {raw!r}") from None
    return int(num) if num.is_integer() else num


async def boolean_node(ctx: ExecutionContext) -> bool:
    raw = ctx.config.get("value", False)
    if isinstance(raw, str):
        return raw.strip().lower() in {"true", "1", "yes", "on"}
    return bool(raw)


async def add_node(ctx: ExecutionContext) -> Any:
    total = 0
    for value in await ctx.input_values():
        total += float(value) if isinstance(value, str) else (value or 0)
    return total


async def join_node(ctx: ExecutionContext) -> str:
    separator = str(ctx.config.get("separator", " "))
    separator = separator.replace("(new line)", "\n").replace("\\n", "\n")
    parts = [_as_text(v) for v in await ctx.input_values()]
    return separator.join(p for p in parts if p != "")


async def text_template_node(ctx: ExecutionContext) -> Any:
    template = ctx.config.get("template", "{{input}}")
    if not isinstance(template, str):
        return template
    if not _input_re.search(template):
        return template
    inputs = ctx.node.input_sockets()
    value = await ctx.get_input_value(inputs[0].id) if inputs else None
    return _input_re.sub(lambda _m: _as_text(value), template)


async def hash_node(ctx: ExecutionContext) -> Dict[int, str]:
    algorithm = str(ctx.config.get("algorithm", "SHA256")).upper()
    name = HASH_ALGORITHMS.get(algorithm, "sha256")
    values = await ctx.input_values()
    text = _as_text(values[0]) if values else ""
    return {_first_output(ctx): hashlib.new(name, text.encode("utf-8")).hexdigest()}


async def delay_node(ctx: ExecutionContext) -> Dict[int, Any]:
    values = await ctx.input_values()
    raw = ctx.config.get("delay_ms", DEFAULT_DELAY_MS)
    try:
        delay_ms = max(0.0, float(raw))
    except (TypeError, ValueError):
        delay_ms = DEFAULT_DELAY_MS
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)
    return {_first_output(ctx): values[0] if values else None}


async def if_else_node(ctx: ExecutionContext) -> Dict[int, Any]:
    values = list(await ctx.input_values()) + [None, None, None]
    condition, when_true, when_false = values[:3]
    if ctx.config.get("strict", False):
        passed = condition is True
    else:
        passed = _truthy(condition)
    return {_first_output(ctx): when_true if passed else when_false}


def register_builtin_nodes(registry: NodeRegistry) -> NodeRegistry:
    registry.register("Text", text_node, category="Input", description="Constant text value")
    registry.register("Number", number_node, category="Input", description="Constant numeric value")
    registry.register("Boolean", boolean_node, category="Input", description="Constant boolean value")
    registry.register("Add", add_node, category="Math", description="Sum of all inputs")
    registry.register("Join", join_node, category="Text", description="Join inputs with a separator")
    registry.register("TextTemplate", text_template_node, category="Text",
                      description="Replace {{input}} in a template")
    registry.register("Hash", hash_node, category="Data", description="Hex digest of the input")
    registry.register("Delay", delay_node, category="Flow", description="Wait, then pass the input through")
    registry.register("IfElse", if_else_node, category="Flow", description="Pick one of two inputs")
    logger.debug("Registered %d built-in node kinds", len(registry))
    return registry


def builtin_registry() -> NodeRegistry:
    return register_builtin_nodes(NodeRegistry())
