"""Cache-backed, pull-based resolution of node outputs.

A node is executed by first resolving all of its input sockets, which in turn
executes the nodes wired to them. Every execution is registered in a per-run
cache keyed by node id *before* the first ``await``, so a node reachable over
several paths (diamond dependencies) runs exactly once and concurrent callers
share the same future.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from .errors import MissingBehaviorError
from .ir import Graph, Node

logger = logging.getLogger(__name__)

NodeBehavior = Callable[["ExecutionContext"], Union[Awaitable[Any], Any]]


@dataclass
class ExecutionContext:
    """What a behavior sees while it runs: its node and a way to read inputs."""

    node: Node
    get_input_value: Callable[[int], Awaitable[Any]]
    is_cancelled: Callable[[], bool] = field(default=lambda: False)

    @property
    def config(self) -> Dict[str, Any]:
        return self.node.config

    @property
    def cancelled(self) -> bool:
        # Advisory only; long running behaviors may poll it between awaits.
        return self.is_cancelled()

    async def input_values(self) -> List[Any]:
        return [await self.get_input_value(s.id) for s in self.node.input_sockets()]


def _is_socket_key(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and key.isdigit()


def is_multi_output(output: Any) -> bool:
    return isinstance(output, Mapping) and bool(output) and all(_is_socket_key(k) for k in output)


def project_output(output: Any, socket_id: int) -> Any:
    """Pick the value a node produced for one of its output sockets.

    A non-empty mapping keyed by socket ids is a per-socket result; a socket
    missing from it has no value. Any other output feeds every socket.
    """
    if not is_multi_output(output):
        return output
    if socket_id in output:
        return output[socket_id]
    return output.get(str(socket_id))


class NodeExecutor:
    def __init__(self, graph: Graph, behaviors: Mapping[int, NodeBehavior], *,
                 on_schedule: Optional[Callable[[Node, "asyncio.Future[Any]"], None]] = None,
                 on_start: Optional[Callable[[Node], None]] = None,
                 is_cancelled: Optional[Callable[[], bool]] = None):
        self._behaviors = behaviors
        self._nodes = graph.node_map()
        self._owners = {s.id: s.node_id for n in graph.nodes for s in n.sockets}
        self._incoming = {}
        for conn in graph.connections:
            # first connection wins
            self._incoming.setdefault(conn.to_socket, conn)
        self._on_schedule = on_schedule
        self._on_start = on_start
        self._is_cancelled = is_cancelled or (lambda: False)
        self._cache: Dict[int, "asyncio.Future[Any]"] = {}

    @property
    def cache(self) -> Mapping[int, "asyncio.Future[Any]"]:
        return MappingProxyType(self._cache)

    def execute_node(self, node: Node) -> "asyncio.Future[Any]":
        """Return the (possibly shared) future computing ``node``'s output.

        Must be called from a running event loop. The lookup and the insert
        happen with no suspension point in between.
        """
        future = self._cache.get(node.id)
        if future is not None:
            logger.debug("Waiting for cached result for node %s (%s)", node.id, node.title)
            return future
        logger.debug("Starting execution of node %s (%s)", node.id, node.title)
        future = asyncio.ensure_future(self._run(node))
        self._cache[node.id] = future
        if self._on_schedule is not None:
            self._on_schedule(node, future)
        return future

    async def resolve_input(self, socket_id: int) -> Any:
        conn = self._incoming.get(socket_id)
        if conn is None:
            return None
        owner_id = self._owners.get(conn.from_socket)
        source = self._nodes.get(owner_id) if owner_id is not None else None
        if source is None:
            return None
        output = await self.execute_node(source)
        return project_output(output, conn.from_socket)

    async def _run(self, node: Node) -> Any:
        behavior = self._behaviors.get(node.id)
        if behavior is None:
            raise MissingBehaviorError(node.id, node.kind)

        socket_ids = [s.id for s in node.input_sockets()]
        values = await asyncio.gather(*(self.resolve_input(sid) for sid in socket_ids))
        resolved = dict(zip(socket_ids, values))

        async def get_input_value(socket_id: int) -> Any:
            if socket_id in resolved:
                return resolved[socket_id]
            return await self.resolve_input(socket_id)

        ctx = ExecutionContext(node=node, get_input_value=get_input_value, is_cancelled=self._is_cancelled)
        if self._on_start is not None:
            self._on_start(node)
        result = behavior(ctx)
        if inspect.isawaitable(result):
            result = await result
        logger.debug("Completed execution of node %s (%s)", node.id, node.title)
        return result
