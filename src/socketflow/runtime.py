"""Run a whole flow: pull every terminal node, report progress, collect results."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel

from .errors import CycleError, ExecutionCancelledError, FlowAlreadyExecutingError, NoTerminalNodesError
from .executor import NodeBehavior, NodeExecutor
from .graph import estimate_total, find_cycle
from .ir import Graph, Node
from .registry import NodeRegistry

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FlowExecutionStatus:
    state: RunState = RunState.IDLE
    progress: int = 0
    total: int = 0
    last_outcome: Optional[RunState] = None  # COMPLETED or FAILED once a run settles

    @property
    def is_executing(self) -> bool:
        return self.state is RunState.RUNNING


@dataclass
class FlowExecutionOptions:
    """Optional lifecycle callbacks, invoked synchronously as events happen."""

    on_progress: Optional[Callable[[int, int], None]] = None
    on_node_start: Optional[Callable[[int, str], None]] = None
    on_node_complete: Optional[Callable[[int, str, Any], None]] = None
    on_node_error: Optional[Callable[[int, str, str], None]] = None
    on_complete: Optional[Callable[[List["FlowExecutionResult"]], None]] = None
    on_error: Optional[Callable[[str], None]] = None


class FlowExecutionResult(BaseModel):
    node_id: int
    title: str
    value: Any = None
    error: Optional[str] = None
    elapsed_time: float = 0.0  # seconds

    @property
    def ok(self) -> bool:
        return self.error is None


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class _Run:
    """Bookkeeping for one call to ``FlowRuntime.execute``."""

    def __init__(self, graph: Graph):
        self.graph = graph
        self.status = FlowExecutionStatus(state=RunState.RUNNING)
        self.cancelled = False
        self.failure: Optional[BaseException] = None
        self.stop_event = asyncio.Event()
        self.total: Optional[int] = None
        self.values: dict = {}
        self.errors: dict = {}

    @property
    def stopped(self) -> bool:
        return self.cancelled or self.failure is not None

    def cancel(self) -> None:
        self.cancelled = True
        self.stop_event.set()

    def abort(self, exc: BaseException) -> None:
        if self.failure is None:
            self.failure = exc
        self.stop_event.set()


async def _wait_or_stop(run: _Run, aws: Iterable["asyncio.Future[Any]"]) -> None:
    """Wait until one of ``aws`` settles or the run is stopped."""
    waiter = asyncio.ensure_future(run.stop_event.wait())
    try:
        await asyncio.wait({*aws, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()


class FlowRuntime:
    """Reusable runner for one graph; at most one execution at a time.

    ``behaviors`` maps every node id to the callable computing its output,
    typically produced by ``NodeRegistry.bind``.

    With ``settle_all`` (the default) ``execute`` returns only after every
    scheduled node has settled, including nodes feeding an end node that
    already failed, so progress reaches its total and every node result is
    merged. A slow branch nobody needs any more then delays ``on_complete``.
    ``settle_all=False`` returns as soon as the end nodes settle and drops
    whatever is still running; progress may stop short of the total.
    """

    def __init__(self, graph: Graph, behaviors: Mapping[int, NodeBehavior], *, settle_all: bool = True):
        self._graph = graph
        self._behaviors = dict(behaviors)
        self._settle_all = settle_all
        self._status = FlowExecutionStatus()
        self._run: Optional[_Run] = None

    @property
    def graph(self) -> Graph:
        return self._graph

    def get_nodes(self) -> List[Node]:
        return list(self._graph.nodes)

    def get_status(self) -> FlowExecutionStatus:
        return replace(self._status)

    def cancel(self) -> None:
        """Stop reporting the current run.

        Behaviors already running are not interrupted; they finish in the
        background and their results are dropped.
        """
        run = self._run
        if run is None or not self._status.is_executing:
            return
        logger.info("Cancelling flow execution")
        run.cancel()
        self._status.state = RunState.IDLE

    async def execute(self, options: Optional[FlowExecutionOptions] = None) -> List[FlowExecutionResult]:
        if self._status.is_executing:
            raise FlowAlreadyExecutingError()
        options = options or FlowExecutionOptions()
        run = _Run(self._graph)
        self._run = run
        self._status = run.status

        try:
            end_nodes = run.graph.terminal_nodes()
            if not end_nodes:
                raise NoTerminalNodesError()
            cycle = find_cycle(run.graph)
            if cycle:
                raise CycleError(cycle)
            logger.info("Found %d end nodes to execute", len(end_nodes))

            executor = NodeExecutor(
                run.graph,
                self._behaviors,
                on_schedule=partial(self._node_scheduled, run, options),
                on_start=partial(self._node_started, run, options),
                is_cancelled=lambda: run.stopped,
            )
            results = list(await asyncio.gather(
                *(self._execute_end_node(run, executor, node) for node in end_nodes)
            ))
            if self._settle_all:
                await self._drain(run, executor)
            if run.failure is not None:
                raise run.failure

            if self._run is run:
                self._graph = self._merge_results(run)
            if not run.cancelled:
                failed = any(not r.ok for r in results)
                run.status.last_outcome = RunState.FAILED if failed else RunState.COMPLETED
            logger.info("Flow finished: %d end node(s), %d failed",
                        len(results), sum(1 for r in results if not r.ok))
            if options.on_complete is not None:
                options.on_complete(results)
            return results
        except asyncio.CancelledError:
            if not run.cancelled:
                run.status.last_outcome = RunState.FAILED
                logger.warning("Flow execution was cancelled by its caller")
                if options.on_error is not None:
                    options.on_error(str(ExecutionCancelledError()))
            raise
        except Exception as exc:
            if not run.cancelled:
                run.status.last_outcome = RunState.FAILED
            message = _error_message(exc)
            logger.error("Flow execution failed: %s", message)
            if options.on_error is not None:
                options.on_error(message)
            raise
        finally:
            # nodes still in flight belong to a finished run
            run.cancel()
            run.status.state = RunState.IDLE

    async def _execute_end_node(self, run: _Run, executor: NodeExecutor, node: Node) -> FlowExecutionResult:
        if run.stopped:
            return FlowExecutionResult(node_id=node.id, title=node.title,
                                       error=str(ExecutionCancelledError()))
        started = time.perf_counter()
        try:
            future = executor.execute_node(node)
            if not future.done():
                await _wait_or_stop(run, [future])
            if not future.done() or future.cancelled():
                raise ExecutionCancelledError()
            value = future.result()
        except Exception as exc:
            logger.error("Error executing node %s (%s): %s", node.id, node.title, _error_message(exc))
            return FlowExecutionResult(node_id=node.id, title=node.title, error=_error_message(exc),
                                       elapsed_time=time.perf_counter() - started)
        return FlowExecutionResult(node_id=node.id, title=node.title, value=value,
                                   elapsed_time=time.perf_counter() - started)

    async def _drain(self, run: _Run, executor: NodeExecutor) -> None:
        # upstream nodes of a failed end node may still be running
        while not run.stopped:
            pending = [f for f in executor.cache.values() if not f.done()]
            if not pending:
                return
            await _wait_or_stop(run, pending)

    def _notify(self, run: _Run, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as exc:
            logger.exception("Flow callback %r failed", callback)
            run.abort(exc)

    def _node_scheduled(self, run: _Run, options: FlowExecutionOptions, node: Node,
                        future: "asyncio.Future[Any]") -> None:
        future.add_done_callback(partial(self._node_settled, run, options, node))
        if run.total is None:
            run.total = estimate_total(run.graph)
            run.status.total = run.total
            if not run.stopped:
                self._notify(run, options.on_progress, run.status.progress, run.status.total)

    def _node_started(self, run: _Run, options: FlowExecutionOptions, node: Node) -> None:
        if run.stopped:
            return
        self._notify(run, options.on_node_start, node.id, node.title)

    def _node_settled(self, run: _Run, options: FlowExecutionOptions, node: Node,
                      future: "asyncio.Future[Any]") -> None:
        if run.stopped:
            return
        exc = ExecutionCancelledError() if future.cancelled() else future.exception()
        run.status.progress += 1
        self._notify(run, options.on_progress, run.status.progress, run.status.total)
        if exc is None:
            value = future.result()
            run.values[node.id] = value
            self._notify(run, options.on_node_complete, node.id, node.title, value)
        else:
            message = _error_message(exc)
            run.errors[node.id] = message
            logger.warning("Node %s (%s) failed: %s", node.id, node.title, message)
            self._notify(run, options.on_node_error, node.id, node.title, message)

    def _merge_results(self, run: _Run) -> Graph:
        nodes = []
        for node in run.graph.nodes:
            if node.id in run.values:
                node = node.model_copy(update={"result": run.values[node.id], "processing": False})
            elif node.id in run.errors:
                node = node.model_copy(update={"result": f"Error: {run.errors[node.id]}", "processing": False})
            nodes.append(node)
        return run.graph.model_copy(update={"nodes": nodes})


def create_flow_runtime(graph: Graph, registry: NodeRegistry, *, settle_all: bool = True) -> FlowRuntime:
    return FlowRuntime(graph, registry.bind(graph), settle_all=settle_all)


async def execute_flow(graph: Graph, registry: NodeRegistry,
                       options: Optional[FlowExecutionOptions] = None) -> List[FlowExecutionResult]:
    return await create_flow_runtime(graph, registry).execute(options)


async def execute_flow_with_results(graph: Graph, registry: NodeRegistry,
                                    options: Optional[FlowExecutionOptions] = None
                                    ) -> Tuple[List[FlowExecutionResult], Graph]:
    runtime = create_flow_runtime(graph, registry)
    results = await runtime.execute(options)
    return results, runtime.graph
