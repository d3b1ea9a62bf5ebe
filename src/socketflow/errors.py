from __future__ import annotations
from typing import List


class FlowError(Exception):
    """Base class for every error raised by the flow engine."""


class FlowStructureError(FlowError, ValueError):
    """The graph cannot be scheduled as it is wired."""


class NoTerminalNodesError(FlowStructureError):
    def __init__(self, message: str = "No end nodes found. Your flow needs at least one node with unused outputs."):
        super().__init__(message)


class CycleError(FlowStructureError):
    def __init__(self, cycle: List[int]):
        self.cycle = list(cycle)
        path = " -> ".join(str(n) for n in self.cycle + self.cycle[:1])
        super().__init__(f"Cycle detected between nodes: {path}")


class FlowAlreadyExecutingError(FlowError, RuntimeError):
    def __init__(self, message: str = "Flow is already executing"):
        super().__init__(message)


class UnknownNodeKindError(FlowError, KeyError):
    def __init__(self, kinds: List[str]):
        self.kinds = sorted(set(kinds))
        super().__init__(f"Unknown node kind(s): {', '.join(self.kinds)}")

    def __str__(self) -> str:
        return self.args[0]


class MissingBehaviorError(FlowError):
    def __init__(self, node_id: int, kind: str):
        self.node_id = node_id
        super().__init__(f"Node {kind} (ID: {node_id}) does not have a process function")


class ExecutionCancelledError(FlowError):
    def __init__(self, message: str = "Execution cancelled"):
        super().__init__(message)
