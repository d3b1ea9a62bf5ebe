from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Any, Literal

SocketDirection = Literal["input", "output"]


class Socket(BaseModel):
    id: int
    title: str = ""
    direction: SocketDirection
    node_id: int
    data_type: Optional[str] = None  # string | number | boolean | json | ...


class Connection(BaseModel):
    from_socket: int  # always an output socket
    to_socket: int    # always an input socket


class Node(BaseModel):
    id: int
    title: str
    kind: str
    sockets: List[Socket] = Field(default_factory=list)
    config: Dict[str, Any] = Field(default_factory=dict)
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0, "y": 0})
    result: Any = None
    processing: bool = False

    def input_sockets(self) -> List[Socket]:
        return [s for s in self.sockets if s.direction == "input"]

    def output_sockets(self) -> List[Socket]:
        return [s for s in self.sockets if s.direction == "output"]


class Graph(BaseModel):
    """Read-only snapshot of a flow: nodes, their sockets and the wiring between them."""

    nodes: List[Node]
    connections: List[Connection] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def node_map(self) -> Dict[int, Node]:
        return {n.id: n for n in self.nodes}

    def socket_map(self) -> Dict[int, Socket]:
        return {s.id: s for n in self.nodes for s in n.sockets}

    def terminal_nodes(self) -> List[Node]:
        """Nodes none of whose outputs feed another socket."""
        used = {c.from_socket for c in self.connections}
        return [n for n in self.nodes if not any(s.id in used for s in n.output_sockets())]
