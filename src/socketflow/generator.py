from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, Tuple
import yaml

from .ir import Graph

TEMPLATES = {"chain", "diamond", "template-hash"}


def _load_template_yaml(name: str) -> str:
    pkg = files('socketflow.templates')
    return (pkg / f"{name}.yaml").read_text()


def generate_graph_from_template(name: str) -> Graph:
    name = name.lower()
    if name not in TEMPLATES:
        raise ValueError(f"Unknown template '{name}'. Use one of: {', '.join(sorted(TEMPLATES))}")
    data = yaml.safe_load(_load_template_yaml(name.replace('-', '_')))
    return Graph(**data)


def load_graph(path: Path) -> Graph:
    data = yaml.safe_load(Path(path).read_text())
    return Graph(**data)


def save_graph_yaml(graph: Graph, path: Path):
    data = graph.model_dump(exclude={"nodes": {"__all__": {"result", "processing"}}})
    Path(path).write_text(yaml.safe_dump(data, sort_keys=False))


def parse_override(item: str) -> Tuple[int, Any]:
    """Parse ``NODE_ID=VALUE``; ``true``/``false`` and numbers are converted."""
    if "=" not in item:
        raise ValueError(f"Override '{item}' must look like NODE_ID=VALUE")
    node_id, raw = item.split("=", 1)
    try:
        nid = int(node_id.strip())
    except ValueError:
        raise ValueError(f"Override '{item}' does not start with a numeric node id") from None
    value: Any = raw
    if raw == "true":
        value = True
    elif raw == "false":
        value = False
    else:
        try:
            num = float(raw)
            value = int(num) if num.is_integer() and "." not in raw else num
        except ValueError:
            pass
    return nid, value


def apply_overrides(graph: Graph, overrides: Dict[int, Any]) -> Graph:
    """Return a copy of ``graph`` whose listed nodes get a new ``config['value']``."""
    unknown = set(overrides) - {n.id for n in graph.nodes}
    if unknown:
        raise ValueError(f"Overrides reference unknown node(s): {', '.join(map(str, sorted(unknown)))}")
    nodes = []
    for node in graph.nodes:
        if node.id in overrides:
            node = node.model_copy(update={"config": {**node.config, "value": overrides[node.id]}})
        nodes.append(node)
    return graph.model_copy(update={"nodes": nodes})
