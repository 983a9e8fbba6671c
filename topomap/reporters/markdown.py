"""
Markdown + Mermaid connectivity report generator.
"""
import re
from datetime import datetime, timezone
from typing import Dict, List

from jinja2 import Environment

from topomap import __version__
from topomap.models.errors import ProcessingError
from topomap.models.resource import Connection, Service, Workload


def _sanitize_node_id(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", name)


def _node_id(w: Workload) -> str:
    return _sanitize_node_id(f"{w.kind}.{w.namespace}.{w.name}")


def _edge_label(link: Service, conn: Connection) -> str:
    if conn.port is not None:
        return f"{link.name}:{conn.port.port}"
    return link.name


def workload_rows(connections: List[Connection]) -> List[Workload]:
    """Workloads taking part in `connections`, in order of first appearance."""
    seen: Dict[int, Workload] = {}
    for c in connections:
        for w in (c.source, c.target):
            if w is not None and id(w) not in seen:
                seen[id(w)] = w
    return list(seen.values())


def build_mermaid(connections: List[Connection]) -> str:
    lines = ["flowchart LR"]
    workloads = workload_rows(connections)

    if any(c.source is None or c.link.expose_externally for c in connections):
        lines.append("    Unknown((Unknown / Internet))")

    for w in workloads:
        lines.append(f"    {_node_id(w)}[{w.namespace}/{w.name}]")

    added_edges = set()
    for c in connections:
        dst_id = _node_id(c.target)
        src_id = _node_id(c.source) if c.source is not None else "Unknown"
        label = _edge_label(c.link, c)
        edge_key = (src_id, dst_id, label)
        if edge_key in added_edges:
            continue
        added_edges.add(edge_key)
        lines.append(f"    {src_id} -->|{label}| {dst_id}")
        if c.link.expose_externally and ("Unknown", dst_id, label) not in added_edges:
            added_edges.add(("Unknown", dst_id, label))
            lines.append(f"    Unknown -.->|{label}| {dst_id}")

    return "\n".join(lines)


_TEMPLATE = """\
# Connectivity Report

**Generated:** {{ generated }}
**Source:** {{ source }}
**Tool:** topomap v{{ version }}

---

## Summary

Analysis found **{{ connections|length }} connections** between **{{ workloads|length }} workloads**
({{ unknown }} with an unidentified caller) and recorded **{{ errors|length }} processing errors**.

---

## Workloads

| # | Workload | Kind | Namespace | Labels | Used ports | File |
|---|----------|------|-----------|--------|------------|------|
{% for w in workloads %}| {{ loop.index }} | `{{ w.name }}` | {{ w.kind }} | {{ w.namespace }} | {{ w.selectors|join(", ") }} | {{ w.used_ports|join(", ") }} | {{ w.file_path }} |
{% endfor %}

---

## Connections

| # | Source | Target | Service | Port | Exposure |
|---|--------|--------|---------|------|----------|
{% for c in connections %}| {{ loop.index }} | {% if c.source %}`{{ c.source.name }}`{% else %}_unknown_{% endif %} | `{{ c.target.name }}` | `{{ c.link.name }}` | {% if c.port %}{{ c.port.port }}{% else %}all{% endif %} | {% if c.link.expose_externally %}external{% elif c.link.expose_to_cluster %}cluster{% else %}-{% endif %} |
{% endfor %}
{% if errors %}
---

## Processing Errors

{% for e in errors %}- {% if e.fatal %}**FATAL** {% elif e.severe %}**SEVERE** {% endif %}{{ e }}
{% endfor %}{% endif %}
---

## Connectivity Diagram

```mermaid
{{ mermaid }}
```
"""


def build_report(
    connections: List[Connection], errors: List[ProcessingError], source_path: str
) -> str:
    env = Environment(autoescape=False)
    template = env.from_string(_TEMPLATE)

    return template.render(
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        source=source_path,
        version=__version__,
        workloads=workload_rows(connections),
        connections=connections,
        unknown=sum(1 for c in connections if c.source is None),
        errors=errors,
        mermaid=build_mermaid(connections),
    )
