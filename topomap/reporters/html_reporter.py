"""
Interactive HTML + Mermaid connectivity report generator.
"""
from datetime import datetime, timezone
from typing import List

from jinja2 import Environment

from topomap import __version__
from topomap.models.errors import ProcessingError
from topomap.models.resource import Connection
from topomap.reporters import markdown

_HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Connectivity Report - topomap</title>
    <script src="https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"></script>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 1200px; margin: 0 auto; padding: 2rem; background: #f9f9f9; }
        header { border-bottom: 2px solid #ddd; margin-bottom: 2rem; padding-bottom: 1rem; }
        h1 { color: #1565c0; margin-bottom: 0; }
        .meta { color: #666; font-size: 0.9rem; margin-bottom: 2rem; }
        .summary-cards { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 1rem; margin-bottom: 2rem; }
        .card { background: white; padding: 1rem; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); text-align: center; border-left: 5px solid #ddd; }
        .card.conn { border-left-color: #1565c0; }
        .card.unknown { border-left-color: #ff9800; }
        .card.errors { border-left-color: #f44336; }
        .card-num { font-size: 2rem; font-weight: bold; margin-bottom: 0.2rem; }
        .card-label { color: #666; font-size: 0.8rem; text-transform: uppercase; }
        .mermaid-container { background: white; padding: 2rem; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); margin-bottom: 2rem; overflow-x: auto; }
        .conn-table { width: 100%; border-collapse: collapse; background: white; border-radius: 8px; overflow: hidden; box-shadow: 0 2px 4px rgba(0,0,0,0.1); margin-bottom: 2rem; }
        .conn-table th, .conn-table td { padding: 1rem; text-align: left; border-bottom: 1px solid #eee; }
        .conn-table th { background: #f5f5f5; font-weight: 600; }
        .unknown-src { color: #ef6c00; font-style: italic; }
        .err-severe { color: #c62828; font-weight: bold; }
        footer { margin-top: 4rem; text-align: center; color: #999; font-size: 0.8rem; }
    </style>
</head>
<body>
    <header>
        <h1>Connectivity Report</h1>
        <div class="meta">Generated: {{ generated }} | Source: {{ source }} | topomap v{{ version }}</div>
    </header>

    <div class="summary-cards">
        <div class="card conn"><div class="card-num">{{ connections|length }}</div><div class="card-label">Connections</div></div>
        <div class="card"><div class="card-num">{{ workloads|length }}</div><div class="card-label">Workloads</div></div>
        <div class="card unknown"><div class="card-num">{{ unknown }}</div><div class="card-label">Unknown callers</div></div>
        <div class="card errors"><div class="card-num">{{ errors|length }}</div><div class="card-label">Errors</div></div>
    </div>

    <h2>Connectivity Diagram</h2>
    <div class="mermaid-container">
        <div class="mermaid">
{{ mermaid }}
        </div>
    </div>

    <h2>Connections</h2>
    <table class="conn-table">
        <thead>
            <tr>
                <th>#</th>
                <th>Source</th>
                <th>Target</th>
                <th>Service</th>
                <th>Port</th>
            </tr>
        </thead>
        <tbody>
            {% for c in connections %}
            <tr>
                <td>{{ loop.index }}</td>
                <td>{% if c.source %}<strong>{{ c.source.namespace }}/{{ c.source.name }}</strong>{% else %}<span class="unknown-src">unknown</span>{% endif %}</td>
                <td><strong>{{ c.target.namespace }}/{{ c.target.name }}</strong></td>
                <td>{{ c.link.name }} ({{ c.link.type }})</td>
                <td>{% if c.port %}{{ c.port.port }}/{{ c.port.protocol }}{% else %}all{% endif %}</td>
            </tr>
            {% endfor %}
        </tbody>
    </table>

    {% if errors %}
    <h2>Processing Errors</h2>
    <ul>
        {% for e in errors %}
        <li{% if e.fatal or e.severe %} class="err-severe"{% endif %}>{{ e }}</li>
        {% endfor %}
    </ul>
    {% endif %}

    <footer>
        topomap - static Kubernetes connectivity analysis
    </footer>

    <script>
        mermaid.initialize({ startOnLoad: true, theme: 'neutral', securityLevel: 'loose' });
    </script>
</body>
</html>
"""


def build_report(
    connections: List[Connection], errors: List[ProcessingError], source_path: str
) -> str:
    env = Environment(autoescape=True)
    template = env.from_string(_HTML_TEMPLATE)

    return template.render(
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        source=source_path,
        version=__version__,
        workloads=markdown.workload_rows(connections),
        connections=connections,
        unknown=sum(1 for c in connections if c.source is None),
        errors=errors,
        mermaid=markdown.build_mermaid(connections),
    )
