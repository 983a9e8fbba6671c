"""
JSON connectivity report and NetworkPolicy list generator.
"""
import json
from datetime import datetime, timezone
from typing import List

from topomap import __version__
from topomap.models.errors import ProcessingError
from topomap.models.policy import NetworkPolicy, policy_list
from topomap.models.resource import Connection


def connections_document(
    connections: List[Connection], errors: List[ProcessingError], source_path: str
) -> dict:
    return {
        "meta": {
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "source": source_path,
            "tool": "topomap",
            "version": __version__,
        },
        "summary": {
            "connections": len(connections),
            "unknown_sources": sum(1 for c in connections if c.source is None),
            "errors": len(errors),
        },
        "connections": [c.to_dict() for c in connections],
        "errors": [e.to_dict() for e in errors],
    }


def build_report(
    connections: List[Connection], errors: List[ProcessingError], source_path: str
) -> str:
    return json.dumps(connections_document(connections, errors, source_path), indent=2)


def build_policies(policies: List[NetworkPolicy]) -> str:
    return json.dumps(policy_list(policies), indent=2)
