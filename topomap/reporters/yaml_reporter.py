"""
YAML output: the same structures as the JSON reporter, dumped with PyYAML so
the policy list can be fed straight to kubectl.
"""
from typing import List

import yaml

from topomap.models.errors import ProcessingError
from topomap.models.policy import NetworkPolicy, policy_list
from topomap.models.resource import Connection
from topomap.reporters.json_reporter import connections_document


def build_report(
    connections: List[Connection], errors: List[ProcessingError], source_path: str
) -> str:
    doc = connections_document(connections, errors, source_path)
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def build_policies(policies: List[NetworkPolicy]) -> str:
    return yaml.safe_dump(policy_list(policies), sort_keys=False, default_flow_style=False)
