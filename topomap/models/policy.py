from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

NAMESPACE_NAME_LABEL = "kubernetes.io/metadata.name"


@dataclass(frozen=True)
class PolicyPort:
    port: Union[int, str]
    protocol: str = "TCP"

    def to_dict(self) -> dict:
        return {"port": self.port, "protocol": self.protocol}


@dataclass(frozen=True)
class PolicyPeer:
    pod_labels: Tuple[Tuple[str, str], ...] = ()
    namespace: Optional[str] = None   # None: the policy's own namespace
    any_namespace: bool = False       # every pod in the cluster

    def to_dict(self) -> dict:
        if self.any_namespace:
            return {"namespaceSelector": {}}
        d: Dict[str, dict] = {"podSelector": {"matchLabels": dict(self.pod_labels)}}
        if self.namespace is not None:
            d["namespaceSelector"] = {
                "matchLabels": {NAMESPACE_NAME_LABEL: self.namespace}
            }
        return d


@dataclass
class PolicyRule:
    peers: List[PolicyPeer] = field(default_factory=list)   # empty: any peer
    ports: List[PolicyPort] = field(default_factory=list)

    def to_dict(self, peers_key: str) -> dict:
        d = {}
        if self.peers:
            d[peers_key] = [p.to_dict() for p in self.peers]
        if self.ports:
            d["ports"] = [p.to_dict() for p in self.ports]
        return d


@dataclass
class NetworkPolicy:
    name: str
    namespace: str
    pod_labels: Dict[str, str]
    ingress: List[PolicyRule] = field(default_factory=list)
    egress: List[PolicyRule] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "NetworkPolicy",
            "metadata": {"name": self.name, "namespace": self.namespace},
            "spec": {
                "podSelector": {"matchLabels": dict(self.pod_labels)},
                "ingress": [r.to_dict("from") for r in self.ingress],
                "egress": [r.to_dict("to") for r in self.egress],
                "policyTypes": ["Ingress", "Egress"],
            },
        }


def policy_list(policies: List[NetworkPolicy]) -> dict:
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicyList",
        "items": [p.to_dict() for p in policies],
    }
