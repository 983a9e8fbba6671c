"""
NetworkPolicy synthesis from discovered connections.
"""
from typing import Dict, List, Optional, Tuple

from topomap.config import DEFAULT_DNS_PORT
from topomap.models.policy import NetworkPolicy, PolicyPeer, PolicyPort, PolicyRule
from topomap.models.resource import Connection, Service, ServicePort, Workload

GroupKey = Tuple[str, Tuple[Tuple[str, str], ...]]

_ANYWHERE: Optional[PolicyPeer] = None
_DNS_PROTOCOLS = ("UDP", "TCP")


class _RuleSet:
    """Rules keyed by peer, keeping first-seen order and unique ports."""

    def __init__(self):
        self._ports: Dict[Optional[PolicyPeer], List[PolicyPort]] = {}

    def add(self, peer: Optional[PolicyPeer], ports: List[PolicyPort]) -> None:
        known = self._ports.setdefault(peer, [])
        for p in ports:
            if p not in known:
                known.append(p)

    def rules(self) -> List[PolicyRule]:
        return [
            PolicyRule(peers=[peer] if peer is not None else [], ports=list(ports))
            for peer, ports in self._ports.items()
        ]


class _Group:
    def __init__(self, workload: Workload):
        self.name = f"{workload.name}-netpol"
        self.namespace = workload.namespace
        self.labels = dict(workload.labels)
        self.ingress = _RuleSet()
        self.egress = _RuleSet()


def _group_key(workload: Workload) -> GroupKey:
    return workload.namespace, tuple(sorted(workload.labels.items()))


def _peer(workload: Workload, policy_namespace: str) -> PolicyPeer:
    return PolicyPeer(
        pod_labels=tuple(sorted(workload.labels.items())),
        namespace=workload.namespace if workload.namespace != policy_namespace else None,
    )


def _ports(link: Service, port: Optional[ServicePort]) -> List[PolicyPort]:
    matched = [port] if port is not None else link.ports
    return [PolicyPort(port=p.pod_port, protocol=p.protocol) for p in matched]


def synthesize_policies(
    connections: List[Connection], dns_port: int = DEFAULT_DNS_PORT
) -> List[NetworkPolicy]:
    """
    One policy per (namespace, label set) of the workloads taking part in
    `connections`. Ingress allows exactly the observed callers; a connection
    with an unknown caller allows any source on the service's ports. Egress
    allows the observed callees plus DNS.
    """
    groups: Dict[GroupKey, _Group] = {}

    def group_of(workload: Workload) -> _Group:
        key = _group_key(workload)
        if key not in groups:
            groups[key] = _Group(workload)
        return groups[key]

    for conn in connections:
        target = group_of(conn.target)
        ports = _ports(conn.link, conn.port)

        if conn.source is None:
            target.ingress.add(_ANYWHERE, ports)
        else:
            target.ingress.add(_peer(conn.source, target.namespace), ports)

        if conn.link.expose_externally:
            target.ingress.add(_ANYWHERE, ports)
        elif conn.link.expose_to_cluster:
            target.ingress.add(PolicyPeer(any_namespace=True), ports)

        # an unlabeled workload cannot be selected on its own
        if conn.source is not None and conn.source.labels:
            source = group_of(conn.source)
            source.egress.add(_peer(conn.target, source.namespace), ports)

    dns_ports = [PolicyPort(port=dns_port, protocol=proto) for proto in _DNS_PROTOCOLS]
    policies = []
    for group in groups.values():
        egress = group.egress.rules()
        egress.append(PolicyRule(ports=list(dns_ports)))
        policies.append(NetworkPolicy(
            name=group.name,
            namespace=group.namespace,
            pod_labels=group.labels,
            ingress=group.ingress.rules(),
            egress=egress,
        ))
    return policies
