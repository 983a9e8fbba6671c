"""
Connectivity inference: which workload is reached through which service, and
by whom.
"""
from typing import Iterable, List, Tuple

from topomap.logger import Logger
from topomap.models.resource import Connection, ExposureIntent, Service, ServicePort, Workload

_HTTP_PREFIX = "http://"


def expose_services(services: List[Service], exposure: ExposureIntent) -> None:
    """Apply Route/Ingress exposure intents to the services they point at."""
    for svc in services:
        if (svc.namespace, svc.name) not in exposure:
            continue
        if exposure.lookup(svc.namespace, svc.name):
            svc.expose_externally = True
        else:
            svc.expose_to_cluster = True


def selectors_contained(selectors: Iterable[str], required: Iterable[str]) -> bool:
    """True if every element of `required` is in `selectors`."""
    available = set(selectors)
    return all(s in available for s in required)


def find_services(workload: Workload, services: List[Service]) -> List[Service]:
    """Services whose selector picks the given workload's pods."""
    if not workload.labels:
        return []
    labels = workload.selectors
    # a Service without a selector does not select any pod
    return [s for s in services if s.selectors and selectors_contained(labels, s.selectors)]


def endpoint(service: Service, port: ServicePort) -> str:
    return f"{service.name}:{port.port}"


def _strip_http(addr: str) -> str:
    return addr[len(_HTTP_PREFIX):] if addr.startswith(_HTTP_PREFIX) else addr


def find_sources(
    service: Service, workloads: List[Workload], target: Workload
) -> List[Tuple[Workload, ServicePort]]:
    """Workloads (other than `target`) configured with one of the service's endpoints."""
    found = []
    for port in service.ports:
        ep = endpoint(service, port)
        for w in workloads:
            if w is target:
                continue
            for addr in w.network_addrs:
                if _strip_http(addr) == ep:
                    found.append((w, port))
    return found


def discover_connections(
    workloads: List[Workload], services: List[Service], logger: Logger
) -> List[Connection]:
    """
    Build one connection per (caller, workload, service, port) match. A
    service with no identifiable caller still yields a connection without a
    source. Duplicates are kept.
    """
    connections: List[Connection] = []
    for target in workloads:
        for svc in find_services(target, services):
            if not svc.ports:
                continue
            sources = find_sources(svc, workloads, target)
            if not sources:
                connections.append(Connection(target=target, link=svc))
                continue
            for source, port in sources:
                logger.debug(
                    f"source: {source.name} target: {target.name} link: {svc.name}:{port.port}"
                )
                if port.port not in target.used_ports:
                    target.used_ports.append(port.port)
                connections.append(Connection(target=target, link=svc, source=source, port=port))
    return connections
