from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

DEFAULT_NAMESPACE = "default"


@dataclass(frozen=True)
class ResourceId:
    kind: str              # e.g. "Deployment", "Service"
    name: str
    namespace: str = DEFAULT_NAMESPACE

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ConfigMapKeyRef:
    name: str
    key: str


@dataclass
class Workload:
    ident: ResourceId
    labels: Dict[str, str] = field(default_factory=dict)
    service_account_name: str = ""
    images: List[str] = field(default_factory=list)
    network_addrs: List[str] = field(default_factory=list)
    config_map_refs: List[str] = field(default_factory=list)
    config_map_key_refs: List[ConfigMapKeyRef] = field(default_factory=list)
    file_path: str = ""
    used_ports: List[int] = field(default_factory=list)

    @property
    def kind(self) -> str:
        return self.ident.kind

    @property
    def name(self) -> str:
        return self.ident.name

    @property
    def namespace(self) -> str:
        return self.ident.namespace

    @property
    def selectors(self) -> List[str]:
        return flatten_labels(self.labels)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "labels": dict(self.labels),
            "serviceaccountname": self.service_account_name,
            "images": list(self.images),
            "network_addrs": list(self.network_addrs),
            "used_ports": list(self.used_ports),
            "filepath": self.file_path,
        }


@dataclass(frozen=True)
class ServicePort:
    port: int
    target_port: Union[int, str, None] = None
    protocol: str = "TCP"
    name: str = ""

    @property
    def pod_port(self) -> Union[int, str]:
        """The port on the selected pods: targetPort when set, else port."""
        if self.target_port in (None, 0, ""):
            return self.port
        return self.target_port

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "target_port": self.target_port,
            "protocol": self.protocol,
            "name": self.name,
        }


@dataclass
class Service:
    ident: ResourceId
    type: str = "ClusterIP"
    selectors: List[str] = field(default_factory=list)
    ports: List[ServicePort] = field(default_factory=list)
    expose_externally: bool = False
    expose_to_cluster: bool = False
    file_path: str = ""

    @property
    def name(self) -> str:
        return self.ident.name

    @property
    def namespace(self) -> str:
        return self.ident.namespace

    def to_dict(self) -> dict:
        return {
            "kind": self.ident.kind,
            "name": self.name,
            "namespace": self.namespace,
            "type": self.type,
            "selectors": list(self.selectors),
            "ports": [p.to_dict() for p in self.ports],
            "expose_externally": self.expose_externally,
            "expose_to_cluster": self.expose_to_cluster,
            "filepath": self.file_path,
        }


@dataclass
class ConfigMap:
    full_name: str                      # "namespace/name"
    data: Dict[str, str] = field(default_factory=dict)   # address-like values only
    keys: FrozenSet[str] = frozenset()                   # every key of the map

    def has_key(self, key: str) -> bool:
        return key in self.keys or key in self.data


class ExposureIntent:
    """
    Read-only view of which services a Route or Ingress points at.

    Maps namespace -> service name -> True when the exposure is external,
    False when it is cluster-internal.
    """

    def __init__(self, table: Optional[Mapping[str, Mapping[str, bool]]] = None):
        self._table: Dict[str, Dict[str, bool]] = {
            ns: dict(services) for ns, services in (table or {}).items()
        }

    def lookup(self, namespace: str, name: str) -> Optional[bool]:
        return self._table.get(namespace, {}).get(name)

    def __contains__(self, item: Any) -> bool:
        namespace, name = item
        return self.lookup(namespace, name) is not None

    def __len__(self) -> int:
        return sum(len(services) for services in self._table.values())

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return {ns: dict(services) for ns, services in self._table.items()}


@dataclass
class Connection:
    target: Workload
    link: Service
    source: Optional[Workload] = None
    port: Optional[ServicePort] = None   # None when the source is unknown

    def to_dict(self) -> dict:
        d = {}
        if self.source is not None:
            d["source"] = self.source.to_dict()
        d["target"] = self.target.to_dict()
        d["link"] = self.link.to_dict()
        if self.port is not None:
            d["port"] = self.port.port
        return d


def flatten_labels(labels: Mapping[str, str]) -> List[str]:
    return [f"{k}:{v}" for k, v in labels.items()]
