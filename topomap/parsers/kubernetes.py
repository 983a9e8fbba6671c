"""
Classify decoded manifest documents and extract the records the connectivity
analysis works on.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

from topomap.models.resource import (
    DEFAULT_NAMESPACE,
    ConfigMap,
    ConfigMapKeyRef,
    ResourceId,
    Service,
    ServicePort,
    Workload,
)


class ManifestError(ValueError):
    """A document of a supported kind is missing or mistyping a required field."""


class NotAResourceError(ValueError):
    """A document does not describe a Kubernetes object at all."""


class ResourceKind(str, Enum):
    REPLICA_SET            = "ReplicaSet"
    REPLICATION_CONTROLLER = "ReplicationController"
    DEPLOYMENT             = "Deployment"
    DAEMON_SET             = "DaemonSet"
    STATEFUL_SET           = "StatefulSet"
    JOB                    = "Job"
    SERVICE                = "Service"
    CONFIG_MAP             = "ConfigMap"
    ROUTE                  = "Route"
    INGRESS                = "Ingress"

    @property
    def is_workload(self) -> bool:
        return self in _WORKLOAD_KINDS


_WORKLOAD_KINDS = {
    ResourceKind.REPLICA_SET,
    ResourceKind.REPLICATION_CONTROLLER,
    ResourceKind.DEPLOYMENT,
    ResourceKind.DAEMON_SET,
    ResourceKind.STATEFUL_SET,
    ResourceKind.JOB,
}

# API groups each kind is accepted from; "" is the core group ("v1")
_KIND_GROUPS = {
    ResourceKind.REPLICA_SET: ("apps", "extensions"),
    ResourceKind.REPLICATION_CONTROLLER: ("",),
    ResourceKind.DEPLOYMENT: ("apps", "extensions"),
    ResourceKind.DAEMON_SET: ("apps", "extensions"),
    ResourceKind.STATEFUL_SET: ("apps",),
    ResourceKind.JOB: ("batch",),
    ResourceKind.SERVICE: ("",),
    ResourceKind.CONFIG_MAP: ("",),
    ResourceKind.ROUTE: ("route.openshift.io", ""),
    ResourceKind.INGRESS: ("networking.k8s.io", "extensions"),
}

_KIND_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")
_PORT_RE = re.compile(r"^[0-9]*$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_EXTERNAL_SERVICE_TYPES = {"LoadBalancer", "NodePort"}


@dataclass
class ExposedBackends:
    """Services a Route or Ingress sends traffic to."""
    namespace: str
    services: List[str] = field(default_factory=list)


ParsedResource = Union[Workload, Service, ConfigMap, ExposedBackends]


# --------------------------------------------------------- Heuristics

def _valid_port(netloc: str) -> bool:
    """Any run of ASCII digits after the host, without a range check."""
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        rest = host[host.find("]") + 1:]
        if not rest:
            return True
        if not rest.startswith(":"):
            return False
        port = rest[1:]
    else:
        _, sep, port = host.rpartition(":")
        if not sep:
            return True
    return bool(_PORT_RE.match(port))


def is_network_address(value: Any) -> bool:
    """
    True if `value` could be a network address: a non-empty, URI-parseable
    string which is not a plain integer.
    """
    if not isinstance(value, str) or not value:
        return False
    if _CONTROL_CHARS_RE.search(value) or _BAD_ESCAPE_RE.search(value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not _valid_port(parts.netloc):
        return False
    if not parts.scheme and ":" in parts.path.split("/", 1)[0]:
        return False
    return not _INTEGER_RE.match(value)


# --------------------------------------------------------- Field access

def _mapping(obj: Any, path: str, required: bool = False) -> Dict[str, Any]:
    if obj is None:
        if required:
            raise ManifestError(f"missing required field '{path}'")
        return {}
    if not isinstance(obj, dict):
        raise ManifestError(f"'{path}' must be a mapping, got {type(obj).__name__}")
    return obj


def _sequence(obj: Any, path: str) -> List[Any]:
    if obj is None:
        return []
    if not isinstance(obj, list):
        raise ManifestError(f"'{path}' must be a list, got {type(obj).__name__}")
    return obj


def _string(obj: Any, path: str, required: bool = False) -> str:
    if obj is None or obj == "":
        if required:
            raise ManifestError(f"missing required field '{path}'")
        return ""
    if isinstance(obj, (dict, list)):
        raise ManifestError(f"'{path}' must be a string")
    return str(obj)


def _labels(obj: Any, path: str) -> Dict[str, str]:
    return {str(k): _string(v, f"{path}.{k}") for k, v in _mapping(obj, path).items()}


def _identity(doc: Dict[str, Any], kind: ResourceKind) -> ResourceId:
    metadata = _mapping(doc.get("metadata"), "metadata", required=True)
    name = _string(metadata.get("name"), "metadata.name", required=True)
    namespace = _string(metadata.get("namespace"), "metadata.namespace") or DEFAULT_NAMESPACE
    return ResourceId(kind=kind.value, name=name, namespace=namespace)


# --------------------------------------------------------- Classification

def classify(doc: Dict[str, Any]) -> Optional[ResourceKind]:
    """
    Return the accepted kind of a decoded document, or None for a well-formed
    object of a kind the analysis does not use.
    Raises NotAResourceError if the document is not a Kubernetes object.
    """
    api_version = doc.get("apiVersion")
    kind = doc.get("kind")
    if not isinstance(api_version, str) or not api_version:
        raise NotAResourceError("Object 'apiVersion' is missing or not a string")
    if not isinstance(kind, str) or not _KIND_RE.match(kind):
        raise NotAResourceError("Object 'Kind' is missing or not a valid kind name")

    try:
        resource_kind = ResourceKind(kind)
    except ValueError:
        return None
    group = api_version.rpartition("/")[0]
    if group not in _KIND_GROUPS[resource_kind]:
        return None
    return resource_kind


# --------------------------------------------------------- Workloads

def _pod_template(doc: Dict[str, Any]) -> Dict[str, Any]:
    spec = _mapping(doc.get("spec"), "spec", required=True)
    return _mapping(spec.get("template"), "spec.template", required=True)


def parse_workload(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> Workload:
    ident = _identity(doc, kind)
    template = _pod_template(doc)
    template_meta = _mapping(template.get("metadata"), "spec.template.metadata")
    pod_spec = _mapping(template.get("spec"), "spec.template.spec", required=True)

    workload = Workload(
        ident=ident,
        labels=_labels(template_meta.get("labels"), "spec.template.metadata.labels"),
        service_account_name=_string(
            pod_spec.get("serviceAccountName"), "spec.template.spec.serviceAccountName"
        ),
        file_path=file_path,
    )

    containers = _sequence(pod_spec.get("containers"), "spec.template.spec.containers")
    for idx, container in enumerate(containers):
        path = f"spec.template.spec.containers[{idx}]"
        container = _mapping(container, path, required=True)
        image = _string(container.get("image"), f"{path}.image")
        if image:
            workload.images.append(image)
        _scan_env(workload, container, path)
        for arg in _sequence(container.get("args"), f"{path}.args"):
            if is_network_address(arg):
                workload.network_addrs.append(arg)

    return workload


def _scan_env(workload: Workload, container: Dict[str, Any], path: str) -> None:
    for idx, env in enumerate(_sequence(container.get("env"), f"{path}.env")):
        env = _mapping(env, f"{path}.env[{idx}]", required=True)
        value = env.get("value")
        if value not in (None, ""):
            value = _string(value, f"{path}.env[{idx}].value")
            if is_network_address(value):
                workload.network_addrs.append(value)
            continue
        value_from = _mapping(env.get("valueFrom"), f"{path}.env[{idx}].valueFrom")
        key_ref = _mapping(
            value_from.get("configMapKeyRef"), f"{path}.env[{idx}].valueFrom.configMapKeyRef"
        )
        name, key = key_ref.get("name"), key_ref.get("key")
        if name and key:
            # resolved once every config map has been scanned
            workload.config_map_key_refs.append(ConfigMapKeyRef(name=str(name), key=str(key)))

    for idx, env_from in enumerate(_sequence(container.get("envFrom"), f"{path}.envFrom")):
        env_from = _mapping(env_from, f"{path}.envFrom[{idx}]", required=True)
        ref = _mapping(env_from.get("configMapRef"), f"{path}.envFrom[{idx}].configMapRef")
        if ref.get("name"):
            workload.config_map_refs.append(str(ref["name"]))


# --------------------------------------------------------- Services

def _port_number(val: Any, path: str) -> int:
    if isinstance(val, bool) or not isinstance(val, int):
        raise ManifestError(f"'{path}' must be an integer")
    return val


def parse_service(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> Service:
    ident = _identity(doc, kind)
    spec = _mapping(doc.get("spec"), "spec")
    svc_type = _string(spec.get("type"), "spec.type") or "ClusterIP"
    selector = _labels(spec.get("selector"), "spec.selector")

    ports = []
    for idx, p in enumerate(_sequence(spec.get("ports"), "spec.ports")):
        path = f"spec.ports[{idx}]"
        p = _mapping(p, path, required=True)
        target_port = p.get("targetPort")
        if target_port is not None and (isinstance(target_port, bool) or not isinstance(target_port, (int, str))):
            raise ManifestError(f"'{path}.targetPort' must be an integer or a port name")
        ports.append(ServicePort(
            port=_port_number(p.get("port"), f"{path}.port"),
            target_port=target_port,
            protocol=_string(p.get("protocol"), f"{path}.protocol") or "TCP",
            name=_string(p.get("name"), f"{path}.name"),
        ))

    return Service(
        ident=ident,
        type=svc_type,
        selectors=[f"{k}:{v}" for k, v in selector.items()],
        ports=ports,
        expose_externally=svc_type in _EXTERNAL_SERVICE_TYPES,
        expose_to_cluster=False,
        file_path=file_path,
    )


# --------------------------------------------------------- ConfigMaps

def parse_config_map(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> ConfigMap:
    ident = _identity(doc, kind)
    data = _mapping(doc.get("data"), "data")
    return ConfigMap(
        full_name=ident.full_name,
        data={str(k): v for k, v in data.items() if is_network_address(v)},
        keys=frozenset(str(k) for k in data),
    )


# --------------------------------------------------------- Routes / Ingresses

def parse_route(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> ExposedBackends:
    ident = _identity(doc, kind)
    spec = _mapping(doc.get("spec"), "spec", required=True)
    to = _mapping(spec.get("to"), "spec.to", required=True)
    backends = ExposedBackends(namespace=ident.namespace)
    backends.services.append(_string(to.get("name"), "spec.to.name", required=True))
    for idx, alt in enumerate(_sequence(spec.get("alternateBackends"), "spec.alternateBackends")):
        alt = _mapping(alt, f"spec.alternateBackends[{idx}]", required=True)
        name = _string(alt.get("name"), f"spec.alternateBackends[{idx}].name")
        if name:
            backends.services.append(name)
    return backends


def _ingress_backend_service(backend: Dict[str, Any], path: str) -> str:
    # networking.k8s.io/v1 form first, then the legacy serviceName form
    service = _mapping(backend.get("service"), f"{path}.service")
    name = _string(service.get("name"), f"{path}.service.name")
    return name or _string(backend.get("serviceName"), f"{path}.serviceName")


def parse_ingress(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> ExposedBackends:
    ident = _identity(doc, kind)
    spec = _mapping(doc.get("spec"), "spec")
    backends = ExposedBackends(namespace=ident.namespace)

    for key in ("defaultBackend", "backend"):
        default = _mapping(spec.get(key), f"spec.{key}")
        name = _ingress_backend_service(default, f"spec.{key}")
        if name:
            backends.services.append(name)

    for r_idx, rule in enumerate(_sequence(spec.get("rules"), "spec.rules")):
        rule = _mapping(rule, f"spec.rules[{r_idx}]", required=True)
        http = _mapping(rule.get("http"), f"spec.rules[{r_idx}].http")
        for p_idx, path in enumerate(_sequence(http.get("paths"), f"spec.rules[{r_idx}].http.paths")):
            loc = f"spec.rules[{r_idx}].http.paths[{p_idx}]"
            path = _mapping(path, loc, required=True)
            backend = _mapping(path.get("backend"), f"{loc}.backend")
            name = _ingress_backend_service(backend, f"{loc}.backend")
            if name:
                backends.services.append(name)

    return backends


# --------------------------------------------------------- Dispatch

_PARSERS: Dict[ResourceKind, Callable[[ResourceKind, Dict[str, Any], str], ParsedResource]] = {
    ResourceKind.SERVICE: parse_service,
    ResourceKind.CONFIG_MAP: parse_config_map,
    ResourceKind.ROUTE: parse_route,
    ResourceKind.INGRESS: parse_ingress,
}
_PARSERS.update({k: parse_workload for k in _WORKLOAD_KINDS})


def parse_resource(kind: ResourceKind, doc: Dict[str, Any], file_path: str = "") -> ParsedResource:
    """Parse a classified document. Raises ManifestError on malformed fields."""
    return _PARSERS[kind](kind, doc, file_path)
