"""
Scan filesystem paths for the Kubernetes resources relevant to connectivity
analysis.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from topomap.logger import Logger
from topomap.models import errors
from topomap.models.errors import ProcessingError
from topomap.models.resource import ConfigMap, ExposureIntent, Service, Workload
from topomap.parsers import kubernetes
from topomap.parsers.locator import WalkFunction, find_manifests, relative_path
from topomap.parsers.splitter import split_documents


@dataclass
class ScanResult:
    workloads: List[Workload] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    config_maps: List[ConfigMap] = field(default_factory=list)
    exposure: ExposureIntent = field(default_factory=ExposureIntent)
    errors: List[ProcessingError] = field(default_factory=list)


@dataclass
class _ScanState:
    workloads: List[Workload] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    config_maps: List[ConfigMap] = field(default_factory=list)
    services_to_expose: Dict[str, Dict[str, bool]] = field(default_factory=dict)
    errors: List[ProcessingError] = field(default_factory=list)


class ResourceFinder:
    """
    Locates YAML manifests, splits them into documents and collects
    workloads, services, config maps and Route/Ingress exposure intents.

    In fail-fast mode the first error of any kind ends the scan and every
    record collected so far is dropped.
    """

    def __init__(
        self,
        logger: Logger,
        fail_fast: bool = False,
        walk_fn: Optional[WalkFunction] = None,
        expose_routes_externally: bool = False,
    ):
        self.logger = logger
        self.fail_fast = fail_fast
        self.walk_fn = walk_fn
        self.expose_routes_externally = expose_routes_externally

    def find(self, paths: Sequence[str]) -> ScanResult:
        state = _ScanState()
        for root in paths:
            self._scan_root(root, state)
            if self._stop(state):
                break

        if self._stop(state):
            # the caller must not use partial results
            return ScanResult(errors=state.errors[:1] if self.fail_fast else state.errors)

        return ScanResult(
            workloads=state.workloads,
            services=state.services,
            config_maps=state.config_maps,
            exposure=ExposureIntent(state.services_to_expose),
            errors=state.errors,
        )

    def _stop(self, state: _ScanState) -> bool:
        return errors.stop_processing(self.fail_fast, state.errors)

    def _report(self, state: _ScanState, err: ProcessingError) -> None:
        errors.append_and_log(state.errors, err, self.logger)

    def _scan_root(self, root: str, state: _ScanState) -> None:
        manifest_files, scan_errors = find_manifests(
            root, self.logger, fail_fast=self.fail_fast, walk_fn=self.walk_fn
        )
        state.errors.extend(scan_errors)   # already logged by the locator
        if self._stop(state):
            return
        if not manifest_files:
            self._report(state, errors.no_yamls_found())
            return

        self.logger.debug(f"found {len(manifest_files)} yaml file(s) under {root}")
        for path in manifest_files:
            self._parse_file(path, relative_path(path, root), state)
            if self._stop(state):
                return

    def _parse_file(self, path: str, rel_path: str, state: _ScanState) -> None:
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            self._report(state, errors.failed_reading_file(rel_path, exc))
            return

        stream = split_documents(data, rel_path)
        for doc in stream:
            try:
                kind = kubernetes.classify(doc.content)
            except kubernetes.NotAResourceError as exc:
                self._report(state, errors.not_k8s_resource(rel_path, doc.index, exc))
                if self._stop(state):
                    return
                continue

            if kind is None:
                self.logger.info(
                    f"in file: {rel_path}, document: {doc.index}, "
                    f"skipping object with type: {doc.content.get('kind')}"
                )
                continue

            try:
                parsed = kubernetes.parse_resource(kind, doc.content, rel_path)
            except kubernetes.ManifestError as exc:
                self._report(
                    state, errors.failed_scanning_resource(kind.value, rel_path, doc.index, exc)
                )
                if self._stop(state):
                    return
                continue
            self._collect(parsed, state)

        if stream.error is not None:
            self._report(state, stream.error)

    def _collect(self, parsed: kubernetes.ParsedResource, state: _ScanState) -> None:
        if isinstance(parsed, Workload):
            state.workloads.append(parsed)
        elif isinstance(parsed, Service):
            state.services.append(parsed)
        elif isinstance(parsed, ConfigMap):
            state.config_maps.append(parsed)
        else:
            exposed = state.services_to_expose.setdefault(parsed.namespace, {})
            for name in parsed.services:
                exposed[name] = self.expose_routes_externally
