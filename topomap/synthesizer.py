"""
One-call API: scan manifests, infer connections, synthesize policies.
"""
from typing import List, Optional, Sequence, Tuple, Union

from topomap.analyzers.connections import discover_connections, expose_services
from topomap.analyzers.netpols import synthesize_policies
from topomap.config import DEFAULT_DNS_PORT
from topomap.logger import ConsoleLogger, Logger
from topomap.models import errors
from topomap.models.errors import ProcessingError
from topomap.models.policy import NetworkPolicy
from topomap.models.resource import Connection
from topomap.parsers.finder import ResourceFinder
from topomap.parsers.locator import WalkFunction
from topomap.parsers.resolver import inline_config_map_refs

Paths = Union[str, Sequence[str]]


class PoliciesSynthesizer:
    """
    Runs the whole pipeline over one or more directories or files.

    Results are empty whenever a fatal error occurred, or, in fail-fast mode,
    whenever any error occurred. Otherwise they are returned together with
    every non-fatal error, so the caller decides whether partial results are
    good enough.
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        fail_fast: bool = False,
        walk_fn: Optional[WalkFunction] = None,
        dns_port: int = DEFAULT_DNS_PORT,
        expose_routes_externally: bool = False,
    ):
        self.logger = logger or ConsoleLogger()
        self.fail_fast = fail_fast
        self.walk_fn = walk_fn
        self.dns_port = dns_port
        self.expose_routes_externally = expose_routes_externally
        self._errors: List[ProcessingError] = []

    @property
    def errors(self) -> List[ProcessingError]:
        """Errors of the most recent run."""
        return list(self._errors)

    def connections_from_paths(self, paths: Paths) -> Tuple[List[Connection], List[ProcessingError]]:
        connections = self._extract_connections(_as_list(paths))
        return connections, self.errors

    def policies_from_paths(self, paths: Paths) -> Tuple[List[NetworkPolicy], List[ProcessingError]]:
        connections = self._extract_connections(_as_list(paths))
        if self._must_discard():
            return [], self.errors
        return self.policies_from_connections(connections), self.errors

    def policies_from_connections(self, connections: List[Connection]) -> List[NetworkPolicy]:
        policies = synthesize_policies(connections, dns_port=self.dns_port)
        self.logger.info(f"synthesized {len(policies)} network policies")
        return policies

    def _must_discard(self) -> bool:
        return errors.stop_processing(self.fail_fast, self._errors)

    def _extract_connections(self, paths: List[str]) -> List[Connection]:
        finder = ResourceFinder(
            self.logger,
            fail_fast=self.fail_fast,
            walk_fn=self.walk_fn,
            expose_routes_externally=self.expose_routes_externally,
        )
        result = finder.find(paths)
        self._errors = list(result.errors)
        if self._must_discard():
            return []

        self._errors.extend(inline_config_map_refs(
            result.workloads, result.config_maps, self.logger, fail_fast=self.fail_fast
        ))
        if self._must_discard():
            return []

        if result.exposure:
            self.logger.debug(f"services exposed by routes and ingresses: {result.exposure.to_dict()}")
        expose_services(result.services, result.exposure)

        if not result.workloads:
            errors.append_and_log(self._errors, errors.no_k8s_resources_found(), self.logger)
            return []

        self.logger.info(
            f"found {len(result.workloads)} workloads, {len(result.services)} services "
            f"and {len(result.config_maps)} config maps"
        )
        connections = discover_connections(result.workloads, result.services, self.logger)
        self.logger.info(f"discovered {len(connections)} connections")
        return connections


def _as_list(paths: Paths) -> List[str]:
    if isinstance(paths, str):
        return [paths]
    return list(paths)


def connections_from_paths(
    paths: Paths, **options
) -> Tuple[List[Connection], List[ProcessingError]]:
    """See PoliciesSynthesizer for the accepted keyword options."""
    return PoliciesSynthesizer(**options).connections_from_paths(paths)


def policies_from_paths(
    paths: Paths, **options
) -> Tuple[List[NetworkPolicy], List[ProcessingError]]:
    """See PoliciesSynthesizer for the accepted keyword options."""
    return PoliciesSynthesizer(**options).policies_from_paths(paths)
