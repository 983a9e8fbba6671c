"""
Inline config-map backed environment values into workload network addresses.

Must run only after every manifest has been scanned, since a config map may
be declared anywhere relative to the workloads that reference it.
"""
from typing import List

from topomap.logger import Logger
from topomap.models import errors
from topomap.models.errors import ProcessingError
from topomap.models.resource import ConfigMap, Workload
from topomap.parsers.kubernetes import is_network_address


def inline_config_map_refs(
    workloads: List[Workload],
    config_maps: List[ConfigMap],
    logger: Logger,
    fail_fast: bool = False,
) -> List[ProcessingError]:
    by_name = {cm.full_name: cm for cm in config_maps}
    found_errors: List[ProcessingError] = []

    def report(err: ProcessingError) -> bool:
        errors.append_and_log(found_errors, err, logger)
        return errors.stop_processing(fail_fast, found_errors)

    for workload in workloads:
        # envFrom: every address-like value of the whole map
        for ref in workload.config_map_refs:
            full_name = f"{workload.namespace}/{ref}"
            cfg_map = by_name.get(full_name)
            if cfg_map is None:
                if report(errors.config_map_not_found(full_name, workload.name)):
                    return found_errors
                continue
            for value in cfg_map.data.values():
                if is_network_address(value):
                    workload.network_addrs.append(value)

        # env[].valueFrom.configMapKeyRef: a single key
        for key_ref in workload.config_map_key_refs:
            full_name = f"{workload.namespace}/{key_ref.name}"
            cfg_map = by_name.get(full_name)
            if cfg_map is None:
                if report(errors.config_map_not_found(full_name, workload.name)):
                    return found_errors
                continue
            if not cfg_map.has_key(key_ref.key):
                err = errors.config_map_key_not_found(full_name, key_ref.key, workload.name)
                if report(err):
                    return found_errors
                continue
            value = cfg_map.data.get(key_ref.key)
            if is_network_address(value):
                workload.network_addrs.append(value)

    return found_errors
