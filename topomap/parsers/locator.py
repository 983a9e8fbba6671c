"""
Locate YAML manifest files under a root path.
"""
import os
from typing import Callable, Iterable, List, Optional, Tuple

from topomap.detect import is_yaml_file
from topomap.logger import Logger
from topomap.models import errors
from topomap.models.errors import ProcessingError

WalkEntry = Tuple[str, List[str], List[str]]
# walk_fn(root, onerror) -> iterable of (dirpath, dirnames, filenames), like os.walk
WalkFunction = Callable[[str, Callable[[OSError], None]], Iterable[WalkEntry]]


def default_walk(root: str, onerror: Callable[[OSError], None]) -> Iterable[WalkEntry]:
    return os.walk(root, onerror=onerror)


class _StopWalk(Exception):
    pass


def find_manifests(
    root: str,
    logger: Logger,
    fail_fast: bool = False,
    walk_fn: Optional[WalkFunction] = None,
) -> Tuple[List[str], List[ProcessingError]]:
    """
    Return the YAML files under `root` (recursively, in sorted order) and the
    errors met on the way. A root that is a file is returned as-is.
    """
    if os.path.isfile(root):
        return ([root] if is_yaml_file(os.path.basename(root)) else []), []

    walk_fn = walk_fn or default_walk
    yamls: List[str] = []
    found_errors: List[ProcessingError] = []

    def onerror(exc: OSError) -> None:
        path = exc.filename if exc.filename is not None else root
        is_sub_dir = os.path.normpath(path) != os.path.normpath(root)
        errors.append_and_log(found_errors, errors.failed_accessing_dir(path, exc, is_sub_dir), logger)
        if errors.stop_processing(fail_fast, found_errors):
            raise _StopWalk()

    try:
        for dirpath, dirnames, filenames in walk_fn(root, onerror):
            dirnames.sort()
            for fname in sorted(filenames):
                if is_yaml_file(fname):
                    yamls.append(os.path.join(dirpath, fname))
    except _StopWalk:
        logger.debug(f"stopped scanning {root} after an error")
    except OSError as exc:
        errors.append_and_log(found_errors, errors.failed_walk_dir(root, exc), logger)

    return yamls, found_errors


def relative_path(path: str, base_dir: str) -> str:
    """`path` relative to `base_dir`; just the file name when base_dir is the file."""
    if path == base_dir:
        return os.path.basename(path)
    try:
        return os.path.relpath(path, base_dir)
    except ValueError:
        return path
