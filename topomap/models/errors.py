"""
Processing errors: values carrying a location and two severity bits.

A *fatal* error means the outputs must not be used. A *severe* error means the
outputs exist but some connections may be missing or wrong.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    NO_YAMLS_FOUND           = "no_yamls_found"
    NO_RESOURCES_FOUND       = "no_resources_found"
    CONFIGMAP_NOT_FOUND      = "configmap_not_found"
    CONFIGMAP_KEY_NOT_FOUND  = "configmap_key_not_found"
    FAILED_SCANNING_RESOURCE = "failed_scanning_resource"
    NOT_K8S_RESOURCE         = "not_k8s_resource"
    MALFORMED_YAML_DOC       = "malformed_yaml_doc"
    FAILED_READING_FILE      = "failed_reading_file"
    FAILED_ACCESSING_DIR     = "failed_accessing_dir"
    FAILED_WALK_DIR          = "failed_walk_dir"


@dataclass(frozen=True)
class ProcessingError:
    kind: ErrorKind
    message: str
    file_path: str = ""
    line: int = 0                      # 1-based, 0 when unknown
    document_id: Optional[int] = None  # 0-based, None when unknown
    fatal: bool = False
    severe: bool = False
    cause: Optional[BaseException] = None

    @property
    def location(self) -> str:
        if not self.file_path:
            return ""
        suffix = ""
        if self.line > 0:
            suffix += f", line: {self.line}"
        if self.document_id is not None:
            suffix += f", document: {self.document_id}"
        return f"in file: {self.file_path}{suffix}"

    def __str__(self) -> str:
        msg = self.message
        if self.cause is not None:
            msg = f"{msg}: {self.cause}"
        location = self.location
        return f"{location} {msg}" if location else msg

    def log(self, logger) -> None:
        if self.fatal or self.severe:
            logger.error(str(self))
        else:
            logger.warning(str(self))

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "cause": str(self.cause) if self.cause is not None else None,
            "file": self.file_path or None,
            "line": self.line or None,
            "document": self.document_id,
            "fatal": self.fatal,
            "severe": self.severe,
        }


def append_and_log(
    errors: List[ProcessingError], err: ProcessingError, logger
) -> List[ProcessingError]:
    err.log(logger)
    errors.append(err)
    return errors


def stop_processing(fail_fast: bool, errors: List[ProcessingError]) -> bool:
    """True when the current pass must not go on."""
    if any(e.fatal for e in errors):
        return True
    return fail_fast and len(errors) > 0


# --------------------------------------------------------- Constructors

def no_yamls_found() -> ProcessingError:
    return ProcessingError(ErrorKind.NO_YAMLS_FOUND, "no yaml files found")


def no_k8s_resources_found() -> ProcessingError:
    return ProcessingError(
        ErrorKind.NO_RESOURCES_FOUND, "no relevant Kubernetes resources found"
    )


def config_map_not_found(config_map: str, resource: str) -> ProcessingError:
    return ProcessingError(
        ErrorKind.CONFIGMAP_NOT_FOUND,
        f"configmap {config_map} not found (referenced by {resource})",
    )


def config_map_key_not_found(config_map: str, key: str, resource: str) -> ProcessingError:
    return ProcessingError(
        ErrorKind.CONFIGMAP_KEY_NOT_FOUND,
        f"configmap {config_map} does not have key {key} (referenced by {resource})",
    )


def failed_scanning_resource(
    resource_kind: str, file_path: str, document_id: Optional[int], cause: BaseException
) -> ProcessingError:
    return ProcessingError(
        ErrorKind.FAILED_SCANNING_RESOURCE,
        f"error scanning {resource_kind} resource",
        file_path=file_path,
        document_id=document_id,
        cause=cause,
    )


def not_k8s_resource(file_path: str, document_id: int, cause: BaseException) -> ProcessingError:
    return ProcessingError(
        ErrorKind.NOT_K8S_RESOURCE,
        "YAML document is not a K8s resource",
        file_path=file_path,
        document_id=document_id,
        cause=cause,
    )


def malformed_yaml_doc(
    file_path: str, line: int, document_id: int, cause: BaseException
) -> ProcessingError:
    return ProcessingError(
        ErrorKind.MALFORMED_YAML_DOC,
        "YAML document is malformed",
        file_path=file_path,
        line=line,
        document_id=document_id,
        severe=True,
        cause=cause,
    )


def failed_reading_file(file_path: str, cause: BaseException) -> ProcessingError:
    return ProcessingError(
        ErrorKind.FAILED_READING_FILE,
        "error reading file",
        file_path=file_path,
        severe=True,
        cause=cause,
    )


def failed_accessing_dir(dir_path: str, cause: BaseException, is_sub_dir: bool) -> ProcessingError:
    return ProcessingError(
        ErrorKind.FAILED_ACCESSING_DIR,
        "error accessing directory",
        file_path=dir_path,
        fatal=not is_sub_dir,
        severe=True,
        cause=cause,
    )


def failed_walk_dir(dir_path: str, cause: BaseException) -> ProcessingError:
    return ProcessingError(
        ErrorKind.FAILED_WALK_DIR,
        "error scanning directory",
        file_path=dir_path,
        fatal=True,
        severe=True,
        cause=cause,
    )
