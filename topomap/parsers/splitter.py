"""
Split a YAML stream into its mapping documents, lazily.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Union

import yaml

from topomap.detect import ManifestLoader
from topomap.models import errors
from topomap.models.errors import ProcessingError


@dataclass
class ManifestDocument:
    index: int                # 0-based position among all documents in the file
    line: int                 # 1-based line where the document starts
    content: Dict[str, Any]


class DocumentStream:
    """
    Iterator over the mapping documents of one YAML stream.

    Scalars, sequences and empty documents are skipped but still counted, so
    document indices stay stable whatever the content. Decoding stops at the
    first malformed document; `error` then holds the matching
    ProcessingError. The stream can be consumed once.
    """

    def __init__(self, data: Union[bytes, str], file_path: str):
        self.file_path = file_path
        self.error: Optional[ProcessingError] = None
        self._documents = self._split(data)

    def __iter__(self) -> "DocumentStream":
        return self

    def __next__(self) -> ManifestDocument:
        return next(self._documents)

    def _split(self, data: Union[bytes, str]) -> Iterator[ManifestDocument]:
        loader = None
        index = 0
        line = 1
        try:
            # the reader decodes and checks the whole buffer up front
            loader = ManifestLoader(data)
            while loader.check_node():
                line = loader.peek_event().start_mark.line + 1
                node = loader.get_node()
                if isinstance(node, yaml.MappingNode):
                    content = loader.construct_document(node)
                    yield ManifestDocument(index=index, line=line, content=content)
                index += 1
                line = node.end_mark.line + 1 if node is not None else line
        except yaml.YAMLError as exc:
            self.error = errors.malformed_yaml_doc(self.file_path, line, index, exc)
        finally:
            if loader is not None:
                loader.dispose()


def split_documents(data: Union[bytes, str], file_path: str) -> DocumentStream:
    return DocumentStream(data, file_path)
