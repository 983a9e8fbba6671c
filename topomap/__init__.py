"""
topomap: static Kubernetes connectivity analysis and NetworkPolicy synthesis.
"""
__version__ = "0.4.0"

from topomap.synthesizer import (  # noqa: E402
    PoliciesSynthesizer,
    connections_from_paths,
    policies_from_paths,
)

__all__ = [
    "PoliciesSynthesizer",
    "connections_from_paths",
    "policies_from_paths",
    "__version__",
]
