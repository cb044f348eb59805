"""Exception hierarchy for unsafe-census."""

from .base import UnsafeCensusError
from .config import ConfigurationError, InvalidConfigError
from .graph import GraphError, GraphResolutionFailed, UnknownEdgeKind
from .scanning import FileAccessError, ParseFailed, ScanError

__all__ = [
    "UnsafeCensusError",
    "ScanError",
    "FileAccessError",
    "ParseFailed",
    "GraphError",
    "GraphResolutionFailed",
    "UnknownEdgeKind",
    "ConfigurationError",
    "InvalidConfigError",
]
