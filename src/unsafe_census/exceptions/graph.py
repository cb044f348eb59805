"""Dependency graph exceptions."""

from .base import UnsafeCensusError


class GraphError(UnsafeCensusError):
    """Base class for dependency graph errors."""

    pass


class GraphResolutionFailed(GraphError):
    """Raised when no dependency graph can be obtained.

    Fatal: without a graph there is no tree to report on.
    """

    def __init__(self, reason: str, source: str = ""):
        details = {"reason": reason}
        if source:
            details["source"] = source
        super().__init__("Could not resolve the dependency graph", details=details)
        self.reason = reason
        self.source = source


class UnknownEdgeKind(GraphError):
    """Raised for a dependency kind outside normal/build/dev.

    The metadata loader catches this, logs a warning and treats the edge
    as a normal dependency.
    """

    def __init__(self, kind: str):
        super().__init__(f"Unknown dependency kind: {kind!r}", details={"kind": kind})
        self.kind = kind
