"""Exceptions raised by the generators, the resolver and the object stores."""


class OperatorError(Exception):
    """Base class for all errors raised by the operator core."""


class ValidationError(OperatorError):
    """The spec object is structurally invalid.

    Terminal: editing the spec, not waiting, fixes it.
    """


class AmbiguousReferenceError(ValidationError):
    """A cross-reference cannot identify a single object (e.g. empty name)."""


class NotFoundError(OperatorError):
    """A referenced object does not exist yet."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} not found")


class ConflictError(OperatorError):
    """An optimistic-concurrency write was rejected."""


class PlatformIOError(OperatorError):
    """Transport or API failure talking to the object store."""
