"""Exception hierarchy shared by task descriptors, QoS functions and factories."""


class PrositError(Exception):
    """Base class for every error raised by prosit."""


class InvalidArgument(PrositError, ValueError):
    """A constructor or setter received out-of-range or inconsistent values."""


class PreconditionViolation(PrositError, RuntimeError):
    """The operation needs state that has not been set up yet."""


class NotFound(PrositError, LookupError):
    """A deadline or registry entry does not exist."""


class UnknownType(NotFound):
    """No builder is registered under the requested type name."""


class DuplicateEntry(PrositError, ValueError):
    """An entry with the same key has already been registered."""


class TypeMismatch(PrositError, TypeError):
    """A parameter bundle was handed to a builder that does not own it."""


class MissingField(PrositError, LookupError):
    """A required configuration field is absent."""


class SolverError(PrositError):
    """The probability solver reported a failure."""
