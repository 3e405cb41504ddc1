"""
Exception hierarchy for kneighbors.

Integrity problems with serialized models and use of an untrained model get
their own classes.  They also derive from the matching built-in exception
types, so callers that already catch ``ValueError`` or ``RuntimeError`` keep
working.
"""


class KNeighborsError(Exception):
    """Base class for errors raised by kneighbors."""


class ModelValidationError(KNeighborsError, ValueError):
    """A serialized model failed validation and cannot be restored."""


class NotTrainedError(KNeighborsError, RuntimeError):
    """The model was used before :meth:`fit` or :meth:`load` set its state."""

    def __init__(self, message: str = "Model has not been trained.  Call fit() first.") -> None:
        super().__init__(message)
