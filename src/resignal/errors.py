"""Exception hierarchy for resignal."""


class ResignalError(Exception):
    """Base class for all resignal-specific exceptions."""


class InvalidMutationError(ResignalError, AttributeError):
    """Raised when assigning to the value of a derived node."""

    def __init__(self, node):
        self.node = node
        super().__init__(f"{type(node).__name__} value is read-only")
