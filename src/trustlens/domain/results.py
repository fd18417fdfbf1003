from enum import Enum


class OperationStatus(str, Enum):
    """Outcome of a call to an external collaborator."""

    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
