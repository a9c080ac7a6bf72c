"""
Scheduling Engine Errors

Typed failures returned by kennel commands. Each carries an ``error_kind``
that callers can switch on and a human-readable ``message``.
"""
from typing import Dict


class EngineError(Exception):
    """Base class for every rejection raised by the scheduling engine"""

    error_kind = "EngineError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, str]:
        return {"errorKind": self.error_kind, "message": self.message}


class ValidationError(EngineError):
    """Malformed input: bad date range, missing field, illegal status change"""

    error_kind = "ValidationError"


class NotFoundError(EngineError):
    """Referenced kennel, booking or segment does not exist"""

    error_kind = "NotFoundError"


class InactiveResourceError(EngineError):
    """Target kennel is in maintenance"""

    error_kind = "InactiveResourceError"


class CapacityExceededError(EngineError):
    """Operation would put more pets in a kennel than it can hold"""

    error_kind = "CapacityExceededError"


class ConflictError(EngineError):
    """A concurrent mutation invalidated the caller's view; re-fetch and retry"""

    error_kind = "ConflictError"


class GuardError(EngineError):
    """Structural guard violation, e.g. deleting an occupied kennel"""

    error_kind = "GuardError"
